from __future__ import annotations

from quotabar import metrics
from quotabar.models import UsageWindow
from quotabar.providers import display_name
from quotabar.session import SessionState


def summary_line(session: SessionState) -> str:
    entry = session.display_entry()
    name = display_name(entry.provider)
    if session.last_error:
        return f"{name}: {session.last_error}"
    if not metrics.has_any_usage_data(entry):
        return f"{name}: no usage data"

    parts: list[str] = []
    for window, fallback in ((entry.primary, "S"), (entry.secondary, "W")):
        if window is not None:
            parts.append(f"{metrics.window_label(window, fallback)} {metrics.percent_label(window)}")
    if entry.credits_remaining is not None:
        parts.append(f"credits {metrics.credits_label(entry)}")
    return f"{name}: " + " · ".join(parts)


def busiest_window(session: SessionState) -> UsageWindow | None:
    entry = session.display_entry()
    used = [w for w in entry.windows() if metrics.has_usage(w)]
    return max(used, key=metrics.used_percent, default=None)
