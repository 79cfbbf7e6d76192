"""Derived values for a provider entry.

Everything here is a pure function of an entry (or one of its usage windows)
and, for the time-based labels, a "now" in epoch milliseconds. Absent windows
and absent fields always have a defined result; nothing raises.
"""
from __future__ import annotations

from datetime import datetime
import math
import time

from quotabar.models import ProviderEntry, UsageWindow
from quotabar.ui.theme import SEVERITY_COLORS, Severity, Theme

MEDIUM_THRESHOLD = 70.0
HIGH_THRESHOLD = 90.0

_MINUTE_MS = 60_000
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS


def _now_ms() -> float:
    return time.time() * 1000.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def has_usage(window: UsageWindow | None) -> bool:
    return window is not None and _is_number(window.used_percent)


def used_percent(window: UsageWindow | None) -> float:
    if not has_usage(window):
        return 0.0
    return _clamp(float(window.used_percent))


def remaining_percent(window: UsageWindow | None) -> float:
    return _clamp(100.0 - used_percent(window))


def severity(window: UsageWindow | None) -> Severity:
    used = used_percent(window)
    if used >= HIGH_THRESHOLD:
        return Severity.HIGH
    if used >= MEDIUM_THRESHOLD:
        return Severity.MEDIUM
    return Severity.LOW


def severity_color(window: UsageWindow | None, theme: Theme = Theme.DARK) -> str:
    return SEVERITY_COLORS[Theme(theme)][severity(window)]


def window_label(window: UsageWindow | None, fallback: str) -> str:
    """Short label for a window length, e.g. ``5h`` or ``7d``."""
    minutes = window.window_minutes if window is not None else None
    if not _is_number(minutes) or minutes <= 0:
        return fallback
    if minutes == 300:
        return "5h"
    if minutes == 10080:
        return "7d"
    whole = int(round(minutes))
    if whole > 0 and whole % 1440 == 0:
        return f"{whole // 1440}d"
    if whole > 0 and whole % 60 == 0:
        return f"{whole // 60}h"
    return f"{whole}m"


def parse_timestamp(raw: str | None) -> float:
    """Epoch milliseconds for ``unix:<seconds>`` or an ISO-8601 string, else NaN."""
    if not isinstance(raw, str):
        return math.nan
    value = raw.strip()
    if not value:
        return math.nan
    if value.startswith("unix:"):
        try:
            seconds = float(value[len("unix:"):])
        except ValueError:
            return math.nan
        return seconds * 1000.0 if math.isfinite(seconds) else math.nan
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value).timestamp() * 1000.0
    except (ValueError, OverflowError, OSError):
        return math.nan


def relative_label(raw: str | None, now_ms: float | None = None) -> str:
    ts = parse_timestamp(raw)
    if math.isnan(ts):
        return "unknown"
    now = _now_ms() if now_ms is None else now_ms
    delta = now - ts
    span = abs(delta)
    if span < 45_000:
        return "just now"
    if span < _HOUR_MS:
        amount, unit = max(1, int(span // _MINUTE_MS)), "m"
    elif span < _DAY_MS:
        amount, unit = int(span // _HOUR_MS), "h"
    else:
        amount, unit = int(span // _DAY_MS), "d"
    if delta >= 0:
        return f"{amount}{unit} ago"
    return f"in {amount}{unit}"


def format_duration(delta_ms: float) -> str:
    total_minutes = int(delta_ms // _MINUTE_MS)
    days, rest = divmod(total_minutes, 1440)
    hours, minutes = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return "<1m"


def reset_countdown(window: UsageWindow | None, now_ms: float | None = None) -> str:
    ts = parse_timestamp(window.resets_at if window is not None else None)
    if math.isnan(ts):
        return "Resets unknown"
    now = _now_ms() if now_ms is None else now_ms
    delta = ts - now
    if delta <= 0:
        return "Resetting soon"
    return f"Resets in {format_duration(delta)}"


def _valid_percent(value) -> bool:
    return _is_number(value) and 0.0 <= value <= 100.0


def has_any_usage_data(entry: ProviderEntry) -> bool:
    if any(has_usage(w) for w in entry.windows()):
        return True
    if _valid_percent(entry.code_review_remaining_percent):
        return True
    return _is_number(entry.credits_remaining)


def percent_label(window: UsageWindow | None) -> str:
    if not has_usage(window):
        return "n/a"
    return f"{used_percent(window):.0f}%"


def credits_label(entry: ProviderEntry) -> str:
    if not _is_number(entry.credits_remaining):
        return "n/a"
    return f"{entry.credits_remaining:.1f}"
