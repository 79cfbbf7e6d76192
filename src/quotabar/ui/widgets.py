from __future__ import annotations

from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from quotabar import metrics
from quotabar.models import ProviderEntry, UsageWindow
from quotabar.providers import display_name, supports_login
from quotabar.ui.theme import NEUTRAL_BORDER, Theme

WINDOW_FALLBACKS = (("primary", "Session"), ("secondary", "Weekly"), ("tertiary", "Extra"))


def _bar(window: UsageWindow | None, theme: Theme, width: int = 30) -> Text:
    if not metrics.has_usage(window):
        return Text("── n/a ──", style="dim")
    used = metrics.used_percent(window)
    filled = int(round((used / 100.0) * width))
    color = metrics.severity_color(window, theme)
    bar = Text()
    bar.append("━" * filled, style=f"bold {color}")
    bar.append("╌" * (width - filled), style="bright_black")
    bar.append(f"  {metrics.percent_label(window):>4}", style=f"bold {color}")
    return bar


def entry_panel(
    entry: ProviderEntry,
    theme: Theme = Theme.DARK,
    last_error: str = "",
    now_ms: float | None = None,
) -> Panel:
    table = Table.grid(padding=(0, 1), expand=True)
    table.add_column("label", no_wrap=True, style="bold", ratio=1)
    table.add_column("value", ratio=4)

    if last_error:
        table.add_row(Text("Error", style="bold red"), Text(last_error, style="red"))
    elif not metrics.has_any_usage_data(entry):
        table.add_row(Text("Status", style="dim"), Text("No usage data", style="dim italic"))

    worst: UsageWindow | None = None
    for attr, fallback in WINDOW_FALLBACKS:
        window = getattr(entry, attr)
        if window is None:
            continue
        table.add_row("", Text())
        table.add_row(Text(metrics.window_label(window, fallback), style="bold cyan"), _bar(window, theme))
        table.add_row(Text("  resets", style="dim"), Text(metrics.reset_countdown(window, now_ms)))
        if metrics.has_usage(window) and metrics.used_percent(window) > metrics.used_percent(worst):
            worst = window

    if entry.credits_remaining is not None or entry.code_review_remaining_percent is not None:
        table.add_row("", Text())
        table.add_row(Text("Credits", style="bold blue"), Text(metrics.credits_label(entry)))
        review = entry.code_review_remaining_percent
        table.add_row(
            Text("Reviews", style="bold blue"),
            Text("n/a" if review is None else f"{review:.0f}% left"),
        )

    identity = entry.identity
    if identity is not None and (identity.account_email or identity.login_method):
        table.add_row("", Text())
        account = identity.account_email or "-"
        if identity.login_method:
            account += f"  ({identity.login_method})"
        table.add_row(Text("Account", style="dim"), Text(account, style="dim"))
    elif supports_login(entry.provider):
        table.add_row(Text("Account", style="dim"), Text("not signed in", style="dim italic"))

    status = entry.status
    if status is not None and status.description:
        table.add_row(Text("Service", style="dim"), Text(status.description, style="dim"))

    border = metrics.severity_color(worst, theme) if worst is not None else NEUTRAL_BORDER[theme]
    subtitle = None
    if entry.updated_at:
        subtitle = f"[dim]updated {metrics.relative_label(entry.updated_at, now_ms)}[/]"
    title = display_name(entry.provider)
    if entry.source:
        title += f" · {entry.source}"
    return Panel(
        table,
        title=f"[bold] {title} [/]",
        subtitle=subtitle,
        border_style=border,
        padding=(1, 2),
    )


class ProviderCard(Static):
    def render_entry(
        self,
        entry: ProviderEntry,
        theme: Theme = Theme.DARK,
        last_error: str = "",
        now_ms: float | None = None,
    ) -> None:
        self.update(entry_panel(entry, theme, last_error, now_ms))
