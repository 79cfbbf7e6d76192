from __future__ import annotations

from typing import Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.containers import VerticalScroll
from textual.timer import Timer
from textual.widgets import Footer, Header, Static

from quotabar.actions import ActionDispatcher
from quotabar.config import Config
from quotabar.poller import Poller, Scheduler
from quotabar.providers import display_name
from quotabar.session import SessionState
from quotabar.ui.theme import APP_CSS, Theme, theme_from_name
from quotabar.ui.widgets import ProviderCard


class TextualScheduler(Scheduler):
    """Scheduler backed by the running app's own interval timers."""

    def __init__(self, app: App) -> None:
        self.app = app
        self._timer: Timer | None = None

    def schedule(self, interval: float, fn: Callable[[], None]) -> None:
        self.cancel()
        self._timer = self.app.set_interval(interval, fn)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None


class SessionChanged(Message):
    pass


class QuotaBarApp(App):
    CSS = APP_CSS
    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("right,n", "next_provider", "Next"),
        Binding("left,p", "previous_provider", "Prev", show=False),
        Binding("d", "open_dashboard", "Dashboard"),
        Binding("s", "open_status", "Status"),
        Binding("l", "account", "Login"),
    ]

    def __init__(self, cfg: Config):
        super().__init__()
        self.cfg = cfg
        self.theme_kind: Theme = theme_from_name(cfg.general.theme)
        self.session = SessionState()
        self.dispatcher = ActionDispatcher(self.session)
        self.poller = Poller(self.session, cfg, scheduler=TextualScheduler(self))
        self.card = ProviderCard(id="card")

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with VerticalScroll():
            yield self.card
        yield Static("", id="error")
        yield Footer()

    def on_mount(self) -> None:
        if self.theme_kind is Theme.LIGHT:
            self.screen.add_class("-light")
        # observers may run on the command worker threads
        self.session.on_change(lambda _state: self.post_message(SessionChanged()))
        self.render_state()
        self.poller.start()

    def on_unmount(self) -> None:
        self.poller.shutdown()

    def on_session_changed(self, _message: SessionChanged) -> None:
        self.render_state()

    def render_state(self) -> None:
        if self.session.is_shutting_down:
            return
        entry = self.session.display_entry()
        self.title = f"quotabar · {display_name(entry.provider)}"
        self.card.render_entry(entry, self.theme_kind, self.session.last_error)

    def action_refresh(self) -> None:
        self.poller.refresh()

    def action_next_provider(self) -> None:
        self.session.cycle_provider(1)

    def action_previous_provider(self) -> None:
        self.session.cycle_provider(-1)

    def action_open_dashboard(self) -> None:
        self._report(self.dispatcher.open_usage_dashboard(), "dashboard")

    def action_open_status(self) -> None:
        self._report(self.dispatcher.open_status_page(), "status page")

    def action_account(self) -> None:
        self._report(self.dispatcher.run_account_action(), "account action")

    def _report(self, ok: bool, what: str) -> None:
        if not ok:
            self.query_one("#error", Static).update(f"{what} unavailable for this provider")
            return
        self.query_one("#error", Static).update("")


def run_widget(cfg: Config) -> None:
    app = QuotaBarApp(cfg)
    app.run()
