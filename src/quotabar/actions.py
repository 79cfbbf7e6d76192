from __future__ import annotations

import logging
import subprocess
from typing import Callable
import webbrowser

from quotabar.models import ProviderEntry, normalize_provider_id
from quotabar.providers import ActionKind, dashboard_url_for, login_action, status_page_url_for
from quotabar.session import SessionState

log = logging.getLogger(__name__)

# (binary, arguments placed before the quoted shell invocation)
TERMINALS: tuple[tuple[str, str], ...] = (
    ("konsole", "-e"),
    ("kitty", ""),
    ("alacritty", "-e"),
    ("gnome-terminal", "--"),
    ("xterm", "-e"),
)


def shell_quote(text: str) -> str:
    return "'" + text.replace("'", "'\"'\"'") + "'"


def terminal_script(command: str) -> str:
    """Shell script that runs ``command`` in the first terminal emulator found."""
    inner = "sh -lc " + shell_quote(command)
    branches = []
    for i, (binary, flag) in enumerate(TERMINALS):
        keyword = "if" if i == 0 else "elif"
        launch = " ".join(part for part in (binary, flag, inner) if part)
        branches.append(f"{keyword} command -v {binary} >/dev/null 2>&1; then {launch}")
    return "; ".join(branches) + f"; else {inner}; fi"


def launch_detached(script: str) -> None:
    subprocess.Popen(
        ["sh", "-c", script],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class ActionDispatcher:
    """Opens dashboards and runs sign-in flows for one provider.

    Without an explicit ``provider`` the actions follow the session's
    preferred provider. An explicit id is used as given, even when the
    current snapshot has no entry for it.
    """

    def __init__(
        self,
        session: SessionState,
        open_url: Callable[[str], bool] = webbrowser.open,
        launch: Callable[[str], None] = launch_detached,
    ) -> None:
        self.session = session
        self._open_url = open_url
        self._launch = launch

    def _target(self, provider: str | None) -> tuple[str, ProviderEntry]:
        if provider is None:
            return self.session.preferred_provider_id(), self.session.display_entry()
        provider = normalize_provider_id(provider)
        return provider, self.session.snapshot.entry_for(provider) or ProviderEntry.empty(provider)

    def run_account_action(self, provider: str | None = None) -> bool:
        if self.session.is_shutting_down:
            return False
        provider, _entry = self._target(provider)
        action = login_action(provider)
        if action is None:
            log.debug("no account action for %s", provider)
            return False
        if action.kind is ActionKind.TERMINAL:
            try:
                self._launch(terminal_script(action.payload))
            except OSError:
                log.warning("could not launch %r", action.payload, exc_info=True)
                return False
            log.info("launched account command for %s", provider)
            return True
        return self._open(action.payload)

    def open_usage_dashboard(self, provider: str | None = None) -> bool:
        if self.session.is_shutting_down:
            return False
        provider, entry = self._target(provider)
        return self._open(dashboard_url_for(provider, entry))

    def open_status_page(self, provider: str | None = None) -> bool:
        if self.session.is_shutting_down:
            return False
        provider, entry = self._target(provider)
        return self._open(status_page_url_for(provider, entry))

    def _open(self, url: str) -> bool:
        if not url:
            return False
        try:
            opened = bool(self._open_url(url))
        except webbrowser.Error:
            log.warning("no browser available to open %s", url)
            return False
        log.debug("open %s -> %s", url, opened)
        return opened
