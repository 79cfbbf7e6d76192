from __future__ import annotations

import logging

from PIL import Image, ImageDraw, ImageColor
import pystray  # type: ignore[import-untyped]

from quotabar import metrics
from quotabar.actions import ActionDispatcher
from quotabar.config import Config
from quotabar.poller import Poller
from quotabar.providers import display_name, supports_login
from quotabar.session import SessionState
from quotabar.tray.bridge import busiest_window, summary_line
from quotabar.ui.theme import NEUTRAL_BORDER, theme_from_name

log = logging.getLogger(__name__)


def _create_icon(fill: str, used: float) -> Image.Image:
    size = (64, 64)
    image = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.rounded_rectangle((4, 4, 60, 60), radius=12, fill=(22, 28, 54))
    height = int(round(48 * used / 100.0))
    if height > 0:
        draw.rectangle((14, 56 - height, 50, 56), fill=ImageColor.getrgb(fill))
    draw.rounded_rectangle((4, 4, 60, 60), radius=12, outline=ImageColor.getrgb(fill), width=3)
    return image


def run_tray(cfg: Config) -> None:
    theme = theme_from_name(cfg.general.theme)
    session = SessionState()
    dispatcher = ActionDispatcher(session)
    poller = Poller(session, cfg)

    def provider_title(_item) -> str:
        return display_name(session.preferred_provider_id())

    def quit_app(icon, _item) -> None:
        poller.shutdown()
        icon.stop()

    icon = pystray.Icon(
        "quotabar",
        _create_icon(NEUTRAL_BORDER[theme], 0.0),
        "quotabar",
        menu=pystray.Menu(
            pystray.MenuItem(provider_title, None, enabled=False),
            pystray.MenuItem("Next provider", lambda icon, item: session.cycle_provider(1)),
            pystray.MenuItem("Refresh", lambda icon, item: poller.refresh()),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Usage dashboard", lambda icon, item: dispatcher.open_usage_dashboard()),
            pystray.MenuItem("Status page", lambda icon, item: dispatcher.open_status_page()),
            pystray.MenuItem(
                "Sign in",
                lambda icon, item: dispatcher.run_account_action(),
                visible=lambda item: supports_login(session.preferred_provider_id()),
            ),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Quit", quit_app),
        ),
    )

    def on_change(state: SessionState) -> None:
        if state.is_shutting_down:
            return
        window = busiest_window(state)
        fill = metrics.severity_color(window, theme) if window is not None else NEUTRAL_BORDER[theme]
        icon.icon = _create_icon(fill, metrics.used_percent(window))
        icon.title = summary_line(state)
        icon.update_menu()

    session.on_change(on_change)

    def setup(icon) -> None:
        icon.visible = True
        poller.start()

    log.info("starting tray icon")
    icon.run(setup=setup)
