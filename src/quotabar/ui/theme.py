from __future__ import annotations

from enum import Enum


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SEVERITY_COLORS: dict[Theme, dict[Severity, str]] = {
    Theme.DARK: {
        Severity.LOW: "#2be38f",
        Severity.MEDIUM: "#f2c94c",
        Severity.HIGH: "#ff5e6c",
    },
    Theme.LIGHT: {
        Severity.LOW: "#1a9e5f",
        Severity.MEDIUM: "#b7791f",
        Severity.HIGH: "#d64550",
    },
}

NEUTRAL_BORDER = {Theme.DARK: "#7184d6", Theme.LIGHT: "#4a5a9c"}


def theme_from_name(name: str | None) -> Theme:
    try:
        return Theme((name or "").strip().lower())
    except ValueError:
        return Theme.DARK


APP_CSS = """
Screen {
  background: #0c0f1a;
  color: #e8ecff;
}

Screen.-light {
  background: #f4f6fb;
  color: #1b2140;
}

#error {
  height: auto;
  margin: 0 2;
  color: #ff5e6c;
}

ProviderCard {
  margin: 1 2;
  padding: 0;
  height: auto;
}

Footer {
  background: #0e1225;
  color: #7184d6;
}

Header {
  background: #141830;
  color: #e8ecff;
}
"""
