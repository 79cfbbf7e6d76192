from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionKind(str, Enum):
    TERMINAL = "terminal"
    URL = "url"


@dataclass(frozen=True)
class LoginAction:
    kind: ActionKind
    payload: str


@dataclass(frozen=True)
class ProviderMetadata:
    display_name: str = ""
    dashboard_url: str = ""
    status_page_url: str = ""
    status_link_url: str = ""
    subscription_dashboard_url: str = ""


EMPTY_METADATA = ProviderMetadata()
