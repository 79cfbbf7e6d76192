from quotabar.models import normalize_provider_id
from quotabar.providers.base import ActionKind, LoginAction, ProviderMetadata
from quotabar.providers.registry import (
    dashboard_url_for,
    display_name,
    login_action,
    metadata_for,
    status_page_url_for,
    supports_login,
)

__all__ = [
    "ActionKind",
    "LoginAction",
    "ProviderMetadata",
    "dashboard_url_for",
    "display_name",
    "login_action",
    "metadata_for",
    "normalize_provider_id",
    "status_page_url_for",
    "supports_login",
]
