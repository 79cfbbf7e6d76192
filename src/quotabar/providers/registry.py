"""Static per-provider tables and the URL resolution rules built on them.

Adding a provider is a data change: a row in ``PROVIDER_METADATA`` and, when
it has a login flow, rows in ``LOGIN_PROVIDERS`` and ``LOGIN_ACTIONS``.
"""
from __future__ import annotations

from quotabar.models import ProviderEntry, normalize_provider_id
from quotabar.providers.base import ActionKind, EMPTY_METADATA, LoginAction, ProviderMetadata

PROVIDER_METADATA: dict[str, ProviderMetadata] = {
    "codex": ProviderMetadata(
        display_name="Codex",
        dashboard_url="https://chatgpt.com/codex/settings/usage",
        status_page_url="https://status.openai.com/",
        status_link_url="https://status.openai.com/history",
    ),
    "claude": ProviderMetadata(
        display_name="Claude",
        dashboard_url="https://console.anthropic.com/settings/usage",
        status_page_url="https://status.anthropic.com/",
        status_link_url="https://status.anthropic.com/history",
        subscription_dashboard_url="https://claude.ai/settings/usage",
    ),
    "gemini": ProviderMetadata(
        display_name="Gemini",
        dashboard_url="https://aistudio.google.com/usage",
        status_link_url="https://aistudio.google.com/status",
    ),
    "cursor": ProviderMetadata(
        display_name="Cursor",
        dashboard_url="https://cursor.com/dashboard?tab=usage",
        status_page_url="https://status.cursor.com/",
    ),
}

LOGIN_PROVIDERS = frozenset({"codex", "claude", "gemini", "cursor"})

LOGIN_ACTIONS: dict[str, LoginAction] = {
    "codex": LoginAction(ActionKind.TERMINAL, "codex login"),
    "claude": LoginAction(ActionKind.TERMINAL, "codexbar auth --provider claude"),
    "gemini": LoginAction(ActionKind.TERMINAL, "gemini"),
    "cursor": LoginAction(ActionKind.URL, "https://cursor.com/settings"),
}

# Only this provider sells plans with their own usage page.
TIERED_PROVIDER = "claude"
SUBSCRIPTION_MARKERS = ("max", "pro", "ultra", "team")


def metadata_for(provider_id: str) -> ProviderMetadata:
    return PROVIDER_METADATA.get(normalize_provider_id(provider_id), EMPTY_METADATA)


def display_name(provider_id: str) -> str:
    key = normalize_provider_id(provider_id)
    return metadata_for(key).display_name or key.capitalize()


def supports_login(provider_id: str) -> bool:
    return normalize_provider_id(provider_id) in LOGIN_PROVIDERS


def login_action(provider_id: str) -> LoginAction | None:
    return LOGIN_ACTIONS.get(normalize_provider_id(provider_id))


def _has_subscription(entry: ProviderEntry | None) -> bool:
    if entry is None or entry.identity is None:
        return False
    method = (entry.identity.login_method or "").lower()
    return any(marker in method for marker in SUBSCRIPTION_MARKERS)


def dashboard_url_for(provider_id: str, entry: ProviderEntry | None = None) -> str:
    key = normalize_provider_id(provider_id)
    meta = metadata_for(key)
    if key == TIERED_PROVIDER and _has_subscription(entry) and meta.subscription_dashboard_url:
        return meta.subscription_dashboard_url
    return meta.dashboard_url


def status_page_url_for(provider_id: str, entry: ProviderEntry | None = None) -> str:
    if entry is not None and entry.status is not None:
        embedded = (entry.status.url or "").strip()
        if embedded:
            return embedded
    meta = metadata_for(provider_id)
    return meta.status_page_url or meta.status_link_url or ""
