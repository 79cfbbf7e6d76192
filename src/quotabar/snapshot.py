from __future__ import annotations

import json
import logging

from quotabar.models import (
    ErrorKind,
    Identity,
    NormalizeResult,
    ProviderEntry,
    Snapshot,
    SnapshotError,
    StatusInfo,
    UsageWindow,
    normalize_provider_id,
)

log = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = "Service returned no output"
MALFORMED_PREFIX = "Failed to parse service output"


def normalize(raw: str | bytes | None) -> NormalizeResult:
    """Turn the service command's stdout into a Snapshot.

    Accepts either the widget snapshot object (``generatedAt``/``entries``)
    or a list of raw per-provider CLI usage records. Never raises: empty
    input and malformed input come back as classified errors.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = (raw or "").strip()
    if not text:
        return NormalizeResult(error=SnapshotError(ErrorKind.NO_OUTPUT, NO_OUTPUT_MESSAGE))

    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        return _malformed(str(exc))

    if isinstance(data, dict):
        return NormalizeResult(snapshot=_snapshot_from_dict(data))
    if isinstance(data, list):
        return NormalizeResult(snapshot=_snapshot_from_cli_values(data))
    return _malformed(f"expected a JSON object or array, got {type(data).__name__}")


def _malformed(detail: str) -> NormalizeResult:
    log.debug("malformed service output: %s", detail)
    return NormalizeResult(
        error=SnapshotError(ErrorKind.MALFORMED_OUTPUT, f"{MALFORMED_PREFIX}: {detail}")
    )


def _snapshot_from_dict(data: dict) -> Snapshot:
    raw_entries = data.get("entries")
    entries = tuple(
        _entry_from_dict(item)
        for item in (raw_entries if isinstance(raw_entries, list) else [])
        if isinstance(item, dict)
    )
    raw_enabled = data.get("enabledProviders")
    enabled = tuple(
        normalize_provider_id(p)
        for p in (raw_enabled if isinstance(raw_enabled, list) else [])
        if isinstance(p, str) and p.strip()
    )
    return Snapshot(
        generated_at=_str(data.get("generatedAt")) or "",
        entries=entries,
        enabled_providers=enabled,
    )


def _entry_from_dict(item: dict) -> ProviderEntry:
    return ProviderEntry(
        provider=normalize_provider_id(item.get("provider")),
        source=_str(item.get("source")) or "",
        updated_at=_str(item.get("updatedAt")) or "",
        primary=_window(item.get("primary")),
        secondary=_window(item.get("secondary")),
        tertiary=_window(item.get("tertiary")),
        credits_remaining=_float(item.get("creditsRemaining")),
        code_review_remaining_percent=_float(item.get("codeReviewRemainingPercent")),
        status=_status(item.get("status")),
        identity=_identity(item.get("identity")),
    )


def _snapshot_from_cli_values(values: list) -> Snapshot:
    entries = tuple(_entry_from_cli_value(v) for v in values if isinstance(v, dict))
    return Snapshot(
        generated_at="",
        entries=entries,
        enabled_providers=tuple(e.provider for e in entries),
    )


def _entry_from_cli_value(value: dict) -> ProviderEntry:
    usage = value.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    credits = value.get("credits")
    dashboard = value.get("openaiDashboard")
    return ProviderEntry(
        provider=normalize_provider_id(value.get("provider")),
        source=_str(value.get("source")) or "",
        updated_at=_str(usage.get("updatedAt")) or _str(value.get("updatedAt")) or "",
        primary=_window(usage.get("primary")),
        secondary=_window(usage.get("secondary")),
        tertiary=_window(usage.get("tertiary")),
        credits_remaining=_float(credits.get("remaining")) if isinstance(credits, dict) else None,
        code_review_remaining_percent=(
            _float(dashboard.get("codeReviewRemainingPercent")) if isinstance(dashboard, dict) else None
        ),
        status=_status(value.get("status")),
        identity=_identity(usage.get("identity")),
    )


def _window(value) -> UsageWindow | None:
    if not isinstance(value, dict):
        return None
    return UsageWindow(
        used_percent=_float(value.get("usedPercent")),
        window_minutes=_float(value.get("windowMinutes")),
        resets_at=_str(value.get("resetsAt")),
    )


def _identity(value) -> Identity | None:
    if not isinstance(value, dict):
        return None
    return Identity(
        account_email=_str(value.get("accountEmail")),
        account_organization=_str(value.get("accountOrganization")),
        login_method=_str(value.get("loginMethod")),
    )


def _status(value) -> StatusInfo | None:
    if not isinstance(value, dict):
        return None
    return StatusInfo(
        indicator=_str(value.get("indicator")),
        description=_str(value.get("description")),
        updated_at=_str(value.get("updatedAt")),
        url=_str(value.get("url")),
    )


def _str(value) -> str | None:
    return value if isinstance(value, str) else None


def _float(value) -> float | None:
    # bool is an int subclass; a JSON true is not a number here
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # integer literal wider than a double
            return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _window_to_dict(window: UsageWindow | None) -> dict | None:
    if window is None:
        return None
    return {
        "usedPercent": window.used_percent,
        "windowMinutes": window.window_minutes,
        "resetsAt": window.resets_at,
    }


def _entry_to_dict(entry: ProviderEntry) -> dict:
    identity = entry.identity
    status = entry.status
    return {
        "provider": entry.provider,
        "source": entry.source,
        "updatedAt": entry.updated_at,
        "primary": _window_to_dict(entry.primary),
        "secondary": _window_to_dict(entry.secondary),
        "tertiary": _window_to_dict(entry.tertiary),
        "creditsRemaining": entry.credits_remaining,
        "codeReviewRemainingPercent": entry.code_review_remaining_percent,
        "identity": None if identity is None else {
            "accountEmail": identity.account_email,
            "accountOrganization": identity.account_organization,
            "loginMethod": identity.login_method,
        },
        "status": None if status is None else {
            "indicator": status.indicator,
            "description": status.description,
            "updatedAt": status.updated_at,
            "url": status.url,
        },
    }


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    return {
        "generatedAt": snapshot.generated_at,
        "enabledProviders": list(snapshot.enabled_providers),
        "entries": [_entry_to_dict(e) for e in snapshot.entries],
    }


def snapshot_to_json(snapshot: Snapshot, indent: int | None = 2) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=indent)
