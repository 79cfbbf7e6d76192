from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_PROVIDER = "codex"


def normalize_provider_id(raw: object) -> str:
    """Lower-case and trim a provider identifier; empty becomes ``codex``."""
    if not isinstance(raw, str):
        return DEFAULT_PROVIDER
    value = raw.strip().lower()
    return value or DEFAULT_PROVIDER


class ErrorKind(str, Enum):
    NO_OUTPUT = "no_output"
    MALFORMED_OUTPUT = "malformed_output"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class UsageWindow:
    used_percent: float | None = None
    window_minutes: float | None = None
    resets_at: str | None = None


@dataclass(frozen=True)
class Identity:
    account_email: str | None = None
    account_organization: str | None = None
    login_method: str | None = None


@dataclass(frozen=True)
class StatusInfo:
    indicator: str | None = None
    description: str | None = None
    updated_at: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class ProviderEntry:
    provider: str
    source: str = ""
    updated_at: str = ""
    primary: UsageWindow | None = None
    secondary: UsageWindow | None = None
    tertiary: UsageWindow | None = None
    credits_remaining: float | None = None
    code_review_remaining_percent: float | None = None
    status: StatusInfo | None = None
    identity: Identity | None = None

    @classmethod
    def empty(cls, provider: str) -> ProviderEntry:
        return cls(provider=normalize_provider_id(provider))

    def windows(self) -> tuple[UsageWindow | None, ...]:
        return (self.primary, self.secondary, self.tertiary)


@dataclass(frozen=True)
class Snapshot:
    generated_at: str = ""
    entries: tuple[ProviderEntry, ...] = ()
    enabled_providers: tuple[str, ...] = ()

    def entry_for(self, provider: str) -> ProviderEntry | None:
        wanted = normalize_provider_id(provider)
        for entry in self.entries:
            if entry.provider == wanted:
                return entry
        return None


@dataclass(frozen=True)
class SnapshotError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class NormalizeResult:
    snapshot: Snapshot | None = None
    error: SnapshotError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.snapshot is not None
