"""Process-lifetime presentation state shared by the poller and the actions."""
from __future__ import annotations

import logging
import threading
from typing import Callable

from quotabar.models import DEFAULT_PROVIDER, ProviderEntry, Snapshot, normalize_provider_id

log = logging.getLogger(__name__)


def _codex_or_first(ids: list[str]) -> str:
    if DEFAULT_PROVIDER in ids:
        return DEFAULT_PROVIDER
    return ids[0] if ids else ""


class SessionState:
    """Current snapshot, last error, provider selection and shutdown flag.

    All mutation happens under one lock; ``snapshot`` and ``last_error`` are
    always replaced together. Observers registered with ``on_change`` are
    called after the lock is released.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = Snapshot()
        self._last_error = ""
        self._selected_provider = ""
        self._shutting_down = False
        self._callbacks: list[Callable[[SessionState], None]] = []

    @property
    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    @property
    def last_error(self) -> str:
        with self._lock:
            return self._last_error

    @property
    def selected_provider(self) -> str:
        with self._lock:
            return self._selected_provider

    @property
    def is_shutting_down(self) -> bool:
        with self._lock:
            return self._shutting_down

    def on_change(self, callback: Callable[[SessionState], None]) -> None:
        self._callbacks.append(callback)

    def _notify(self) -> None:
        for cb in list(self._callbacks):
            try:
                cb(self)
            except Exception:
                log.warning("session observer %r failed", cb, exc_info=True)

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        with self._lock:
            if self._shutting_down:
                return
            self._snapshot = snapshot
            self._last_error = ""
            if not self._selected_provider:
                ids = [e.provider for e in snapshot.entries]
                self._selected_provider = _codex_or_first(ids) or DEFAULT_PROVIDER
                log.debug("initial provider selection: %s", self._selected_provider)
        self._notify()

    def apply_error(self, message: str) -> None:
        with self._lock:
            if self._shutting_down:
                return
            self._snapshot = Snapshot()
            self._last_error = message
        self._notify()

    def select_provider(self, provider_id: str) -> None:
        with self._lock:
            if self._shutting_down:
                return
            self._selected_provider = normalize_provider_id(provider_id)
        self._notify()

    def shutdown(self) -> None:
        with self._lock:
            if self._shutting_down:
                return
            self._shutting_down = True
        self._notify()

    def provider_ids(self) -> list[str]:
        snapshot = self.snapshot
        ids = [e.provider for e in snapshot.entries]
        ids.extend(p for p in snapshot.enabled_providers if p not in ids)
        return ids

    def cycle_provider(self, step: int = 1) -> str:
        ids = self.provider_ids()
        current = self.preferred_provider_id()
        if not ids:
            return current
        index = ids.index(current) if current in ids else -step
        chosen = ids[(index + step) % len(ids)]
        self.select_provider(chosen)
        return chosen

    def preferred_provider_id(self) -> str:
        with self._lock:
            selected = self._selected_provider
            snapshot = self._snapshot
        available = [e.provider for e in snapshot.entries] + list(snapshot.enabled_providers)
        # a pinned provider missing from a non-empty snapshot is kept, not shown
        if selected and (not available or selected in available):
            return selected
        return (
            _codex_or_first([e.provider for e in snapshot.entries])
            or _codex_or_first(list(snapshot.enabled_providers))
            or DEFAULT_PROVIDER
        )

    def display_entry(self) -> ProviderEntry:
        preferred = self.preferred_provider_id()
        entry = self.snapshot.entry_for(preferred)
        return entry if entry is not None else ProviderEntry.empty(preferred)
