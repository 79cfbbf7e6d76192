import json
from pathlib import Path

import pytest

from quotabar.models import ErrorKind
from quotabar.snapshot import normalize, snapshot_to_json

FIXTURES = Path(__file__).parent / "fixtures"


def test_normalize_reads_widget_snapshot() -> None:
    result = normalize((FIXTURES / "snapshot_sample.json").read_text())

    assert result.ok
    snap = result.snapshot
    assert snap.generated_at == "unix:1770836400"
    assert snap.enabled_providers == ("codex", "claude")
    assert [e.provider for e in snap.entries] == ["claude", "codex"]

    claude = snap.entries[0]
    assert claude.primary.used_percent == 41.0
    assert claude.primary.window_minutes == 300.0
    assert claude.tertiary is None
    assert claude.credits_remaining is None
    assert claude.identity.login_method == "Claude Max"
    assert claude.status.url == "https://status.anthropic.com/"

    codex = snap.entries[1]
    assert codex.credits_remaining == 92.4
    assert codex.code_review_remaining_percent == 100.0
    assert codex.status is None


@pytest.mark.parametrize("raw", ["", "   \n\t", b"", None])
def test_empty_output_is_no_output_not_malformed(raw) -> None:
    result = normalize(raw)
    assert not result.ok
    assert result.error.kind == ErrorKind.NO_OUTPUT


@pytest.mark.parametrize("raw", ["{not json", "42", '"text"', "null", "[1, 2", "{" * 5000])
def test_malformed_output_is_classified(raw) -> None:
    result = normalize(raw)
    assert not result.ok
    assert result.error.kind == ErrorKind.MALFORMED_OUTPUT
    assert result.error.message.startswith("Failed to parse service output")


def test_empty_entries_is_a_valid_snapshot() -> None:
    result = normalize('{"generatedAt":"","entries":[]}')
    assert result.ok
    assert result.snapshot.entries == ()


def test_provider_is_normalized_and_defaults_to_codex() -> None:
    raw = json.dumps({"entries": [{"provider": "CLAUDE"}, {"provider": "  "}, {}, {"provider": 7}]})
    snap = normalize(raw).snapshot
    assert [e.provider for e in snap.entries] == ["claude", "codex", "codex", "codex"]


def test_absent_fields_stay_absent_and_zero_stays_zero() -> None:
    raw = json.dumps({"entries": [{"provider": "codex", "primary": {"usedPercent": 0}, "secondary": {}}]})
    entry = normalize(raw).snapshot.entries[0]
    assert entry.primary.used_percent == 0.0
    assert entry.secondary.used_percent is None
    assert entry.tertiary is None
    assert entry.identity is None


def test_non_numeric_values_are_dropped() -> None:
    raw = json.dumps({"entries": [{
        "provider": "codex",
        "primary": {"usedPercent": True, "windowMinutes": "abc", "resetsAt": 5},
        "creditsRemaining": "12.5",
    }]})
    entry = normalize(raw).snapshot.entries[0]
    assert entry.primary.used_percent is None
    assert entry.primary.window_minutes is None
    assert entry.primary.resets_at is None
    assert entry.credits_remaining == 12.5


def test_integers_too_large_for_a_float_are_dropped() -> None:
    huge = "1" + "0" * 400
    raw = (
        '{"entries":[{"provider":"codex","primary":{"usedPercent":' + huge
        + ',"windowMinutes":' + huge + '},"creditsRemaining":' + huge + "}]}"
    )
    result = normalize(raw)

    assert result.ok
    entry = result.snapshot.entries[0]
    assert entry.primary.used_percent is None
    assert entry.primary.window_minutes is None
    assert entry.credits_remaining is None

    cli_raw = '[{"provider":"claude","credits":{"remaining":' + huge + "}}]"
    assert normalize(cli_raw).snapshot.entries[0].credits_remaining is None


def test_garbage_entries_and_fields_are_ignored() -> None:
    raw = json.dumps({"entries": [1, "x", None, {"provider": "gemini"}], "enabledProviders": "codex"})
    snap = normalize(raw).snapshot
    assert [e.provider for e in snap.entries] == ["gemini"]
    assert snap.enabled_providers == ()


def test_cli_usage_records_are_folded_into_entries() -> None:
    snap = normalize((FIXTURES / "cli_usage_sample.json").read_bytes()).snapshot

    assert snap.enabled_providers == ("codex", "claude")
    codex, claude = snap.entries
    assert codex.source == "codex-cli"
    assert codex.updated_at == "2026-02-11T10:00:00Z"
    assert codex.primary.used_percent == 30.0
    assert codex.secondary is None
    assert codex.credits_remaining == 100.5
    assert codex.code_review_remaining_percent == 88.0
    assert codex.identity.login_method == "pro"
    assert claude.status.url == "https://status.anthropic.com/incidents/x"
    assert claude.primary.resets_at is None


def test_serialized_snapshot_normalizes_back_to_same_entries() -> None:
    original = normalize((FIXTURES / "snapshot_sample.json").read_text()).snapshot
    again = normalize(snapshot_to_json(original)).snapshot

    assert [e.provider for e in again.entries] == [e.provider for e in original.entries]
    assert again.entries == original.entries
    assert again.enabled_providers == original.enabled_providers
