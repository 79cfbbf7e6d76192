from datetime import datetime, timezone
import math

import pytest

from quotabar import metrics
from quotabar.models import ProviderEntry, UsageWindow
from quotabar.snapshot import normalize
from quotabar.ui.theme import SEVERITY_COLORS, Severity, Theme

NOW_S = 1_770_836_400
NOW_MS = NOW_S * 1000.0


def _unix(offset_seconds: float) -> str:
    return f"unix:{NOW_S + offset_seconds}"


@pytest.mark.parametrize("raw, expected", [
    (-50.0, 0.0),
    (0.0, 0.0),
    (42.5, 42.5),
    (150.0, 100.0),
    (1e308, 100.0),
])
def test_used_percent_is_clamped(raw: float, expected: float) -> None:
    window = UsageWindow(used_percent=raw)
    assert metrics.has_usage(window)
    assert metrics.used_percent(window) == expected
    assert metrics.remaining_percent(window) == 100.0 - expected


@pytest.mark.parametrize("window", [None, UsageWindow(), UsageWindow(used_percent=math.nan), UsageWindow(used_percent=math.inf)])
def test_missing_usage_counts_as_zero(window) -> None:
    assert not metrics.has_usage(window)
    assert metrics.used_percent(window) == 0.0
    assert metrics.remaining_percent(window) == 100.0
    assert metrics.percent_label(window) == "n/a"


def test_zero_usage_is_not_absent() -> None:
    assert metrics.percent_label(UsageWindow(used_percent=0)) == "0%"


@pytest.mark.parametrize("used, tier", [(0, Severity.LOW), (69.9, Severity.LOW), (70, Severity.MEDIUM),
                                        (89.9, Severity.MEDIUM), (90, Severity.HIGH), (250, Severity.HIGH)])
def test_severity_thresholds(used: float, tier: Severity) -> None:
    window = UsageWindow(used_percent=used)
    assert metrics.severity(window) == tier
    assert metrics.severity_color(window, Theme.DARK) == SEVERITY_COLORS[Theme.DARK][tier]
    assert metrics.severity_color(window, "light") == SEVERITY_COLORS[Theme.LIGHT][tier]


def test_theme_palettes_differ() -> None:
    for tier in Severity:
        assert SEVERITY_COLORS[Theme.DARK][tier] != SEVERITY_COLORS[Theme.LIGHT][tier]


@pytest.mark.parametrize("minutes, expected", [
    (300, "5h"),
    (10080, "7d"),
    (1440, "1d"),
    (2880, "2d"),
    (120, "2h"),
    (45, "45m"),
    (90, "90m"),
    (59.6, "1h"),
    (0.2, "0m"),
    (None, "Session"),
    (0, "Session"),
    (-300, "Session"),
    (math.nan, "Session"),
    (math.inf, "Session"),
])
def test_window_label(minutes, expected: str) -> None:
    window = UsageWindow(window_minutes=minutes)
    assert metrics.window_label(window, "Session") == expected
    assert metrics.window_label(window, "Session") == metrics.window_label(window, "Session")


def test_window_label_without_window_uses_fallback() -> None:
    assert metrics.window_label(None, "Weekly") == "Weekly"


def test_parse_timestamp_formats() -> None:
    assert metrics.parse_timestamp("unix:1700000000") == 1_700_000_000_000.0
    iso = metrics.parse_timestamp("2026-02-11T12:00:00Z")
    assert iso == datetime(2026, 2, 11, 12, tzinfo=timezone.utc).timestamp() * 1000.0
    assert metrics.parse_timestamp("2026-02-11T12:00:00+00:00") == iso


@pytest.mark.parametrize("raw", [None, "", "soon", "unix:", "unix:abc", "unix:inf", "2026-13-45", 12])
def test_parse_timestamp_never_raises(raw) -> None:
    assert math.isnan(metrics.parse_timestamp(raw))


@pytest.mark.parametrize("offset, expected", [
    (0, "just now"),
    (-44, "just now"),
    (-45, "1m ago"),
    (-600, "10m ago"),
    (600, "in 10m"),
    (-3 * 3600, "3h ago"),
    (5 * 3600 + 10, "in 5h"),
    (-2 * 86400, "2d ago"),
    (9 * 86400, "in 9d"),
])
def test_relative_label(offset: int, expected: str) -> None:
    assert metrics.relative_label(_unix(offset), NOW_MS) == expected


def test_relative_label_unparseable() -> None:
    assert metrics.relative_label("garbage", NOW_MS) == "unknown"


@pytest.mark.parametrize("offset, expected", [
    (90 * 60, "Resets in 1h 30m"),
    (30, "Resets in <1m"),
    (59 * 60, "Resets in 59m"),
    (2 * 86400 + 3 * 3600 + 59, "Resets in 2d 3h"),
    (0, "Resetting soon"),
    (-60, "Resetting soon"),
])
def test_reset_countdown(offset: int, expected: str) -> None:
    window = UsageWindow(resets_at=_unix(offset))
    assert metrics.reset_countdown(window, NOW_MS) == expected


def test_reset_countdown_unknown() -> None:
    assert metrics.reset_countdown(None, NOW_MS) == "Resets unknown"
    assert metrics.reset_countdown(UsageWindow(), NOW_MS) == "Resets unknown"
    assert metrics.reset_countdown(UsageWindow(resets_at="tomorrow"), NOW_MS) == "Resets unknown"


def test_has_any_usage_data() -> None:
    assert not metrics.has_any_usage_data(ProviderEntry.empty("codex"))
    assert metrics.has_any_usage_data(ProviderEntry("codex", tertiary=UsageWindow(used_percent=0)))
    assert metrics.has_any_usage_data(ProviderEntry("codex", code_review_remaining_percent=0))
    assert not metrics.has_any_usage_data(ProviderEntry("codex", code_review_remaining_percent=101))
    assert metrics.has_any_usage_data(ProviderEntry("codex", credits_remaining=0.0))
    assert not metrics.has_any_usage_data(ProviderEntry("codex", credits_remaining=math.nan))
    assert not metrics.has_any_usage_data(ProviderEntry("codex", primary=UsageWindow(window_minutes=300)))


def test_out_of_range_entry_from_json() -> None:
    entry = normalize('{"entries":[{"provider":"CLAUDE","primary":{"usedPercent":150}}]}').snapshot.entries[0]
    assert entry.provider == "claude"
    assert metrics.used_percent(entry.primary) == 100.0


def test_credits_label() -> None:
    assert metrics.credits_label(ProviderEntry("codex")) == "n/a"
    assert metrics.credits_label(ProviderEntry("codex", credits_remaining=92.44)) == "92.4"
