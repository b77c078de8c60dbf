from datetime import datetime, timedelta, timezone

from marketplace.services.availability import windows_conflict

T = datetime(2030, 3, 1, 10, 0, tzinfo=timezone.utc)
H = timedelta(hours=1)


def test_overlap():
    assert windows_conflict(T, T + 2 * H, T + H, T + 3 * H)


def test_containment():
    assert windows_conflict(T, T + 4 * H, T + H, T + 2 * H)


def test_touching_endpoints_conflict():
    assert windows_conflict(T, T + H, T + H, T + 2 * H)
    assert windows_conflict(T + H, T + 2 * H, T, T + H)


def test_disjoint():
    assert not windows_conflict(T, T + H, T + H + timedelta(seconds=1), T + 2 * H)


def test_naive_values_are_utc():
    naive = T.replace(tzinfo=None)
    assert windows_conflict(naive, naive + H, T + 30 * timedelta(minutes=1), T + 2 * H)
