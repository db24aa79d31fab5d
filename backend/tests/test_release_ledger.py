from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from calidad.services.release_ledger import (
    ensure_actor_present,
    ensure_expected_version,
    ensure_positive_amount,
    ensure_release_within_pending,
    ensure_reversal_target_is_release,
    ensure_reversal_within_remainder,
    is_reversal,
    pending_quantity,
    released_quantity,
    reversible_remainder,
    reverted_by_entry,
    summarize,
)


def _release(amount: int):
    return SimpleNamespace(id=uuid4(), amount=amount, reversal_of_id=None)


def _reversal(of, amount: int):
    return SimpleNamespace(id=uuid4(), amount=-amount, reversal_of_id=of.id)


def test_ledger_totals_for_release_and_partial_reversal_history() -> None:
    ana = _release(40)
    luis = _release(35)
    carlos = _reversal(ana, 10)
    entries = [ana, luis, carlos]

    summary = summarize(target=100, entries=entries, ledger_version=3)

    assert summary.released == 65
    assert summary.pending == 35
    assert summary.entries_count == 3
    assert summary.ledger_version == 3
    assert reverted_by_entry(entries) == {ana.id: 10}
    assert reversible_remainder(ana, already_reverted=10) == 30
    assert reversible_remainder(luis, already_reverted=0) == 35
    assert reversible_remainder(carlos, already_reverted=0) == 0


def test_empty_ledger_leaves_whole_target_pending() -> None:
    assert released_quantity([]) == 0
    assert pending_quantity(12, []) == 12
    assert summarize(target=0, entries=[]).pending == 0


def test_full_reversal_restores_pending_and_exhausts_remainder() -> None:
    release = _release(20)
    reversal = _reversal(release, 20)

    assert pending_quantity(50, [release, reversal]) == 50
    assert reversible_remainder(release, already_reverted=20) == 0


def test_multiple_reversals_against_same_release_accumulate() -> None:
    release = _release(30)
    entries = [release, _reversal(release, 5), _reversal(release, 7)]

    assert reverted_by_entry(entries)[release.id] == 12
    assert reversible_remainder(release, already_reverted=12) == 18


def test_is_reversal_detects_negative_rows() -> None:
    release = _release(3)
    assert is_reversal(release) is False
    assert is_reversal(_reversal(release, 1)) is True


@pytest.mark.parametrize("amount", [0, -1])
def test_non_positive_amount_is_rejected(amount: int) -> None:
    with pytest.raises(ValueError, match="greater than 0"):
        ensure_positive_amount(amount)


def test_actor_is_trimmed_and_required() -> None:
    assert ensure_actor_present("  Ana ") == "Ana"
    with pytest.raises(ValueError, match="Actor name is required"):
        ensure_actor_present("   ")
    with pytest.raises(ValueError):
        ensure_actor_present(None)


def test_release_may_consume_exactly_the_pending_quantity() -> None:
    ensure_release_within_pending(amount=35, pending=35)
    with pytest.raises(ValueError, match="only 35 pending"):
        ensure_release_within_pending(amount=36, pending=35)


def test_reversal_limits() -> None:
    release = _release(10)
    ensure_reversal_target_is_release(release)
    with pytest.raises(ValueError, match="Cannot reverse a reversal"):
        ensure_reversal_target_is_release(_reversal(release, 2))

    ensure_reversal_within_remainder(amount=8, remainder=8)
    with pytest.raises(ValueError, match="only 8 left"):
        ensure_reversal_within_remainder(amount=9, remainder=8)


def test_expected_version_is_optional_and_exact() -> None:
    ensure_expected_version(expected=None, current=4)
    ensure_expected_version(expected=4, current=4)
    with pytest.raises(ValueError, match="expected version 3"):
        ensure_expected_version(expected=3, current=4)


def test_recomputing_the_same_ledger_gives_the_same_summary() -> None:
    ana = _release(40)
    entries = [ana, _release(35), _reversal(ana, 10)]

    first = summarize(target=100, entries=entries, ledger_version=3)
    second = summarize(target=100, entries=entries, ledger_version=3)

    assert first == second
    assert reverted_by_entry(entries) == reverted_by_entry(entries)
    assert [entry.amount for entry in entries] == [40, 35, -10]
