"""Release ledger accounting over append-only signed entries.

Every release is a positive row, every reversal is a negative row pointing at
the release it undoes through ``reversal_of_id``. Aggregates are plain sums of
the ledger, so recomputing them from the same rows always gives the same
answer and no prior row is ever mutated.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Protocol
from uuid import UUID


class LedgerRow(Protocol):
    id: Any
    amount: int
    reversal_of_id: Any


@dataclass(frozen=True)
class LedgerSummary:
    target: int
    released: int
    entries_count: int = 0
    ledger_version: int = 0

    @property
    def pending(self) -> int:
        return int(self.target) - int(self.released)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_actor(actor: str | None) -> str:
    return (actor or "").strip()


def released_quantity(entries: Iterable[LedgerRow]) -> int:
    """Net released quantity: reversal rows are negative and cancel their release."""
    return sum(int(entry.amount or 0) for entry in entries)


def pending_quantity(target: int, entries: Iterable[LedgerRow]) -> int:
    return int(target) - released_quantity(entries)


def summarize(*, target: int, entries: Iterable[LedgerRow], ledger_version: int = 0) -> LedgerSummary:
    rows = list(entries)
    return LedgerSummary(
        target=int(target),
        released=released_quantity(rows),
        entries_count=len(rows),
        ledger_version=int(ledger_version or 0),
    )


def reverted_by_entry(entries: Iterable[LedgerRow]) -> dict[UUID, int]:
    """Magnitude already reverted against each release, keyed by release id."""
    reverted: dict[UUID, int] = defaultdict(int)
    for entry in entries:
        if entry.reversal_of_id is not None:
            reverted[entry.reversal_of_id] += abs(int(entry.amount or 0))
    return dict(reverted)


def reversible_remainder(entry: LedgerRow, *, already_reverted: int) -> int:
    if is_reversal(entry):
        return 0
    return max(int(entry.amount) - int(already_reverted), 0)


def is_reversal(entry: LedgerRow) -> bool:
    return entry.reversal_of_id is not None or int(entry.amount or 0) < 0


def ensure_positive_amount(amount: int) -> None:
    if amount is None or int(amount) <= 0:
        raise ValueError("Amount must be greater than 0")


def ensure_actor_present(actor: str | None) -> str:
    cleaned = normalize_actor(actor)
    if not cleaned:
        raise ValueError("Actor name is required")
    return cleaned


def ensure_release_within_pending(*, amount: int, pending: int) -> None:
    if int(amount) > int(pending):
        raise ValueError(f"Cannot release {amount}: only {pending} pending")


def ensure_reversal_target_is_release(entry: LedgerRow) -> None:
    if int(entry.amount or 0) <= 0 or entry.reversal_of_id is not None:
        raise ValueError("Cannot reverse a reversal")


def ensure_reversal_within_remainder(*, amount: int, remainder: int) -> None:
    if int(amount) > int(remainder):
        raise ValueError(f"Cannot reverse {amount}: only {remainder} left to reverse")


def ensure_expected_version(*, expected: int | None, current: int) -> None:
    if expected is None:
        return
    if int(expected) != int(current or 0):
        raise ValueError(f"Plan ledger changed (expected version {expected}, current {current})")
