"""Release / reversal use-cases over the per-plan signed ledger.

Each write runs in a single transaction that starts by locking the plan row,
so concurrent releases against the same plan are serialized and the pending
quantity checked below is the one the new row is appended to.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable
from uuid import UUID, uuid4

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..database import commit_or_500
from ..domain_errors import DomainError, ValidationError
from ..models import AuditEvent, ReleaseEntry, User, WorkPlan
from ..schemas import LedgerWriteResult, ReleaseCreate, ReleaseEntryOut, ReversalCreate, WorkPlanOut
from ..security import lock_org_entity, require_org_entity
from ..services.release_ledger import (
    LedgerSummary,
    ensure_actor_present,
    ensure_expected_version,
    ensure_positive_amount,
    ensure_release_within_pending,
    ensure_reversal_target_is_release,
    ensure_reversal_within_remainder,
    is_reversal,
    now_utc,
    reversible_remainder,
    reverted_by_entry,
    summarize,
)

logger = logging.getLogger(__name__)


def load_plan_entries(db: Session, plan: WorkPlan) -> list[ReleaseEntry]:
    return (
        db.query(ReleaseEntry)
        .filter(
            ReleaseEntry.plan_id == plan.id,
            ReleaseEntry.org_id == plan.org_id,
        )
        .order_by(ReleaseEntry.created_at.asc(), ReleaseEntry.id.asc())
        .all()
    )


@dataclass(frozen=True)
class LedgerUseCaseHooks:
    """Data-access seams used by ledger use-cases (overridden in tests)."""

    lock_plan: Callable[..., WorkPlan] = lock_org_entity
    resolve_org_entity: Callable[..., object] = require_org_entity
    load_plan_entries: Callable[[Session, WorkPlan], list[ReleaseEntry]] = load_plan_entries
    now_utc: Callable[[], datetime] = now_utc


DEFAULT_LEDGER_HOOKS = LedgerUseCaseHooks()


def plan_out(plan: WorkPlan, summary: LedgerSummary) -> WorkPlanOut:
    base = WorkPlanOut.model_validate(plan)
    return base.model_copy(
        update={
            "released": summary.released,
            "pending": summary.pending,
            "ledger_version": summary.ledger_version,
        }
    )


def entry_out(entry: ReleaseEntry, reverted: dict[UUID, int]) -> ReleaseEntryOut:
    already_reverted = reverted.get(entry.id, 0)
    base = ReleaseEntryOut.model_validate(entry)
    return base.model_copy(
        update={
            "is_reversal": is_reversal(entry),
            "reverted": 0 if is_reversal(entry) else already_reverted,
            "reversible": reversible_remainder(entry, already_reverted=already_reverted),
        }
    )


def entries_out(entries: Iterable[ReleaseEntry]) -> list[ReleaseEntryOut]:
    rows = list(entries)
    reverted = reverted_by_entry(rows)
    return [entry_out(entry, reverted) for entry in rows]


def _lock_plan(*, db: Session, plan_id: UUID, current_user: User, hooks: LedgerUseCaseHooks) -> WorkPlan:
    try:
        return hooks.lock_plan(
            db,
            WorkPlan,
            entity_id=plan_id,
            org_id=current_user.org_id,
            not_found="Plan not found",
        )
    except HTTPException as exc:
        raise DomainError(
            code="PLAN_NOT_FOUND",
            http_status=int(exc.status_code or 404),
            message="Plan not found",
        ) from exc


def _check_version(*, plan: WorkPlan, expected: int | None) -> None:
    try:
        ensure_expected_version(expected=expected, current=plan.ledger_version)
    except ValueError as error:
        raise DomainError(
            code="PLAN_VERSION_CONFLICT",
            http_status=409,
            message=str(error),
            details={"current_version": int(plan.ledger_version or 0)},
        ) from error


def _append_entry(
    *,
    db: Session,
    plan: WorkPlan,
    amount: int,
    actor: str,
    current_user: User,
    at: datetime,
    reversal_of_id: UUID | None = None,
) -> ReleaseEntry:
    entry = ReleaseEntry(
        id=uuid4(),
        org_id=plan.org_id,
        plan_id=plan.id,
        amount=amount,
        actor=actor,
        reversal_of_id=reversal_of_id,
        created_by=current_user.id,
        created_at=at,
    )
    db.add(entry)
    plan.ledger_version = int(plan.ledger_version or 0) + 1
    db.flush()
    return entry


def _audit(*, db: Session, action: str, entry: ReleaseEntry, plan: WorkPlan, current_user: User, details: dict) -> None:
    db.add(
        AuditEvent(
            org_id=plan.org_id,
            action=action,
            entity_type="release",
            entity_id=entry.id,
            entity_name=f"plan:{plan.producto}",
            user_id=current_user.id,
            user_name=current_user.initials,
            plan_id=plan.id,
            details=details,
        )
    )


def record_release_use_case(
    *,
    plan_id: UUID,
    data: ReleaseCreate,
    current_user: User,
    db: Session,
    hooks: LedgerUseCaseHooks = DEFAULT_LEDGER_HOOKS,
) -> LedgerWriteResult:
    plan = _lock_plan(db=db, plan_id=plan_id, current_user=current_user, hooks=hooks)
    _check_version(plan=plan, expected=data.expected_version)

    entries = hooks.load_plan_entries(db, plan)
    summary = summarize(target=plan.target_qty, entries=entries, ledger_version=plan.ledger_version)

    try:
        ensure_positive_amount(data.amount)
    except ValueError as error:
        raise ValidationError(code="RELEASE_INVALID_AMOUNT", http_status=422, message=str(error)) from error
    try:
        ensure_release_within_pending(amount=data.amount, pending=summary.pending)
    except ValueError as error:
        logger.info("Release rejected plan=%s amount=%s pending=%s", plan.id, data.amount, summary.pending)
        raise ValidationError(
            code="RELEASE_EXCEEDS_PENDING",
            http_status=409,
            message=str(error),
            details={"pending": summary.pending},
        ) from error
    try:
        actor = ensure_actor_present(data.actor)
    except ValueError as error:
        raise ValidationError(code="RELEASE_ACTOR_REQUIRED", http_status=422, message=str(error)) from error

    entry = _append_entry(
        db=db,
        plan=plan,
        amount=int(data.amount),
        actor=actor,
        current_user=current_user,
        at=hooks.now_utc(),
    )
    _audit(
        db=db,
        action="release_recorded",
        entry=entry,
        plan=plan,
        current_user=current_user,
        details={"amount": entry.amount, "actor": actor, "pending_before": summary.pending},
    )

    commit_or_500(db, action="record release")
    db.refresh(entry)

    rows = [*entries, entry]
    return LedgerWriteResult(
        entry=entry_out(entry, reverted_by_entry(rows)),
        plan=plan_out(plan, summarize(target=plan.target_qty, entries=rows, ledger_version=plan.ledger_version)),
    )


def record_reversal_use_case(
    *,
    entry_id: UUID,
    data: ReversalCreate,
    current_user: User,
    db: Session,
    hooks: LedgerUseCaseHooks = DEFAULT_LEDGER_HOOKS,
) -> LedgerWriteResult:
    try:
        target = hooks.resolve_org_entity(
            db,
            ReleaseEntry,
            entity_id=entry_id,
            org_id=current_user.org_id,
            not_found="Release not found",
        )
    except HTTPException as exc:
        raise DomainError(
            code="RELEASE_NOT_FOUND",
            http_status=int(exc.status_code or 404),
            message="Release not found",
        ) from exc

    plan = _lock_plan(db=db, plan_id=target.plan_id, current_user=current_user, hooks=hooks)
    _check_version(plan=plan, expected=data.expected_version)

    entries = hooks.load_plan_entries(db, plan)
    already_reverted = reverted_by_entry(entries).get(target.id, 0)

    try:
        ensure_positive_amount(data.amount)
    except ValueError as error:
        raise ValidationError(code="REVERSAL_INVALID_AMOUNT", http_status=422, message=str(error)) from error
    try:
        ensure_reversal_target_is_release(target)
    except ValueError as error:
        raise ValidationError(code="REVERSAL_OF_REVERSAL", http_status=409, message=str(error)) from error
    remainder = reversible_remainder(target, already_reverted=already_reverted)
    try:
        ensure_reversal_within_remainder(amount=data.amount, remainder=remainder)
    except ValueError as error:
        logger.info("Reversal rejected entry=%s amount=%s remainder=%s", target.id, data.amount, remainder)
        raise ValidationError(
            code="REVERSAL_EXCEEDS_REMAINDER",
            http_status=409,
            message=str(error),
            details={"reversible": remainder},
        ) from error
    try:
        actor = ensure_actor_present(data.actor)
    except ValueError as error:
        raise ValidationError(code="RELEASE_ACTOR_REQUIRED", http_status=422, message=str(error)) from error

    reversal = _append_entry(
        db=db,
        plan=plan,
        amount=-int(data.amount),
        actor=actor,
        current_user=current_user,
        at=hooks.now_utc(),
        reversal_of_id=target.id,
    )
    _audit(
        db=db,
        action="release_reverted",
        entry=reversal,
        plan=plan,
        current_user=current_user,
        details={
            "amount": int(data.amount),
            "actor": actor,
            "reversal_of_id": str(target.id),
            "reversible_before": remainder,
        },
    )

    commit_or_500(db, action="record reversal")
    db.refresh(reversal)

    rows = [*entries, reversal]
    return LedgerWriteResult(
        entry=entry_out(reversal, reverted_by_entry(rows)),
        plan=plan_out(plan, summarize(target=plan.target_qty, entries=rows, ledger_version=plan.ledger_version)),
    )
