"""SQLAlchemy models."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Date, DateTime, Text,
    ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


class Organization(Base):
    """Organization model (multi-tenant support)."""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    users = relationship("User", back_populates="organization")


class User(Base):
    """User model."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    # Monotonically increasing version used to revoke previously issued tokens.
    token_version = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    initials = Column(String(50), nullable=False)
    role = Column(String(50), nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            role.in_(['admin', 'manager', 'inspector', 'operator']),
            name='chk_user_role'
        ),
    )

    # Relationships
    organization = relationship("Organization", back_populates="users")


class WorkPlan(Base):
    """Production batch with a target quantity (plan de trabajo)."""
    __tablename__ = "work_plans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    area = Column(String(50), nullable=False, index=True)
    target_qty = Column(Integer, nullable=False)
    producto = Column(String(255), nullable=False)
    color = Column(String(100), nullable=True)
    lf = Column(String(100), nullable=True)
    pt = Column(String(100), nullable=True)
    lp = Column(String(100), nullable=True)
    pedido = Column(String(100), nullable=True, index=True)
    cliente = Column(String(255), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    # Bumped on every ledger append; clients send it back as expected_version.
    ledger_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(target_qty >= 0, name='chk_work_plan_target_non_negative'),
        CheckConstraint(ledger_version >= 0, name='chk_work_plan_ledger_version'),
    )

    # Relationships
    entries = relationship(
        "ReleaseEntry",
        back_populates="plan",
        order_by="ReleaseEntry.created_at",
    )


class ReleaseEntry(Base):
    """Append-only signed ledger row: positive release or negative reversal."""
    __tablename__ = "release_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("work_plans.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    actor = Column(String(255), nullable=False)
    reversal_of_id = Column(UUID(as_uuid=True), ForeignKey("release_entries.id"), nullable=True, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(amount != 0, name='chk_release_amount_non_zero'),
        CheckConstraint(
            "(amount > 0 AND reversal_of_id IS NULL) OR (amount < 0 AND reversal_of_id IS NOT NULL)",
            name='chk_release_reversal_sign',
        ),
        Index('idx_release_entries_plan_created', 'plan_id', 'created_at'),
    )

    # Relationships
    plan = relationship("WorkPlan", back_populates="entries")
    reversal_of = relationship("ReleaseEntry", remote_side=[id])


class DefectReport(Base):
    """Logged quality defect."""
    __tablename__ = "defect_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    fecha = Column(Date, nullable=False, index=True)
    area = Column(String(50), nullable=False, index=True)
    producto = Column(String(255), nullable=False)
    color = Column(String(100), nullable=True)
    lf = Column(String(100), nullable=True)
    pt = Column(String(100), nullable=True)
    lp = Column(String(100), nullable=True)
    pedido = Column(String(100), nullable=True, index=True)
    cliente = Column(String(255), nullable=True)
    defect_tags = Column(JSONB, nullable=False, default=list)
    descripcion = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    photos = relationship(
        "DefectPhoto",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="DefectPhoto.created_at",
    )


class DefectPhoto(Base):
    """Uploaded photo attached to a defect report."""
    __tablename__ = "defect_photos"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    report_id = Column(
        UUID(as_uuid=True),
        ForeignKey("defect_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = Column(Text, nullable=False)
    original_name = Column(String(255), nullable=True)
    size = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    report = relationship("DefectReport", back_populates="photos")


class AuditEvent(Base):
    """Audit event model."""
    __tablename__ = "audit_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), index=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    entity_name = Column(String(255), nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String(100), nullable=True)
    details = Column(JSONB, default=dict)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("work_plans.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(
            action.in_([
                'plan_created', 'release_recorded', 'release_reverted',
                'defect_reported', 'defect_photo_added', 'defects_bulk_deleted',
                'user_login', 'user_logout', 'LOGIN_FAILED',
            ]),
            name='chk_audit_action'
        ),
        CheckConstraint(
            entity_type.in_(['plan', 'release', 'defect', 'user']),
            name='chk_audit_entity_type'
        ),
        Index('idx_audit_events_entity', 'entity_type', 'entity_id'),
    )
