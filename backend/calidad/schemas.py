"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date, datetime
from uuid import UUID


# User / auth schemas
class UserResponse(BaseModel):
    id: UUID
    username: str
    name: str
    initials: str
    role: str
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class AuthUserResponse(UserResponse):
    permissions: dict[str, bool]


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AuthUserResponse


# Work plan schemas
class ProductAttributes(BaseModel):
    producto: str = Field(min_length=1, max_length=255)
    color: Optional[str] = Field(default=None, max_length=100)
    lf: Optional[str] = Field(default=None, max_length=100)
    pt: Optional[str] = Field(default=None, max_length=100)
    lp: Optional[str] = Field(default=None, max_length=100)
    pedido: Optional[str] = Field(default=None, max_length=100)
    cliente: Optional[str] = Field(default=None, max_length=255)


class WorkPlanCreate(ProductAttributes):
    area: str
    target_qty: int = Field(ge=0)


class WorkPlanOut(BaseModel):
    id: UUID
    area: str
    target_qty: int
    producto: str
    color: Optional[str] = None
    lf: Optional[str] = None
    pt: Optional[str] = None
    lp: Optional[str] = None
    pedido: Optional[str] = None
    cliente: Optional[str] = None
    created_at: Optional[datetime] = None
    ledger_version: int = 0
    released: int = 0
    pending: int = 0
    model_config = ConfigDict(from_attributes=True)


class ReleaseCreate(BaseModel):
    amount: int
    actor: str = ""
    # Optimistic check against WorkPlanOut.ledger_version; omitted means "don't check".
    expected_version: Optional[int] = Field(default=None, ge=0)


class ReversalCreate(BaseModel):
    amount: int
    actor: str = ""
    expected_version: Optional[int] = Field(default=None, ge=0)


class ReleaseEntryOut(BaseModel):
    id: UUID
    plan_id: UUID
    amount: int
    actor: str
    reversal_of_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    is_reversal: bool = False
    reverted: int = 0
    reversible: int = 0
    model_config = ConfigDict(from_attributes=True)


class LedgerWriteResult(BaseModel):
    entry: ReleaseEntryOut
    plan: WorkPlanOut


class WorkPlanDetail(BaseModel):
    plan: WorkPlanOut
    entries: list[ReleaseEntryOut]


# Defect schemas
class DefectReportCreate(BaseModel):
    fecha: Optional[date] = None
    area: str = ""
    producto: str = ""
    color: Optional[str] = None
    lf: Optional[str] = None
    pt: Optional[str] = None
    lp: Optional[str] = None
    pedido: Optional[str] = None
    cliente: Optional[str] = None
    defect_tags: list[str] = Field(default_factory=list)
    descripcion: Optional[str] = None


class DefectPhotoOut(BaseModel):
    id: UUID
    report_id: UUID
    url: str
    original_name: Optional[str] = None
    size: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DefectReportOut(BaseModel):
    id: UUID
    fecha: date
    area: str
    producto: str
    color: Optional[str] = None
    lf: Optional[str] = None
    pt: Optional[str] = None
    lp: Optional[str] = None
    pedido: Optional[str] = None
    cliente: Optional[str] = None
    defect_tags: list[str]
    descripcion: Optional[str] = None
    created_at: Optional[datetime] = None
    photos: list[DefectPhotoOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class FailedPhoto(BaseModel):
    name: str
    reason: str


class DefectIntakeResult(BaseModel):
    report: DefectReportOut
    failed_photos: list[FailedPhoto] = Field(default_factory=list)


class BulkDeleteResult(BaseModel):
    reports_deleted: int
    photos_deleted: int
    files_deleted: int


class DefectVocabularyOut(BaseModel):
    area: str
    defects: list[str]


# Dashboard schemas
class AreaStatOut(BaseModel):
    area: str
    count: int
    percentage: float
    color: str


class DefectStatOut(BaseModel):
    defect: str
    label: str
    count: int
    percentage: float


class DashboardOut(BaseModel):
    total: int
    start: Optional[date] = None
    end: Optional[date] = None
    by_area: list[AreaStatOut]
    top_defects: list[DefectStatOut]


# Audit schemas
class AuditEventOut(BaseModel):
    id: UUID
    action: str
    entity_type: str
    entity_id: UUID
    entity_name: Optional[str] = None
    user_id: Optional[UUID] = None
    user_name: Optional[str] = None
    plan_id: Optional[UUID] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
