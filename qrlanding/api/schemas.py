"""Pydantic schemas for the API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from qrlanding.database.models import Domain, DomainType, LogoShape, QRCode, RedirectType
from qrlanding.services.scannability import RiskAssessment
from qrlanding.services.visual_config import VisualConfiguration, VisualConfigurationPatch

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"

ErrorCorrection = Literal["L", "M", "Q", "H"]


class VisualConfigurationSchema(BaseModel):
    """Full visual configuration; out-of-range values are rejected."""

    logo_size_percent: float = Field(30, ge=0, le=40)
    corner_radius_level: int = Field(0, ge=0, le=10)
    module_color: str = Field("#000000", pattern=HEX_COLOR)
    background_color: str = Field("#ffffff", pattern=HEX_COLOR)
    error_correction_level: ErrorCorrection = "H"

    def to_config(self) -> VisualConfiguration:
        return VisualConfiguration(**self.model_dump())

    @classmethod
    def from_config(cls, config: VisualConfiguration) -> "VisualConfigurationSchema":
        return cls(
            logo_size_percent=config.logo_size_percent,
            corner_radius_level=config.corner_radius_level,
            module_color=config.module_color,
            background_color=config.background_color,
            error_correction_level=config.error_correction_level,
        )


class StylePatchRequest(BaseModel):
    """Only the visual fields being changed."""

    logo_size_percent: float | None = Field(None, ge=0, le=40)
    corner_radius_level: int | None = Field(None, ge=0, le=10)
    module_color: str | None = Field(None, pattern=HEX_COLOR)
    background_color: str | None = Field(None, pattern=HEX_COLOR)
    error_correction_level: ErrorCorrection | None = None

    def to_patch(self) -> VisualConfigurationPatch:
        return VisualConfigurationPatch(**self.model_dump())


class RiskAssessmentSchema(BaseModel):
    """Scannability risk for a configuration."""

    is_valid: bool
    risk_level: Literal["low", "medium", "high", "critical"]
    warnings: list[str]
    suggestions: list[str]

    @classmethod
    def from_assessment(cls, assessment: RiskAssessment) -> "RiskAssessmentSchema":
        return cls(
            is_valid=assessment.is_valid,
            risk_level=assessment.risk_level.value,
            warnings=list(assessment.warnings),
            suggestions=list(assessment.suggestions),
        )


class AutoAdjustResponse(BaseModel):
    configuration: VisualConfigurationSchema
    validation: RiskAssessmentSchema


class LogoUpdateRequest(BaseModel):
    logo_url: str | None = None
    logo_size: float | None = Field(None, ge=0, le=40)
    logo_shape: LogoShape | None = None


class DestinationRequest(BaseModel):
    redirect_type: RedirectType
    redirect_url: str | None = None


class LinkInput(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    url: str


class LinksRequest(BaseModel):
    links: list[LinkInput] = []


class LinkSchema(BaseModel):
    """Entry on the public link page."""

    id: int
    title: str
    url: str
    position: int
    is_active: bool

    model_config = {"from_attributes": True}


class QRCodeSchema(BaseModel):
    """QR code as seen by its owner."""

    id: int
    short_code: str
    title: str | None
    is_active: bool
    url: str
    redirect_type: RedirectType
    redirect_url: str | None
    logo_url: str | None
    logo_size: float
    logo_shape: LogoShape
    corner_radius: int
    module_color: str
    background_color: str
    error_correction: str
    links: list[LinkSchema]
    scan_count: int

    @classmethod
    def from_model(cls, qr_code: QRCode, url: str, scan_count: int) -> "QRCodeSchema":
        return cls(
            id=qr_code.id,
            short_code=qr_code.short_code,
            title=qr_code.title,
            is_active=qr_code.is_active,
            url=url,
            redirect_type=qr_code.redirect_type,
            redirect_url=qr_code.redirect_url,
            logo_url=qr_code.logo_url,
            logo_size=qr_code.logo_size,
            logo_shape=qr_code.logo_shape,
            corner_radius=qr_code.corner_radius,
            module_color=qr_code.module_color,
            background_color=qr_code.background_color,
            error_correction=qr_code.error_correction,
            links=[LinkSchema.model_validate(link) for link in qr_code.links],
            scan_count=scan_count,
        )


class QRCodeResponse(BaseModel):
    """QR code plus the risk assessment of its current look."""

    qr_code: QRCodeSchema
    validation: RiskAssessmentSchema


class PublicLinkPage(BaseModel):
    """Data for the public link-in-bio page."""

    title: str | None
    links: list[LinkSchema]


class DomainSchema(BaseModel):
    """Hostname registered by a client."""

    id: int
    hostname: str
    type: DomainType
    verified: bool
    primary: bool
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, domain: Domain) -> "DomainSchema":
        return cls(
            id=domain.id,
            hostname=domain.hostname,
            type=domain.type,
            verified=domain.verified,
            primary=domain.is_primary,
            created_at=domain.created_at,
        )


class CreateDomainRequest(BaseModel):
    hostname: str
    type: DomainType = DomainType.CUSTOM


class DomainListResponse(BaseModel):
    domains: list[DomainSchema]


class DomainResponse(BaseModel):
    domain: DomainSchema


class TenantSchema(BaseModel):
    """Tenant resolved from the request host."""

    host: str
    client_id: int | None
    domain: DomainSchema | None


class StorageInitResponse(BaseModel):
    bucket: str
    created: bool


class GenericResponse(BaseModel):
    success: bool
    message: str
