"""Main FastAPI application for the QR landing service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, Depends, FastAPI, File, Query, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.api.dependencies import (get_current_user, get_scan_service, get_storage_factory,
                                        get_tenant_context)
from qrlanding.api.errors import register_error_handlers
from qrlanding.api.schemas import (AutoAdjustResponse, CreateDomainRequest, DestinationRequest,
                                   DomainListResponse, DomainResponse, DomainSchema,
                                   GenericResponse, LinkSchema, LinksRequest, LogoUpdateRequest,
                                   PublicLinkPage, QRCodeResponse, QRCodeSchema,
                                   RiskAssessmentSchema, StorageInitResponse, StylePatchRequest,
                                   TenantSchema, VisualConfigurationSchema)
from qrlanding.config import settings
from qrlanding.database.models import QRCode, RedirectType, User
from qrlanding.database.session import get_session, init_db
from qrlanding.services import DomainService, QRCodeService, ScanService, StorageClient
from qrlanding.services.scannability import (SAFE_LIMITS, RiskAssessment, auto_adjust,
                                             validate_scannability)
from qrlanding.services.tenancy import TenantContext
from qrlanding.utils.hashing import client_ip
from qrlanding.utils.qr_generator import MAX_EXPORT_SIZE, MIN_EXPORT_SIZE

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    logger.info("Database initialized")
    yield


app = FastAPI(
    title="QR Landing API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


async def _qr_response(
    service: QRCodeService, qr_code: QRCode, assessment: RiskAssessment | None = None
) -> QRCodeResponse:
    url = await service.encoded_url(qr_code)
    scan_count = await service.scan_count(qr_code)
    return QRCodeResponse(
        qr_code=QRCodeSchema.from_model(qr_code, url=url, scan_count=scan_count),
        validation=RiskAssessmentSchema.from_assessment(assessment or service.assess(qr_code)),
    )


@app.get("/health", response_model=GenericResponse)
async def health() -> GenericResponse:
    return GenericResponse(success=True, message="ok")


# --- Scannability (stateless) ---


@app.get("/scannability/limits")
async def get_safe_limits() -> dict[str, dict[str, float]]:
    """Safe thresholds shared by validation and auto-adjust."""
    return {name: dict(limits) for name, limits in SAFE_LIMITS.items()}


@app.post("/scannability/validate", response_model=RiskAssessmentSchema)
async def validate_configuration(payload: VisualConfigurationSchema) -> RiskAssessmentSchema:
    """Score a visual configuration without saving it."""
    return RiskAssessmentSchema.from_assessment(validate_scannability(payload.to_config()))


@app.post("/scannability/auto-adjust", response_model=AutoAdjustResponse)
async def auto_adjust_configuration(payload: VisualConfigurationSchema) -> AutoAdjustResponse:
    """Return the nearest safe version of a configuration."""
    adjusted = auto_adjust(payload.to_config())
    return AutoAdjustResponse(
        configuration=VisualConfigurationSchema.from_config(adjusted),
        validation=RiskAssessmentSchema.from_assessment(validate_scannability(adjusted)),
    )


# --- QR codes ---


@app.post("/qr-codes", response_model=QRCodeResponse)
async def get_or_create_qr_code(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> QRCodeResponse:
    """Return the caller's QR code, creating it on first use."""
    service = QRCodeService(session)
    qr_code = await service.get_or_create_for_user(user)
    return await _qr_response(service, qr_code)


@app.get("/qr-codes/{qr_code_id}", response_model=QRCodeResponse)
async def get_qr_code(
    qr_code_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> QRCodeResponse:
    service = QRCodeService(session)
    qr_code = await service.get_owned(user, qr_code_id)
    return await _qr_response(service, qr_code)


@app.put("/qr-codes/{qr_code_id}/style", response_model=QRCodeResponse)
async def update_style(
    qr_code_id: int,
    payload: StylePatchRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> QRCodeResponse:
    """Change colors, corner rounding, logo size or error correction."""
    service = QRCodeService(session)
    qr_code, assessment = await service.update_style(user, qr_code_id, payload.to_patch())
    return await _qr_response(service, qr_code, assessment)


@app.post("/qr-codes/{qr_code_id}/auto-adjust", response_model=QRCodeResponse)
async def auto_adjust_qr_code(
    qr_code_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> QRCodeResponse:
    """Save the safe version of the QR code's current look."""
    service = QRCodeService(session)
    qr_code, assessment = await service.auto_adjust(user, qr_code_id)
    return await _qr_response(service, qr_code, assessment)


@app.put("/qr-codes/{qr_code_id}/logo", response_model=QRCodeResponse)
async def update_logo(
    qr_code_id: int,
    payload: LogoUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    storage_factory: type[StorageClient] = Depends(get_storage_factory),
) -> QRCodeResponse:
    service = QRCodeService(session, storage_factory)
    qr_code, assessment = await service.update_logo(
        user,
        qr_code_id,
        logo_url=payload.logo_url,
        logo_size=payload.logo_size,
        logo_shape=payload.logo_shape,
    )
    return await _qr_response(service, qr_code, assessment)


@app.post("/qr-codes/{qr_code_id}/logo/upload", response_model=QRCodeResponse)
async def upload_logo(
    qr_code_id: int,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    storage_factory: type[StorageClient] = Depends(get_storage_factory),
) -> QRCodeResponse:
    """Upload a logo image (PNG, JPEG or SVG, at most 2 MB)."""
    data = await file.read(settings.logo_max_bytes + 1)
    service = QRCodeService(session, storage_factory)
    qr_code = await service.upload_logo(
        user, qr_code_id, filename=file.filename, content_type=file.content_type, data=data
    )
    return await _qr_response(service, qr_code)


@app.delete("/qr-codes/{qr_code_id}/logo", response_model=QRCodeResponse)
async def delete_logo(
    qr_code_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    storage_factory: type[StorageClient] = Depends(get_storage_factory),
) -> QRCodeResponse:
    service = QRCodeService(session, storage_factory)
    qr_code = await service.remove_logo(user, qr_code_id)
    return await _qr_response(service, qr_code)


@app.put("/qr-codes/{qr_code_id}/destination", response_model=QRCodeResponse)
async def update_destination(
    qr_code_id: int,
    payload: DestinationRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> QRCodeResponse:
    """Send scans to the link page or straight to a custom URL."""
    service = QRCodeService(session)
    qr_code = await service.update_destination(
        user, qr_code_id, payload.redirect_type, payload.redirect_url
    )
    return await _qr_response(service, qr_code)


@app.put("/qr-codes/{qr_code_id}/links", response_model=QRCodeResponse)
async def replace_links(
    qr_code_id: int,
    payload: LinksRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> QRCodeResponse:
    service = QRCodeService(session)
    qr_code = await service.replace_links(
        user, qr_code_id, [(link.title, link.url) for link in payload.links]
    )
    return await _qr_response(service, qr_code)


@app.get("/qr-codes/{qr_code_id}/image.png")
async def export_png(
    qr_code_id: int,
    size: int = Query(1024, ge=MIN_EXPORT_SIZE, le=MAX_EXPORT_SIZE),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    storage_factory: type[StorageClient] = Depends(get_storage_factory),
) -> Response:
    """Render the QR code as a PNG."""
    service = QRCodeService(session, storage_factory)
    buffer = await service.render_png(user, qr_code_id, size=size)
    return Response(
        content=buffer.getvalue(),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="qr-code-{size}px.png"'},
    )


# --- Domains ---


@app.get("/domains", response_model=DomainListResponse)
async def list_domains(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DomainListResponse:
    domains = await DomainService(session).list_domains(user)
    return DomainListResponse(domains=[DomainSchema.from_model(d) for d in domains])


@app.post("/domains", response_model=DomainResponse)
async def add_domain(
    payload: CreateDomainRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DomainResponse:
    """Register a hostname; the first one becomes primary."""
    domain = await DomainService(session).add_domain(user, payload.hostname, payload.type)
    return DomainResponse(domain=DomainSchema.from_model(domain))


@app.patch("/domains/{domain_id}/primary", response_model=DomainResponse)
async def set_primary_domain(
    domain_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DomainResponse:
    domain = await DomainService(session).set_primary(user, domain_id)
    return DomainResponse(domain=DomainSchema.from_model(domain))


@app.delete("/domains/{domain_id}", response_model=GenericResponse)
async def delete_domain(
    domain_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> GenericResponse:
    await DomainService(session).remove_domain(user, domain_id)
    return GenericResponse(success=True, message="Domain removed")


@app.get("/tenant", response_model=TenantSchema)
async def get_tenant(tenant: TenantContext = Depends(get_tenant_context)) -> TenantSchema:
    """Which tenant the current Host header belongs to."""
    return TenantSchema(
        host=tenant.host,
        client_id=tenant.client_id,
        domain=DomainSchema.from_model(tenant.domain) if tenant.domain else None,
    )


@app.post("/storage/init", response_model=StorageInitResponse)
async def init_storage(
    user: User = Depends(get_current_user),
    storage_factory: type[StorageClient] = Depends(get_storage_factory),
) -> StorageInitResponse:
    """Create the logo bucket if it does not exist yet."""
    async with storage_factory() as storage:
        created = await storage.ensure_bucket()
        return StorageInitResponse(bucket=storage.bucket, created=created)


# --- Public ---


@app.get("/q/{short_code}")
async def scan_short_code(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
    scan_service: ScanService = Depends(get_scan_service),
) -> RedirectResponse:
    """Record a scan and send the visitor on."""
    qr_code = await QRCodeService(session).get_public(short_code, tenant)

    # Recorded after the response is sent; failures never reach the visitor
    background_tasks.add_task(
        scan_service.record_scan,
        qr_code.id,
        ip=client_ip(request.headers.get("x-forwarded-for"), request.headers.get("x-real-ip")),
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )

    if qr_code.redirect_type is RedirectType.URL and qr_code.redirect_url:
        return RedirectResponse(qr_code.redirect_url, status_code=307)
    return RedirectResponse(str(request.url_for("link_page", short_code=short_code)), status_code=307)


@app.get("/q/{short_code}/links", response_model=PublicLinkPage, name="link_page")
async def link_page(
    short_code: str,
    tenant: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session),
) -> PublicLinkPage:
    """Title and active links for the link-in-bio page."""
    qr_code = await QRCodeService(session).get_public(short_code, tenant)
    return PublicLinkPage(
        title=qr_code.title or "My Links",
        links=[LinkSchema.model_validate(link) for link in qr_code.active_links],
    )
