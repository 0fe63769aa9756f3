"""QR code service for business logic."""

import io
import logging
import time
from collections.abc import Callable
from urllib.parse import urlsplit

from sqlalchemy.ext.asyncio import AsyncSession

from qrlanding.config import settings
from qrlanding.database.models import LogoShape, QRCode, RedirectType, User
from qrlanding.database.repositories import (ClientRepository, DomainRepository,
                                             QRCodeRepository)
from qrlanding.errors import (AuthorizationError, ConflictError, NotFoundError, RiskWarning,
                              ShortCodeRetryExhausted, StorageError, ValidationError)
from qrlanding.services.scannability import RiskAssessment, auto_adjust, validate_scannability
from qrlanding.services.short_code import ensure_unique
from qrlanding.services.storage import ALLOWED_LOGO_TYPES, StorageClient
from qrlanding.services.tenancy import TenantContext
from qrlanding.services.visual_config import (VisualConfiguration, VisualConfigurationPatch,
                                              apply_patch)
from qrlanding.utils.qr_generator import generate_qr_code

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "My QR Code"

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/svg+xml": "svg",
}


def check_http_url(url: str | None) -> str:
    """Return ``url`` if it is an absolute http(s) URL, else raise."""
    parts = urlsplit(url or "")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError("Invalid URL")
    return url  # type: ignore[return-value]


class QRCodeService:
    """Service for QR-code-related business logic."""

    def __init__(
        self,
        session: AsyncSession,
        storage_factory: Callable[[], StorageClient] = StorageClient,
    ) -> None:
        self.session = session
        self.storage_factory = storage_factory
        self.qr_repo = QRCodeRepository(session)
        self.client_repo = ClientRepository(session)
        self.domain_repo = DomainRepository(session)

    async def get_or_create_for_user(self, user: User) -> QRCode:
        """Return the user's QR code, creating it with a fresh short code."""
        user_id = user.id
        existing = await self.qr_repo.get_by_user(user_id)
        if existing:
            return existing

        client = await self.client_repo.find_or_create(user_id)
        client_id = client.id
        primary = await self.domain_repo.get_primary(client_id)
        domain_id = primary.id if primary else None

        # A candidate can still collide at insert time if another request
        # claimed it between the existence check and the commit.
        for _ in range(settings.short_code_max_attempts):
            short_code = await ensure_unique(
                self.qr_repo.short_code_exists,
                length=settings.short_code_length,
                max_attempts=settings.short_code_max_attempts,
            )
            try:
                qr_code = await self.qr_repo.create(
                    user_id=user_id,
                    short_code=short_code,
                    title=DEFAULT_TITLE,
                    client_id=client_id,
                    domain_id=domain_id,
                )
            except ConflictError:
                # Rolled back, so ORM instances are expired; use the plain ids
                existing = await self.qr_repo.get_by_user(user_id)
                if existing:
                    return existing
                logger.info(f"Short code {short_code} taken concurrently, retrying")
                continue

            logger.info(f"Created QR {qr_code.id} ({short_code}) for user {user_id}")
            return qr_code

        raise ShortCodeRetryExhausted(settings.short_code_max_attempts)

    async def get_owned(self, user: User, qr_code_id: int) -> QRCode:
        """Get a QR code, checking that ``user`` owns it."""
        qr_code = await self.qr_repo.get_by_id(qr_code_id)
        if not qr_code:
            raise NotFoundError("QR code not found")
        if qr_code.user_id != user.id:
            raise AuthorizationError("Forbidden")
        return qr_code

    async def scan_count(self, qr_code: QRCode) -> int:
        return await self.qr_repo.scan_count(qr_code.id)

    def assess(self, qr_code: QRCode) -> RiskAssessment:
        """Score the stored visual configuration."""
        return validate_scannability(VisualConfiguration.from_record(qr_code))

    def _check_risk(self, config: VisualConfiguration) -> RiskAssessment:
        assessment = validate_scannability(config)
        if settings.reject_critical_configs and not assessment.is_valid:
            raise RiskWarning("This QR code configuration will likely not scan", assessment)
        return assessment

    @staticmethod
    def _store_config(qr_code: QRCode, config: VisualConfiguration) -> None:
        qr_code.logo_size = config.logo_size_percent
        qr_code.corner_radius = config.corner_radius_level
        qr_code.module_color = config.module_color
        qr_code.background_color = config.background_color
        qr_code.error_correction = config.error_correction_level

    async def update_style(
        self, user: User, qr_code_id: int, patch: VisualConfigurationPatch
    ) -> tuple[QRCode, RiskAssessment]:
        """Apply a partial visual update and return the new risk assessment."""
        qr_code = await self.get_owned(user, qr_code_id)
        config = apply_patch(VisualConfiguration.from_record(qr_code), patch)
        assessment = self._check_risk(config)

        self._store_config(qr_code, config)
        qr_code = await self.qr_repo.save(qr_code)
        logger.info(
            f"Updated style of QR {qr_code.id}: {patch.changes()} (risk={assessment.risk_level.value})"
        )
        return qr_code, assessment

    async def update_logo(
        self,
        user: User,
        qr_code_id: int,
        logo_url: str | None,
        logo_size: float | None = None,
        logo_shape: LogoShape | None = None,
    ) -> tuple[QRCode, RiskAssessment]:
        """Point the QR code at a logo and set its size and shape."""
        qr_code = await self.get_owned(user, qr_code_id)
        if logo_url is not None:
            check_http_url(logo_url)

        config = apply_patch(
            VisualConfiguration.from_record(qr_code),
            VisualConfigurationPatch(logo_size_percent=logo_size),
        )
        assessment = self._check_risk(config)

        old_url = qr_code.logo_url
        qr_code.logo_url = logo_url
        self._store_config(qr_code, config)
        if logo_shape is not None:
            qr_code.logo_shape = logo_shape
        qr_code = await self.qr_repo.save(qr_code)

        if old_url and old_url != logo_url:
            async with self.storage_factory() as storage:
                await self._discard_logo(storage, old_url, qr_code.id)
        return qr_code, assessment

    async def upload_logo(
        self,
        user: User,
        qr_code_id: int,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> QRCode:
        """Store a new logo object and swap it in.

        The new object is uploaded before anything else changes, so a failed
        upload leaves the previous logo in place. The old object is removed
        last and only on a best-effort basis.
        """
        qr_code = await self.get_owned(user, qr_code_id)

        if not data:
            raise ValidationError("No file provided")
        if content_type not in ALLOWED_LOGO_TYPES:
            raise ValidationError("Invalid file type")
        if len(data) > settings.logo_max_bytes:
            raise ValidationError("File too large")

        # The object name is built only from trusted parts.
        ext = _EXTENSIONS[content_type]
        path = f"{user.auth_id}/{int(time.time() * 1000)}.{ext}"
        old_url = qr_code.logo_url

        async with self.storage_factory() as storage:
            new_url = await storage.upload(path, data, content_type)

            qr_code.logo_url = new_url
            try:
                qr_code = await self.qr_repo.save(qr_code)
            except Exception:
                await self.session.rollback()
                await storage.remove(path)
                raise

            if storage.path_from_public_url(old_url) != path:
                await self._discard_logo(storage, old_url, qr_code.id)

        logger.info(f"Uploaded logo {filename!r} for QR {qr_code.id} as {path} ({len(data)} bytes)")
        return qr_code

    async def remove_logo(self, user: User, qr_code_id: int) -> QRCode:
        """Detach the logo and delete its stored object."""
        qr_code = await self.get_owned(user, qr_code_id)
        old_url = qr_code.logo_url
        qr_code.logo_url = None
        qr_code = await self.qr_repo.save(qr_code)

        if old_url:
            async with self.storage_factory() as storage:
                await self._discard_logo(storage, old_url, qr_code.id)
        return qr_code

    @staticmethod
    async def _discard_logo(storage: StorageClient, old_url: str | None, qr_code_id: int) -> None:
        """Best-effort removal of a logo object this service stored earlier."""
        old_path = storage.path_from_public_url(old_url)
        if not old_path:
            return
        try:
            removed = await storage.remove(old_path)
        except StorageError as e:
            logger.warning(f"Could not remove old logo {old_path}: {e}")
            removed = False
        if not removed:
            logger.warning(f"Old logo {old_path} left in storage for QR {qr_code_id}")

    async def update_destination(
        self,
        user: User,
        qr_code_id: int,
        redirect_type: RedirectType,
        redirect_url: str | None = None,
    ) -> QRCode:
        """Choose between the link page and a custom redirect URL."""
        qr_code = await self.get_owned(user, qr_code_id)
        if redirect_type is RedirectType.URL:
            if not redirect_url:
                raise ValidationError("redirect_url is required for url redirects")
            check_http_url(redirect_url)
        else:
            redirect_url = None

        qr_code.redirect_type = redirect_type
        qr_code.redirect_url = redirect_url
        return await self.qr_repo.save(qr_code)

    async def replace_links(
        self, user: User, qr_code_id: int, links: list[tuple[str, str]]
    ) -> QRCode:
        """Replace the link page entries."""
        qr_code = await self.get_owned(user, qr_code_id)
        for title, url in links:
            if not title.strip():
                raise ValidationError("Link title is required")
            check_http_url(url)
        return await self.qr_repo.replace_links(qr_code, links)

    async def auto_adjust(self, user: User, qr_code_id: int) -> tuple[QRCode, RiskAssessment]:
        """Persist the safe version of the stored configuration."""
        qr_code = await self.get_owned(user, qr_code_id)
        current = VisualConfiguration.from_record(qr_code)
        adjusted = auto_adjust(current)

        if adjusted != current:
            self._store_config(qr_code, adjusted)
            qr_code = await self.qr_repo.save(qr_code)
            logger.info(f"Auto-adjusted QR {qr_code.id}: {current} -> {adjusted}")
        return qr_code, validate_scannability(adjusted)

    async def encoded_url(self, qr_code: QRCode) -> str:
        """The URL a scanner reads, on the tenant's current primary domain."""
        domain = None
        if qr_code.client_id:
            domain = await self.domain_repo.get_primary(qr_code.client_id)
        if domain is None and qr_code.domain_id:
            domain = await self.domain_repo.get_by_id(qr_code.domain_id)

        if domain is not None:
            base = f"{settings.public_scheme}://{domain.hostname}"
        else:
            base = settings.app_base_url.rstrip("/")
        return f"{base}/q/{qr_code.short_code}"

    async def render_png(self, user: User, qr_code_id: int, size: int = 1024) -> io.BytesIO:
        """Render the QR code exactly as configured."""
        qr_code = await self.get_owned(user, qr_code_id)
        url = await self.encoded_url(qr_code)

        logo = None
        if qr_code.logo_url:
            try:
                async with self.storage_factory() as storage:
                    logo = await storage.download(qr_code.logo_url)
            except StorageError as e:
                logger.warning(f"Rendering QR {qr_code.id} without logo: {e}")

        config = VisualConfiguration.from_record(qr_code)
        try:
            return generate_qr_code(
                url, config=config, logo=logo, logo_shape=qr_code.logo_shape, size=size
            )
        except ValidationError as e:
            if logo is None:
                raise
            # e.g. SVG logos, which Pillow cannot rasterize
            logger.warning(f"Rendering QR {qr_code.id} without logo: {e}")
            return generate_qr_code(url, config=config, size=size)

    async def get_public(self, short_code: str, tenant: TenantContext) -> QRCode:
        """Look up an active QR code for a public visit."""
        qr_code = await self.qr_repo.get_by_short_code(short_code, active_only=True)
        if not qr_code:
            raise NotFoundError("QR code not found")
        if (
            tenant.client_id is not None
            and qr_code.client_id is not None
            and qr_code.client_id != tenant.client_id
        ):
            # Short code belongs to another tenant's domain
            raise NotFoundError("QR code not found")
        return qr_code
