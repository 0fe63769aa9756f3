"""SQLAlchemy models for the QR landing service."""

import enum
from datetime import datetime

from sqlalchemy import (Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer,
                        String, Text, func, text)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class DomainType(enum.Enum):
    """Where a hostname comes from."""

    PLATFORM = "platform"
    CUSTOM = "custom"


class RedirectType(enum.Enum):
    """What a scan lands on."""

    LINKS = "links"
    URL = "url"


class LogoShape(enum.Enum):
    """Shape of the area cleared for the logo."""

    SQUARE = "square"
    CIRCLE = "circle"


class User(Base):
    """Account known to the external auth provider."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    auth_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    client: Mapped["Client | None"] = relationship(back_populates="owner")
    qr_codes: Mapped[list["QRCode"]] = relationship(back_populates="user")


class Client(Base):
    """Tenant that owns domains and QR codes."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True)
    name: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="client")
    domains: Mapped[list["Domain"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )
    qr_codes: Mapped[list["QRCode"]] = relationship(back_populates="client")


class Domain(Base):
    """Hostname under which a client's QR codes are served."""

    __tablename__ = "domains"
    __table_args__ = (
        # At most one primary domain per client
        Index(
            "uq_domains_primary_per_client",
            "client_id",
            unique=True,
            sqlite_where=text("is_primary"),
            postgresql_where=text("is_primary"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), index=True)
    hostname: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    type: Mapped[DomainType] = mapped_column(Enum(DomainType), default=DomainType.CUSTOM)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="domains")


class QRCode(Base):
    """A short code plus the visual settings used to render it."""

    __tablename__ = "qr_codes"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True)
    client_id: Mapped[int | None] = mapped_column(ForeignKey("clients.id"), index=True)
    domain_id: Mapped[int | None] = mapped_column(ForeignKey("domains.id", ondelete="SET NULL"))
    short_code: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    title: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    redirect_type: Mapped[RedirectType] = mapped_column(
        Enum(RedirectType), default=RedirectType.LINKS
    )
    redirect_url: Mapped[str | None] = mapped_column(Text)

    logo_url: Mapped[str | None] = mapped_column(Text)
    logo_size: Mapped[float] = mapped_column(Float, default=30)
    logo_shape: Mapped[LogoShape] = mapped_column(Enum(LogoShape), default=LogoShape.SQUARE)
    corner_radius: Mapped[int] = mapped_column(Integer, default=0)
    module_color: Mapped[str] = mapped_column(String(7), default="#000000")
    background_color: Mapped[str] = mapped_column(String(7), default="#ffffff")
    error_correction: Mapped[str] = mapped_column(String(1), default="H")

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="qr_codes")
    client: Mapped["Client | None"] = relationship(back_populates="qr_codes")
    domain: Mapped["Domain | None"] = relationship()
    links: Mapped[list["Link"]] = relationship(
        back_populates="qr_code",
        cascade="all, delete-orphan",
        order_by="Link.position",
        lazy="selectin",
    )
    scans: Mapped[list["Scan"]] = relationship(
        back_populates="qr_code", cascade="all, delete-orphan"
    )

    @property
    def active_links(self) -> list["Link"]:
        """Links shown on the public page, in display order."""
        return [link for link in self.links if link.is_active]


class Link(Base):
    """Entry on a link-in-bio page."""

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True)
    qr_code_id: Mapped[int] = mapped_column(ForeignKey("qr_codes.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    url: Mapped[str] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    qr_code: Mapped["QRCode"] = relationship(back_populates="links")


class Scan(Base):
    """A single recorded visit of a short code."""

    __tablename__ = "scans"

    id: Mapped[int] = mapped_column(primary_key=True)
    qr_code_id: Mapped[int] = mapped_column(ForeignKey("qr_codes.id"), index=True)
    user_agent: Mapped[str | None] = mapped_column(Text)
    ip_hash: Mapped[str | None] = mapped_column(String(64))
    referer: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    qr_code: Mapped["QRCode"] = relationship(back_populates="scans")
