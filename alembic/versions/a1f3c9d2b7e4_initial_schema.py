"""Initial schema: users, clients, domains, QR codes, links and scans.

Safe on databases where ``init_db`` already created the tables: existing
tables are left alone.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1f3c9d2b7e4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _existing_tables() -> set[str]:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return set(inspector.get_table_names())


def upgrade() -> None:
    """Upgrade schema."""
    tables = _existing_tables()

    if "users" not in tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("auth_id", sa.String(length=64), nullable=False),
            sa.Column("email", sa.String(length=320), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_users_auth_id", "users", ["auth_id"], unique=True)

    if "clients" not in tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("owner_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint("owner_user_id"),
        )

    if "domains" not in tables:
        op.create_table(
            "domains",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("hostname", sa.String(length=255), nullable=False),
            sa.Column(
                "type",
                sa.Enum("PLATFORM", "CUSTOM", name="domaintype"),
                nullable=False,
            ),
            sa.Column("verified", sa.Boolean(), nullable=False),
            sa.Column("is_primary", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_domains_client_id", "domains", ["client_id"])
        op.create_index("ix_domains_hostname", "domains", ["hostname"], unique=True)
        op.create_index(
            "uq_domains_primary_per_client",
            "domains",
            ["client_id"],
            unique=True,
            sqlite_where=sa.text("is_primary"),
            postgresql_where=sa.text("is_primary"),
        )

    if "qr_codes" not in tables:
        op.create_table(
            "qr_codes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=True),
            sa.Column("domain_id", sa.Integer(), sa.ForeignKey("domains.id", ondelete="SET NULL"), nullable=True),
            sa.Column("short_code", sa.String(length=16), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("redirect_type", sa.Enum("LINKS", "URL", name="redirecttype"), nullable=False),
            sa.Column("redirect_url", sa.Text(), nullable=True),
            sa.Column("logo_url", sa.Text(), nullable=True),
            sa.Column("logo_size", sa.Float(), nullable=False),
            sa.Column("logo_shape", sa.Enum("SQUARE", "CIRCLE", name="logoshape"), nullable=False),
            sa.Column("corner_radius", sa.Integer(), nullable=False),
            sa.Column("module_color", sa.String(length=7), nullable=False),
            sa.Column("background_color", sa.String(length=7), nullable=False),
            sa.Column("error_correction", sa.String(length=1), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint("user_id"),
        )
        op.create_index("ix_qr_codes_client_id", "qr_codes", ["client_id"])
        op.create_index("ix_qr_codes_short_code", "qr_codes", ["short_code"], unique=True)

    if "links" not in tables:
        op.create_table(
            "links",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("qr_code_id", sa.Integer(), sa.ForeignKey("qr_codes.id"), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("url", sa.Text(), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_links_qr_code_id", "links", ["qr_code_id"])

    if "scans" not in tables:
        op.create_table(
            "scans",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("qr_code_id", sa.Integer(), sa.ForeignKey("qr_codes.id"), nullable=False),
            sa.Column("user_agent", sa.Text(), nullable=True),
            sa.Column("ip_hash", sa.String(length=64), nullable=True),
            sa.Column("referer", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_scans_qr_code_id", "scans", ["qr_code_id"])


def downgrade() -> None:
    """Downgrade schema."""
    tables = _existing_tables()
    for table in ("scans", "links", "qr_codes", "domains", "clients", "users"):
        if table in tables:
            op.drop_table(table)
