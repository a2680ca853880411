"""Initial schema for contacts, groups and import configurations."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    user_role_enum = sa.Enum(
        "ROOT",
        "ADMIN",
        "USER",
        name="user_role_enum",
        native_enum=False,
    )
    client_status_enum = sa.Enum(
        "NEW",
        "OLD",
        name="client_status_enum",
        native_enum=False,
    )

    op.create_table(
        "users",
        sa.Column("user_id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False, unique=True),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "regions",
        sa.Column("region_id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "clients",
        sa.Column("client_id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("middle_name", sa.String(length=255), nullable=True),
        sa.Column(
            "region_id",
            sa.String(length=36),
            sa.ForeignKey("regions.region_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", client_status_enum, nullable=False, server_default="NEW"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("clients_user_idx", "clients", ["user_id"])
    op.create_index("clients_name_idx", "clients", ["last_name", "first_name"])
    op.create_index("clients_created_idx", "clients", ["created_at"])

    op.create_table(
        "client_phones",
        sa.Column("phone_id", sa.String(length=36), primary_key=True),
        sa.Column(
            "client_id",
            sa.String(length=36),
            sa.ForeignKey("clients.client_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("client_id", "phone", name="uq_client_phones_client_phone"),
    )
    op.create_index("client_phones_phone_idx", "client_phones", ["phone"])

    op.create_table(
        "client_groups",
        sa.Column("group_id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "client_group_members",
        sa.Column(
            "client_id",
            sa.String(length=36),
            sa.ForeignKey("clients.client_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "group_id",
            sa.String(length=36),
            sa.ForeignKey("client_groups.group_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "added_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "import_configs",
        sa.Column("config_id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "import_configs_user_default_idx",
        "import_configs",
        ["user_id", "is_default"],
    )


def downgrade() -> None:
    op.drop_index("import_configs_user_default_idx", table_name="import_configs")
    op.drop_table("import_configs")
    op.drop_table("client_group_members")
    op.drop_table("client_groups")
    op.drop_index("client_phones_phone_idx", table_name="client_phones")
    op.drop_table("client_phones")
    op.drop_index("clients_created_idx", table_name="clients")
    op.drop_index("clients_name_idx", table_name="clients")
    op.drop_index("clients_user_idx", table_name="clients")
    op.drop_table("clients")
    op.drop_table("regions")
    op.drop_table("users")
