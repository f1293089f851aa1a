"""create routes, participants, confirmations and message templates

Revision ID: 4f2a9c1e7b10
Revises:
Create Date: 2025-10-20 09:12:41.118203

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TEMPLATE_TYPES = ("invite", "confirm_ack", "decline_ack", "event_info")


def upgrade() -> None:
    """Esquema inicial del flujo de convites."""
    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=True),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_routes_id", "routes", ["id"])
    op.create_index("ix_routes_code", "routes", ["code"], unique=True)
    op.create_index("ix_routes_participant_id", "routes", ["participant_id"])

    op.create_table(
        "participants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("gender", sa.String(length=50), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("national_id", sa.String(length=14), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("neighborhood", sa.String(length=100), nullable=True),
        sa.Column("retired", sa.String(length=10), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("extension_project", sa.String(length=255), nullable=True),
        sa.Column("other_project", sa.Text(), nullable=True),
        sa.Column("data_consent", sa.String(length=10), nullable=True),
        sa.Column("difficulties", sa.Text(), nullable=True),
        sa.Column("imported_on", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("imported_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_participants_id", "participants", ["id"])
    op.create_index("ix_participants_national_id", "participants", ["national_id"])
    op.create_index("ix_participants_phone", "participants", ["phone"])

    op.create_table(
        "confirmations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("route_code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("webhook_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_confirmations_id", "confirmations", ["id"])
    op.create_index("ix_confirmations_route_code", "confirmations", ["route_code"])

    op.create_table(
        "message_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.Enum(*TEMPLATE_TYPES, name="templatetypeenum"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("variables", sa.JSON(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_message_templates_id", "message_templates", ["id"])
    op.create_index("ix_message_templates_type", "message_templates", ["type"])

    op.create_table(
        "template_revisions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "template_id", sa.Integer(),
            sa.ForeignKey("message_templates.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("previous_body", sa.Text(), nullable=False),
        sa.Column("new_body", sa.Text(), nullable=False),
        sa.Column("editor", sa.String(length=100), nullable=False, server_default="admin"),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_template_revisions_id", "template_revisions", ["id"])
    op.create_index("ix_template_revisions_template_id", "template_revisions", ["template_id"])


def downgrade() -> None:
    """Elimina todas las tablas (⚠️ borra los datos)."""
    op.drop_table("template_revisions")
    op.drop_table("message_templates")
    op.drop_table("confirmations")
    op.drop_table("participants")
    op.drop_table("routes")
    sa.Enum(name="templatetypeenum").drop(op.get_bind(), checkfirst=True)
