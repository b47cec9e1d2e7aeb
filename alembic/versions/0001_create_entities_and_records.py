"""create_entities_and_records

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONDocument = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "entities",
        sa.Column("id", sa.String(length=36), nullable=False, comment="Entity ID (UUID)"),
        sa.Column(
            "name",
            sa.String(length=255),
            nullable=False,
            comment="Entity name (unique)",
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "fields",
            JSONDocument,
            nullable=False,
            comment="Field definitions keyed by field key",
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_entities_name"), "entities", ["name"], unique=False)

    op.create_table(
        "records",
        sa.Column("id", sa.String(length=36), nullable=False, comment="Record ID (UUID)"),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("field_values", JSONDocument, nullable=False),
        sa.Column("metadata", JSONDocument, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["entity_id"], ["entities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_records_entity_id_created_at",
        "records",
        ["entity_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_records_entity_id_created_at", table_name="records")
    op.drop_table("records")
    op.drop_index(op.f("ix_entities_name"), table_name="entities")
    op.drop_table("entities")
