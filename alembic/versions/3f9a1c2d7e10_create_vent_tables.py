"""create vents, comments and sequence_counters tables

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f9a1c2d7e10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "vents",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False, comment="Chat id of the submitter."),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "state",
            sa.Enum("pending", "approved", "rejected", name="vent_state", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("public_number", sa.Integer(), nullable=True),
        sa.Column("channel_message_id", sa.BigInteger(), nullable=True),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("decided_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("decided_by", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("public_number"),
        sa.CheckConstraint(
            "(state = 'approved' AND public_number IS NOT NULL) OR "
            "(state <> 'approved' AND public_number IS NULL)",
            name="ck_vent_public_number_iff_approved",
        ),
        sa.CheckConstraint("comment_count >= 0", name="ck_vent_comment_count_non_negative"),
    )
    op.create_index("idx_vent_state_created_at", "vents", ["state", "created_at"])

    op.create_table(
        "comments",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("vent_id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["vent_id"], ["vents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_comment_vent_id_created_at", "comments", ["vent_id", "created_at"])

    op.create_table(
        "sequence_counters",
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("next_value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("sequence_counters")
    op.drop_index("idx_comment_vent_id_created_at", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_vent_state_created_at", table_name="vents")
    op.drop_table("vents")
