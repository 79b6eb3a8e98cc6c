"""talk attendances

Revision ID: 0002_talk_attendances
Revises: 0001_init
Create Date: 2026-10-12 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "0002_talk_attendances"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "talks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("speaker", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "talk_attendances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "talk_id",
            sa.Integer(),
            sa.ForeignKey("talks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("talk_id", "email", name="uq_talk_attendances_talk_email"),
    )
    op.create_index(
        "ix_talk_attendances_talk_id", "talk_attendances", ["talk_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_talk_attendances_talk_id", table_name="talk_attendances")
    op.drop_table("talk_attendances")
    op.drop_table("talks")
