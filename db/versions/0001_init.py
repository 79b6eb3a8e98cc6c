"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-05 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    raffle_status = postgresql.ENUM(
        "active", "closed", "drawn", name="raffle_status", create_type=False
    )
    raffle_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "raffles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prize", sa.Text(), nullable=False),
        sa.Column("status", raffle_status, nullable=False),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timebox_minutes", sa.Integer(), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "require_confirmation",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("allowed_domain", sa.Text(), nullable=True),
    )
    op.create_index("ix_raffles_status", "raffles", ["status"], unique=False)
    op.create_index("ix_raffles_created_at", "raffles", ["created_at"], unique=False)

    op.create_table(
        "participants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column(
            "raffle_id",
            sa.Integer(),
            sa.ForeignKey("raffles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pin_hash", sa.Text(), nullable=True),
        sa.UniqueConstraint("raffle_id", "email", name="uq_participants_raffle_email"),
    )
    op.create_index("ix_participants_raffle_id", "participants", ["raffle_id"], unique=False)

    op.create_foreign_key(
        "fk_raffles_winner_id",
        "raffles",
        "participants",
        ["winner_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "draw_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "raffle_id",
            sa.Integer(),
            sa.ForeignKey("raffles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("draw_number", sa.Integer(), nullable=False),
        sa.Column(
            "participant_id",
            sa.Integer(),
            sa.ForeignKey("participants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("was_present", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("raffle_id", "draw_number", name="uq_draw_history_raffle_number"),
    )
    op.create_index("ix_draw_history_raffle_id", "draw_history", ["raffle_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_draw_history_raffle_id", table_name="draw_history")
    op.drop_table("draw_history")
    op.drop_constraint("fk_raffles_winner_id", "raffles", type_="foreignkey")
    op.drop_index("ix_participants_raffle_id", table_name="participants")
    op.drop_table("participants")
    op.drop_index("ix_raffles_created_at", table_name="raffles")
    op.drop_index("ix_raffles_status", table_name="raffles")
    op.drop_table("raffles")

    op.execute("DROP TYPE IF EXISTS raffle_status")
