"""talk schedule and attendance times

Revision ID: 0003_talk_schedule_and_times
Revises: 0002_talk_attendances
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "0003_talk_schedule_and_times"
down_revision = "0002_talk_attendances"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("talks", sa.Column("description", sa.Text(), nullable=True))
    op.add_column("talks", sa.Column("start_time", sa.DateTime(timezone=True), nullable=True))
    op.add_column("talks", sa.Column("end_time", sa.DateTime(timezone=True), nullable=True))

    op.add_column(
        "talk_attendances",
        sa.Column("entry_time", sa.DateTime(timezone=True), nullable=True),
    )
    op.add_column(
        "talk_attendances",
        sa.Column("exit_time", sa.DateTime(timezone=True), nullable=True),
    )
    op.add_column("talk_attendances", sa.Column("duration", sa.Integer(), nullable=True))


def downgrade() -> None:
    op.drop_column("talk_attendances", "duration")
    op.drop_column("talk_attendances", "exit_time")
    op.drop_column("talk_attendances", "entry_time")
    op.drop_column("talks", "end_time")
    op.drop_column("talks", "start_time")
    op.drop_column("talks", "description")
