from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrraffle.app.db.base import Base
from qrraffle.app.models.enums import RaffleStatus

if TYPE_CHECKING:
    from qrraffle.app.models.draw_history import DrawHistory
    from qrraffle.app.models.participant import Participant


class Raffle(Base):
    __tablename__ = "raffles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    prize: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[RaffleStatus] = mapped_column(
        Enum(RaffleStatus, name="raffle_status"),
        nullable=False,
        default=RaffleStatus.active,
    )
    winner_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey(
            "participants.id",
            name="fk_raffles_winner_id",
            use_alter=True,
            ondelete="SET NULL",
        ),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    timebox_minutes: Mapped[int | None] = mapped_column(Integer)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    require_confirmation: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    allowed_domain: Mapped[str | None] = mapped_column(Text)

    participants: Mapped[list[Participant]] = relationship(
        foreign_keys="Participant.raffle_id",
        back_populates="raffle",
        order_by="Participant.created_at.desc()",
        passive_deletes=True,
    )
    winner: Mapped[Participant | None] = relationship(
        foreign_keys=[winner_id], post_update=True
    )
    draw_history: Mapped[list[DrawHistory]] = relationship(
        back_populates="raffle",
        order_by="DrawHistory.draw_number",
        passive_deletes=True,
    )


Index("ix_raffles_status", Raffle.status)
Index("ix_raffles_created_at", Raffle.created_at)
