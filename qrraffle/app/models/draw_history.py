from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrraffle.app.db.base import Base

if TYPE_CHECKING:
    from qrraffle.app.models.participant import Participant
    from qrraffle.app.models.raffle import Raffle


class DrawHistory(Base):
    __tablename__ = "draw_history"
    __table_args__ = (
        UniqueConstraint("raffle_id", "draw_number", name="uq_draw_history_raffle_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    raffle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False
    )
    draw_number: Mapped[int] = mapped_column(Integer, nullable=False)
    participant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    was_present: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    drawn_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    raffle: Mapped[Raffle] = relationship(back_populates="draw_history")
    participant: Mapped[Participant] = relationship()


Index("ix_draw_history_raffle_id", DrawHistory.raffle_id)
