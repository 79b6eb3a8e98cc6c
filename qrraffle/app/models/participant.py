from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrraffle.app.db.base import Base

if TYPE_CHECKING:
    from qrraffle.app.models.raffle import Raffle


class Participant(Base):
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("raffle_id", "email", name="uq_participants_raffle_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    raffle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    pin_hash: Mapped[str | None] = mapped_column(Text)

    raffle: Mapped[Raffle] = relationship(
        foreign_keys=[raffle_id], back_populates="participants"
    )


Index("ix_participants_raffle_id", Participant.raffle_id)
