import logging
import random
from datetime import timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from qrraffle.app.core.time import utcnow
from qrraffle.app.models.draw_history import DrawHistory
from qrraffle.app.models.enums import RaffleStatus
from qrraffle.app.models.participant import Participant
from qrraffle.app.models.raffle import Raffle
from qrraffle.app.services.errors import (
    InvalidRaffleInput,
    NoDrawYet,
    NoEligibleParticipants,
    RaffleAlreadyDrawn,
    RaffleAlreadyFinalized,
    RaffleNotActive,
    RaffleNotClosed,
    RaffleNotFinalized,
    RaffleNotFound,
)

logger = logging.getLogger(__name__)


async def get_raffle(session: AsyncSession, raffle_id: int) -> Raffle | None:
    """Load a raffle with participants, winner and draw history (ascending)."""
    result = await session.execute(
        select(Raffle)
        .where(Raffle.id == raffle_id)
        .options(
            selectinload(Raffle.participants),
            selectinload(Raffle.winner),
            selectinload(Raffle.draw_history).selectinload(DrawHistory.participant),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_raffle(session: AsyncSession, raffle_id: int) -> Raffle:
    raffle = await get_raffle(session, raffle_id)
    if not raffle:
        raise RaffleNotFound()
    return raffle


async def count_participants(session: AsyncSession, *, raffle_id: int) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Participant)
        .where(Participant.raffle_id == raffle_id)
    )
    return result.scalar_one()


async def list_raffles(session: AsyncSession) -> list[tuple[Raffle, int]]:
    participant_count = (
        select(func.count(Participant.id))
        .where(Participant.raffle_id == Raffle.id)
        .correlate(Raffle)
        .scalar_subquery()
    )
    result = await session.execute(
        select(Raffle, participant_count)
        .options(selectinload(Raffle.winner))
        .order_by(Raffle.created_at.desc(), Raffle.id.desc())
    )
    return [(raffle, count) for raffle, count in result.all()]


async def create_raffle(
    session: AsyncSession,
    *,
    name: str,
    prize: str,
    description: str | None = None,
    allowed_domain: str | None = None,
    timebox_minutes: int | None = None,
    require_confirmation: bool = False,
) -> Raffle:
    name = (name or "").strip()
    prize = (prize or "").strip()
    if not name or not prize:
        raise InvalidRaffleInput()

    now = utcnow()
    ends_at = None
    if timebox_minutes and timebox_minutes > 0:
        ends_at = now + timedelta(minutes=timebox_minutes)
    else:
        timebox_minutes = None

    raffle = Raffle(
        name=name,
        description=(description or "").strip() or None,
        prize=prize,
        status=RaffleStatus.active,
        created_at=now,
        timebox_minutes=timebox_minutes,
        ends_at=ends_at,
        require_confirmation=bool(require_confirmation),
        allowed_domain=(allowed_domain or "").strip().lstrip("@") or None,
    )
    session.add(raffle)
    await session.flush()
    logger.info("Raffle created raffle_id=%s", raffle.id)
    return raffle


async def close_raffle(session: AsyncSession, *, raffle_id: int) -> Raffle:
    raffle = await session.get(Raffle, raffle_id)
    if not raffle:
        raise RaffleNotFound()
    if raffle.status != RaffleStatus.active:
        raise RaffleNotActive()

    raffle.status = RaffleStatus.closed
    raffle.closed_at = utcnow()
    await session.flush()
    logger.info("Raffle closed raffle_id=%s", raffle_id)
    return raffle


async def reactivate_raffle(session: AsyncSession, *, raffle_id: int) -> Raffle:
    """Put a raffle that is not finalized back to active.

    A pending winner and the registration deadline are discarded. Draw history
    stays, so a winner who did not show up is not drawn again.
    """
    raffle = await session.get(Raffle, raffle_id, populate_existing=True)
    if not raffle:
        raise RaffleNotFound()
    if raffle.status == RaffleStatus.drawn:
        raise RaffleAlreadyFinalized()

    result = await session.execute(
        update(Raffle)
        .where(Raffle.id == raffle_id, Raffle.status != RaffleStatus.drawn)
        .values(status=RaffleStatus.active, winner_id=None, ends_at=None, closed_at=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RaffleAlreadyFinalized()

    updated = await require_raffle(session, raffle_id)
    logger.info("Raffle reactivated raffle_id=%s", raffle_id)
    return updated


async def delete_raffle(session: AsyncSession, *, raffle_id: int) -> None:
    raffle = await session.get(Raffle, raffle_id)
    if not raffle:
        raise RaffleNotFound()

    # winner_id points back at participants, clear it before removing them
    await session.execute(
        update(Raffle)
        .where(Raffle.id == raffle_id)
        .values(winner_id=None)
        .execution_options(synchronize_session=False)
    )
    await session.execute(delete(DrawHistory).where(DrawHistory.raffle_id == raffle_id))
    await session.execute(delete(Participant).where(Participant.raffle_id == raffle_id))
    await session.execute(delete(Raffle).where(Raffle.id == raffle_id))
    logger.info("Raffle deleted raffle_id=%s", raffle_id)


async def draw_winner(
    session: AsyncSession, *, raffle_id: int
) -> tuple[Raffle, Participant, int]:
    """Pick a participant not drawn before and record it as the pending winner.

    Returns the raffle, the drawn participant and how many participants stay
    eligible for a further draw.
    """
    raffle = await require_raffle(session, raffle_id)
    if raffle.status == RaffleStatus.drawn:
        raise RaffleAlreadyDrawn()

    drawn_ids = {entry.participant_id for entry in raffle.draw_history}
    eligible = [p for p in raffle.participants if p.id not in drawn_ids]
    if not eligible:
        raise NoEligibleParticipants()

    winner = random.choice(eligible)
    next_number = max((entry.draw_number for entry in raffle.draw_history), default=0) + 1
    now = utcnow()
    raffle.draw_history.append(
        DrawHistory(
            participant=winner,
            draw_number=next_number,
            was_present=False,
            drawn_at=now,
        )
    )
    raffle.winner = winner
    if raffle.closed_at is None:
        raffle.closed_at = now
    await session.flush()
    logger.info(
        "Draw made raffle_id=%s draw_number=%s participant_id=%s",
        raffle_id,
        next_number,
        winner.id,
    )
    return raffle, winner, len(eligible) - 1


async def get_latest_draw(session: AsyncSession, *, raffle_id: int) -> DrawHistory | None:
    result = await session.execute(
        select(DrawHistory)
        .where(DrawHistory.raffle_id == raffle_id)
        .order_by(DrawHistory.draw_number.desc())
        .limit(1)
        .options(selectinload(DrawHistory.participant))
    )
    return result.scalar_one_or_none()


async def load_pending_draw(
    session: AsyncSession, *, raffle_id: int
) -> tuple[Raffle, DrawHistory]:
    """Raffle plus its current draw, checked to be confirmable."""
    raffle = await session.get(Raffle, raffle_id, populate_existing=True)
    if not raffle:
        raise RaffleNotFound()
    if raffle.status == RaffleStatus.drawn:
        raise RaffleAlreadyFinalized()

    latest = await get_latest_draw(session, raffle_id=raffle_id)
    if raffle.winner_id is None or latest is None:
        raise NoDrawYet()
    return raffle, latest


async def finalize_draw(
    session: AsyncSession, *, raffle: Raffle, draw: DrawHistory
) -> tuple[Raffle, Participant]:
    """Mark ``draw`` as attended and flip the raffle to drawn.

    Both writes go out in the caller's transaction. The status change only
    applies to a raffle that is not drawn yet, so a concurrent confirmation
    that got there first makes this one fail instead of finalizing twice.
    """
    draw.was_present = True
    result = await session.execute(
        update(Raffle)
        .where(Raffle.id == raffle.id, Raffle.status != RaffleStatus.drawn)
        .values(status=RaffleStatus.drawn)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RaffleAlreadyFinalized()
    await session.flush()

    confirmed = draw.participant
    updated = await require_raffle(session, raffle.id)
    logger.info(
        "Winner confirmed raffle_id=%s draw_number=%s participant_id=%s",
        raffle.id,
        draw.draw_number,
        confirmed.id,
    )
    return updated, confirmed


async def confirm_winner(
    session: AsyncSession, *, raffle_id: int
) -> tuple[Raffle, Participant]:
    raffle, latest = await load_pending_draw(session, raffle_id=raffle_id)
    return await finalize_draw(session, raffle=raffle, draw=latest)


async def reopen_raffle(session: AsyncSession, *, raffle_id: int) -> tuple[Raffle, int]:
    """Send a drawn raffle back to active and throw its draw history away."""
    raffle = await session.get(Raffle, raffle_id, populate_existing=True)
    if not raffle:
        raise RaffleNotFound()
    if raffle.status != RaffleStatus.drawn:
        raise RaffleNotFinalized()

    await session.execute(delete(DrawHistory).where(DrawHistory.raffle_id == raffle_id))
    result = await session.execute(
        update(Raffle)
        .where(Raffle.id == raffle_id, Raffle.status == RaffleStatus.drawn)
        .values(status=RaffleStatus.active, winner_id=None, closed_at=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RaffleNotFinalized()

    updated = await require_raffle(session, raffle_id)
    logger.info("Raffle reopened raffle_id=%s", raffle_id)
    return updated, len(updated.participants)


async def reopen_registrations(
    session: AsyncSession, *, raffle_id: int
) -> tuple[Raffle, int]:
    raffle = await session.get(Raffle, raffle_id)
    if not raffle:
        raise RaffleNotFound()
    if raffle.status != RaffleStatus.closed:
        raise RaffleNotClosed()

    raffle.status = RaffleStatus.active
    raffle.closed_at = None
    await session.flush()

    updated = await require_raffle(session, raffle_id)
    logger.info("Registrations reopened raffle_id=%s", raffle_id)
    return updated, len(updated.participants)
