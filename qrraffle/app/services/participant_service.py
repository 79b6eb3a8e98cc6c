import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrraffle.app.core.emails import email_domain, normalize_email
from qrraffle.app.core.pin import hash_pin, is_valid_pin
from qrraffle.app.core.time import as_utc, utcnow
from qrraffle.app.models.enums import RaffleStatus
from qrraffle.app.models.participant import Participant
from qrraffle.app.models.raffle import Raffle
from qrraffle.app.services.errors import (
    DomainNotAllowed,
    InvalidParticipantInput,
    InvalidPin,
    ParticipantExists,
    PinRequired,
    RaffleNotFound,
    RegistrationClosed,
    RegistrationExpired,
)

logger = logging.getLogger(__name__)


async def find_participant_by_email(
    session: AsyncSession, *, raffle_id: int, email: str
) -> Participant | None:
    """Participant of the raffle whose e-mail normalizes to the same key."""
    key = normalize_email(email)
    query = select(Participant).where(Participant.raffle_id == raffle_id)
    domain = email_domain(key)
    if domain is not None:
        query = query.where(
            func.lower(Participant.email).endswith(f"@{domain}", autoescape=True)
        )
    rows = (await session.execute(query)).scalars().all()
    for participant in rows:
        if normalize_email(participant.email) == key:
            return participant
    return None


def close_if_expired(raffle: Raffle) -> bool:
    ends_at = as_utc(raffle.ends_at)
    if raffle.status != RaffleStatus.active or ends_at is None:
        return False
    now = utcnow()
    if now <= ends_at:
        return False
    raffle.status = RaffleStatus.closed
    raffle.closed_at = now
    return True


async def register_participant(
    session: AsyncSession,
    *,
    raffle_id: int,
    name: str,
    email: str,
    pin: str | None = None,
) -> Participant:
    """Register ``email`` in a raffle.

    Raises ``RegistrationExpired`` after closing the raffle when its timebox is
    over; the caller is expected to commit that change.
    """
    name = (name or "").strip()
    email = (email or "").strip()
    if not name or not email:
        raise InvalidParticipantInput()

    raffle = await session.get(Raffle, raffle_id)
    if not raffle:
        raise RaffleNotFound()
    if raffle.status != RaffleStatus.active:
        raise RegistrationClosed()

    if close_if_expired(raffle):
        await session.flush()
        logger.info("Raffle closed by timebox raffle_id=%s", raffle_id)
        raise RegistrationExpired()

    if raffle.allowed_domain:
        if email_domain(email) != raffle.allowed_domain.lower():
            raise DomainNotAllowed(
                f"Only @{raffle.allowed_domain} emails can join this raffle"
            )

    if raffle.require_confirmation:
        if not pin:
            raise PinRequired()
        if not is_valid_pin(pin):
            raise InvalidPin()

    existing = await find_participant_by_email(session, raffle_id=raffle_id, email=email)
    if existing:
        raise ParticipantExists()

    participant = Participant(
        name=name,
        email=email,
        raffle_id=raffle_id,
        created_at=utcnow(),
        pin_hash=hash_pin(pin) if raffle.require_confirmation and pin else None,
    )
    session.add(participant)
    await session.flush()
    logger.info(
        "Participant registered raffle_id=%s participant_id=%s",
        raffle_id,
        participant.id,
    )
    return participant
