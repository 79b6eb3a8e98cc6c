from sqlalchemy.ext.asyncio import AsyncSession

from qrraffle.app.core.pin import is_valid_pin, verify_pin
from qrraffle.app.models.participant import Participant
from qrraffle.app.models.raffle import Raffle
from qrraffle.app.services.errors import (
    ConfirmationNotRequired,
    InvalidPin,
    RaffleNotFound,
    WinnerWithoutPin,
    WrongPin,
)
from qrraffle.app.services.raffle_service import finalize_draw, load_pending_draw


async def confirm_winner_by_pin(
    session: AsyncSession, *, raffle_id: int, pin: str | None
) -> tuple[Raffle, Participant]:
    """Winner-side confirmation: the drawn participant proves presence with their code."""
    if not pin or not is_valid_pin(pin):
        raise InvalidPin()

    raffle = await session.get(Raffle, raffle_id)
    if not raffle:
        raise RaffleNotFound()
    if not raffle.require_confirmation:
        raise ConfirmationNotRequired()

    raffle, latest = await load_pending_draw(session, raffle_id=raffle_id)
    winner = await session.get(Participant, raffle.winner_id)
    if not winner or not winner.pin_hash:
        raise WinnerWithoutPin()
    if not verify_pin(pin, winner.pin_hash):
        raise WrongPin()

    return await finalize_draw(session, raffle=raffle, draw=latest)
