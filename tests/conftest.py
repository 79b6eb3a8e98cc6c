import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from qrraffle.app import models  # noqa: F401
from qrraffle.app.core.pin import hash_pin
from qrraffle.app.core.time import utcnow
from qrraffle.app.db.base import Base
from qrraffle.app.db.session import get_session
from qrraffle.app.main import create_app
from qrraffle.app.models import (
    DrawHistory,
    Participant,
    Raffle,
    RaffleStatus,
    Talk,
    TalkAttendance,
)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'raffle.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_raffle(session):
    async def factory(**overrides) -> Raffle:
        data = {
            "name": "Summit raffle",
            "prize": "Headphones",
            "status": RaffleStatus.active,
            "created_at": utcnow(),
            "require_confirmation": False,
        }
        data.update(overrides)
        raffle = Raffle(**data)
        session.add(raffle)
        await session.commit()
        return raffle

    return factory


@pytest.fixture
def make_participant(session):
    async def factory(raffle: Raffle, *, name: str, email: str, pin: str | None = None):
        participant = Participant(
            name=name,
            email=email,
            raffle_id=raffle.id,
            created_at=utcnow(),
            pin_hash=hash_pin(pin) if pin else None,
        )
        session.add(participant)
        await session.commit()
        return participant

    return factory


@pytest.fixture
def make_draw(session):
    """Record a draw the way the draw endpoint does: history row plus pending winner."""

    async def factory(raffle: Raffle, participant: Participant, *, draw_number: int = 1):
        entry = DrawHistory(
            raffle_id=raffle.id,
            participant_id=participant.id,
            draw_number=draw_number,
            was_present=False,
            drawn_at=utcnow(),
        )
        session.add(entry)
        raffle.winner_id = participant.id
        raffle.closed_at = raffle.closed_at or utcnow()
        await session.commit()
        return entry

    return factory


@pytest.fixture
def make_talk(session):
    async def factory(title: str = "Opening keynote", attendees: list[str] = ()):
        talk = Talk(title=title, speaker="Helena Costa", created_at=utcnow())
        session.add(talk)
        await session.flush()
        attendances = []
        for email in attendees:
            attendance = TalkAttendance(
                talk_id=talk.id,
                name=email.split("@")[0],
                email=email,
                created_at=utcnow(),
            )
            session.add(attendance)
            attendances.append(attendance)
        await session.commit()
        return talk, attendances

    return factory
