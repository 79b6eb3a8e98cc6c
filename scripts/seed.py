#!/usr/bin/env python
import argparse
import asyncio
import random

from qrraffle.app.core.pin import hash_pin
from qrraffle.app.core.time import utcnow
from qrraffle.app.db.session import SessionLocal
from qrraffle.app.models.participant import Participant
from qrraffle.app.models.talk import Talk, TalkAttendance
from qrraffle.app.services.raffle_service import create_raffle

FIRST_NAMES = [
    "Ana", "Bruno", "Carlos", "Daniela", "Eduardo", "Fernanda", "Gabriel",
    "Helena", "Igor", "Julia", "Lucas", "Mariana", "Pedro", "Rafaela",
]
LAST_NAMES = [
    "Silva", "Santos", "Oliveira", "Souza", "Rodrigues", "Ferreira", "Alves",
    "Pereira", "Lima", "Gomes", "Costa", "Ribeiro",
]
EMAIL_DOMAINS = ["gmail.com", "hotmail.com", "outlook.com", "yahoo.com.br"]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed a demo raffle")
    parser.add_argument("--participants", type=int, default=50)
    parser.add_argument("--with-pin", action="store_true")
    return parser.parse_args()


def fake_person(index: int) -> tuple[str, str]:
    name = f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"
    local = name.lower().replace(" ", ".")
    return name, f"{local}{index}@{random.choice(EMAIL_DOMAINS)}"


async def main() -> None:
    args = parse_args()
    async with SessionLocal() as session:
        raffle = await create_raffle(
            session,
            name="Summit 2026 - Grand Raffle",
            description="Raffle for everyone attending the summit.",
            prize="Noise-cancelling headphones",
            require_confirmation=args.with_pin,
        )
        for index in range(1, args.participants + 1):
            name, email = fake_person(index)
            session.add(
                Participant(
                    name=name,
                    email=email,
                    raffle_id=raffle.id,
                    created_at=utcnow(),
                    pin_hash=hash_pin(f"{index:05d}") if args.with_pin else None,
                )
            )

        talk = Talk(title="Opening keynote", speaker="Helena Costa", created_at=utcnow())
        session.add(talk)
        await session.flush()
        for index in range(1, 11):
            name, email = fake_person(index)
            session.add(
                TalkAttendance(talk_id=talk.id, name=name, email=email, created_at=utcnow())
            )
        await session.commit()
    print(f"Raffle {raffle.id} seeded with {args.participants} participants")


if __name__ == "__main__":
    asyncio.run(main())
