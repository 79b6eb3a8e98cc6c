import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrraffle.app.core.time import utcnow
from qrraffle.app.models.talk import Talk, TalkAttendance
from qrraffle.app.services.errors import (
    AttendanceNotFound,
    CsvFileRequired,
    InvalidTalkInput,
    NoValidAttendees,
    TalkNotFound,
)
from qrraffle.app.services.import_service import AttendanceCsv, parse_attendance_csv

logger = logging.getLogger(__name__)

# how many parse errors an import response carries
REPORTED_ERRORS = 5


async def require_talk(session: AsyncSession, talk_id: int) -> Talk:
    talk = await session.get(Talk, talk_id)
    if not talk:
        raise TalkNotFound()
    return talk


async def count_attendances(session: AsyncSession, *, talk_id: int) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(TalkAttendance)
        .where(TalkAttendance.talk_id == talk_id)
    )
    return result.scalar_one()


async def list_talks(session: AsyncSession) -> list[tuple[Talk, int]]:
    attendance_count = (
        select(func.count(TalkAttendance.id))
        .where(TalkAttendance.talk_id == Talk.id)
        .correlate(Talk)
        .scalar_subquery()
    )
    result = await session.execute(
        select(Talk, attendance_count).order_by(Talk.created_at.desc(), Talk.id.desc())
    )
    return [(talk, count) for talk, count in result.all()]


async def create_talk(
    session: AsyncSession,
    *,
    title: str,
    speaker: str | None = None,
    description: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
) -> Talk:
    title = (title or "").strip()
    if not title:
        raise InvalidTalkInput()

    talk = Talk(
        title=title,
        speaker=(speaker or "").strip() or None,
        description=(description or "").strip() or None,
        start_time=start_time,
        end_time=end_time,
        created_at=utcnow(),
    )
    session.add(talk)
    await session.flush()
    logger.info("Talk created talk_id=%s", talk.id)
    return talk


async def list_attendances(
    session: AsyncSession, *, talk_id: int
) -> tuple[Talk, list[TalkAttendance]]:
    talk = await require_talk(session, talk_id)
    result = await session.execute(
        select(TalkAttendance)
        .where(TalkAttendance.talk_id == talk_id)
        .order_by(TalkAttendance.name, TalkAttendance.id)
    )
    return talk, list(result.scalars().all())


async def import_attendances(
    session: AsyncSession, *, talk_id: int, content: str | None
) -> tuple[int, int, AttendanceCsv]:
    """Add the attendees of a CSV export to a talk.

    E-mails already on the talk's list are left alone. Returns how many rows
    were added, the new list size and the parse report.
    """
    await require_talk(session, talk_id)
    if content is None:
        raise CsvFileRequired()

    parsed = parse_attendance_csv(content)
    if not parsed.attendees:
        raise NoValidAttendees(details=parsed.errors[:REPORTED_ERRORS])

    existing = await session.execute(
        select(func.lower(TalkAttendance.email)).where(TalkAttendance.talk_id == talk_id)
    )
    known = set(existing.scalars().all())

    now = utcnow()
    imported = 0
    for attendee in parsed.attendees:
        if attendee.email in known:
            continue
        session.add(
            TalkAttendance(
                talk_id=talk_id,
                name=attendee.name,
                email=attendee.email,
                entry_time=attendee.entry_time,
                exit_time=attendee.exit_time,
                duration=attendee.duration,
                created_at=now,
            )
        )
        known.add(attendee.email)
        imported += 1
    await session.flush()

    total = await count_attendances(session, talk_id=talk_id)
    logger.info(
        "Attendances imported talk_id=%s imported=%s skipped_rows=%s",
        talk_id,
        imported,
        parsed.skipped_rows,
    )
    return imported, total, parsed


async def clear_attendances(session: AsyncSession, *, talk_id: int) -> int:
    await require_talk(session, talk_id)
    result = await session.execute(
        delete(TalkAttendance).where(TalkAttendance.talk_id == talk_id)
    )
    logger.info("Attendances cleared talk_id=%s count=%s", talk_id, result.rowcount)
    return result.rowcount


async def delete_attendance(
    session: AsyncSession, *, talk_id: int, attendance_id: int
) -> None:
    await require_talk(session, talk_id)

    result = await session.execute(
        select(TalkAttendance).where(
            TalkAttendance.id == attendance_id,
            TalkAttendance.talk_id == talk_id,
        )
    )
    attendance = result.scalar_one_or_none()
    if not attendance:
        raise AttendanceNotFound()

    await session.delete(attendance)
    logger.info("Attendance deleted talk_id=%s attendance_id=%s", talk_id, attendance_id)
