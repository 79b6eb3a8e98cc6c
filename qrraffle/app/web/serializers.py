from datetime import datetime

from qrraffle.app.core.time import as_utc
from qrraffle.app.models.draw_history import DrawHistory
from qrraffle.app.models.participant import Participant
from qrraffle.app.models.raffle import Raffle
from qrraffle.app.models.talk import Talk, TalkAttendance


def iso(dt: datetime | None) -> str | None:
    return as_utc(dt).isoformat() if dt else None


def participant_to_dict(participant: Participant | None) -> dict | None:
    if participant is None:
        return None
    return {
        "id": participant.id,
        "name": participant.name,
        "email": participant.email,
        "raffleId": participant.raffle_id,
        "createdAt": iso(participant.created_at),
        "hasPin": participant.pin_hash is not None,
    }


def draw_to_dict(entry: DrawHistory) -> dict:
    return {
        "id": entry.id,
        "raffleId": entry.raffle_id,
        "drawNumber": entry.draw_number,
        "participantId": entry.participant_id,
        "wasPresent": entry.was_present,
        "drawnAt": iso(entry.drawn_at),
        "participant": participant_to_dict(entry.participant),
    }


def raffle_to_dict(
    raffle: Raffle,
    *,
    participants: bool = False,
    history: bool = False,
    participant_count: int | None = None,
) -> dict:
    """JSON view of a raffle.

    ``winner`` must already be loaded; ``participants`` and ``history`` add
    the collections, which must be loaded too.
    """
    data = {
        "id": raffle.id,
        "name": raffle.name,
        "description": raffle.description,
        "prize": raffle.prize,
        "status": raffle.status.value,
        "winnerId": raffle.winner_id,
        "winner": participant_to_dict(raffle.winner),
        "createdAt": iso(raffle.created_at),
        "closedAt": iso(raffle.closed_at),
        "timeboxMinutes": raffle.timebox_minutes,
        "endsAt": iso(raffle.ends_at),
        "requireConfirmation": raffle.require_confirmation,
        "allowedDomain": raffle.allowed_domain,
    }
    if participants:
        data["participants"] = [participant_to_dict(p) for p in raffle.participants]
        if participant_count is None:
            participant_count = len(raffle.participants)
    if history:
        data["drawHistory"] = [draw_to_dict(entry) for entry in raffle.draw_history]
    if participant_count is not None:
        data["participantCount"] = participant_count
    return data


def raffle_public_dict(raffle: Raffle, *, participant_count: int) -> dict:
    return {
        "id": raffle.id,
        "name": raffle.name,
        "description": raffle.description,
        "prize": raffle.prize,
        "status": raffle.status.value,
        "allowedDomain": raffle.allowed_domain,
        "participantCount": participant_count,
        "endsAt": iso(raffle.ends_at),
        "requireConfirmation": raffle.require_confirmation,
    }


def talk_to_dict(talk: Talk, *, attendance_count: int) -> dict:
    return {
        "id": talk.id,
        "title": talk.title,
        "speaker": talk.speaker,
        "description": talk.description,
        "startTime": iso(talk.start_time),
        "endTime": iso(talk.end_time),
        "createdAt": iso(talk.created_at),
        "attendanceCount": attendance_count,
    }


def attendance_to_dict(attendance: TalkAttendance) -> dict:
    return {
        "id": attendance.id,
        "name": attendance.name,
        "email": attendance.email,
        "entryTime": iso(attendance.entry_time),
        "exitTime": iso(attendance.exit_time),
        "duration": attendance.duration,
        "createdAt": iso(attendance.created_at),
    }


def attendances_to_dict(talk: Talk, attendances: list[TalkAttendance]) -> dict:
    return {
        "talkId": talk.id,
        "talkTitle": talk.title,
        "attendanceCount": len(attendances),
        "attendances": [attendance_to_dict(a) for a in attendances],
    }
