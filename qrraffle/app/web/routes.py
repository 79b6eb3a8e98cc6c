import logging

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from qrraffle.app.core.config import settings
from qrraffle.app.db.session import get_session
from qrraffle.app.models.enums import RaffleStatus
from qrraffle.app.services.confirmation_service import confirm_winner_by_pin
from qrraffle.app.services.errors import (
    InvalidStatusChange,
    RegistrationExpired,
    ServiceError,
)
from qrraffle.app.services.export_service import export_filename, export_participants_csv
from qrraffle.app.services.participant_service import register_participant
from qrraffle.app.services.raffle_service import (
    close_raffle,
    confirm_winner,
    count_participants,
    create_raffle,
    delete_raffle,
    draw_winner,
    list_raffles,
    reactivate_raffle,
    reopen_raffle,
    reopen_registrations,
    require_raffle,
)
from qrraffle.app.services.talk_service import (
    REPORTED_ERRORS,
    clear_attendances,
    create_talk,
    delete_attendance,
    import_attendances,
    list_attendances,
    list_talks,
)
from qrraffle.app.web.schemas import (
    ConfirmPinRequest,
    RaffleCreateRequest,
    RaffleUpdateRequest,
    RegisterRequest,
    TalkCreateRequest,
)
from qrraffle.app.web.serializers import (
    attendance_to_dict,
    attendances_to_dict,
    draw_to_dict,
    participant_to_dict,
    raffle_public_dict,
    raffle_to_dict,
    talk_to_dict,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

router = APIRouter(prefix="/api", tags=["api"])


def error_response(exc: ServiceError) -> JSONResponse:
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(body, status_code=exc.status_code)


async def internal_error(session: AsyncSession, message: str) -> JSONResponse:
    await session.rollback()
    return JSONResponse({"error": message}, status_code=500)


@router.get("/raffles")
async def raffles_list(session: AsyncSession = Depends(get_session)):
    try:
        rows = await list_raffles(session)
        items = [
            raffle_to_dict(raffle, participant_count=count) for raffle, count in rows
        ]
    except Exception:
        logger.exception("Error fetching raffles")
        return await internal_error(session, "Failed to fetch raffles")
    return JSONResponse(items)


@router.post("/raffles")
async def raffles_create(
    payload: RaffleCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        raffle = await create_raffle(
            session,
            name=payload.name,
            prize=payload.prize,
            description=payload.description,
            allowed_domain=payload.allowed_domain,
            timebox_minutes=payload.timebox_minutes,
            require_confirmation=payload.require_confirmation,
        )
        await session.commit()
        raffle = await require_raffle(session, raffle.id)
        data = raffle_to_dict(raffle, participant_count=0)
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error creating raffle")
        return await internal_error(session, "Failed to create raffle")
    return JSONResponse(data, status_code=201)


@router.get("/raffles/{raffle_id}")
async def raffles_detail(raffle_id: int, session: AsyncSession = Depends(get_session)):
    try:
        raffle = await require_raffle(session, raffle_id)
        data = raffle_to_dict(raffle, participants=True, history=True)
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        logger.exception("Error fetching raffle raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to fetch raffle")
    return JSONResponse(data)


@router.patch("/raffles/{raffle_id}")
async def raffles_update(
    raffle_id: int,
    payload: RaffleUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        if payload.status == RaffleStatus.closed.value:
            await close_raffle(session, raffle_id=raffle_id)
        elif payload.status == RaffleStatus.active.value:
            await reactivate_raffle(session, raffle_id=raffle_id)
        else:
            raise InvalidStatusChange()
        await session.commit()
        raffle = await require_raffle(session, raffle_id)
        data = raffle_to_dict(raffle, participants=True)
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error updating raffle raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to update raffle")
    return JSONResponse(data)


@router.delete("/raffles/{raffle_id}")
async def raffles_delete(raffle_id: int, session: AsyncSession = Depends(get_session)):
    try:
        await delete_raffle(session, raffle_id=raffle_id)
        await session.commit()
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error deleting raffle raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to delete raffle")
    return JSONResponse({"success": True})


@router.post("/raffles/{raffle_id}/draw")
async def raffles_draw(raffle_id: int, session: AsyncSession = Depends(get_session)):
    try:
        raffle, winner, eligible_left = await draw_winner(session, raffle_id=raffle_id)
        await session.commit()
        raffle = await require_raffle(session, raffle_id)
        data = {
            "raffle": raffle_to_dict(raffle, participants=True, history=True),
            "winner": participant_to_dict(winner),
            "drawHistory": [draw_to_dict(entry) for entry in raffle.draw_history],
            "eligibleCount": eligible_left,
        }
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error drawing winner raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to draw winner")
    return JSONResponse(data)


@router.post("/raffles/{raffle_id}/confirm-winner")
async def raffles_confirm_winner(
    raffle_id: int, session: AsyncSession = Depends(get_session)
):
    try:
        raffle, confirmed = await confirm_winner(session, raffle_id=raffle_id)
        await session.commit()
        data = {
            "success": True,
            "raffle": raffle_to_dict(raffle, participants=True, history=True),
            "confirmedWinner": participant_to_dict(confirmed),
        }
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error confirming winner raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to confirm winner")
    return JSONResponse(data)


@router.post("/raffles/{raffle_id}/confirm-pin")
@limiter.limit(settings.pin_rate_limit)
async def raffles_confirm_pin(
    request: Request,
    raffle_id: int,
    payload: ConfirmPinRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        raffle, confirmed = await confirm_winner_by_pin(
            session, raffle_id=raffle_id, pin=payload.pin
        )
        await session.commit()
        data = {
            "success": True,
            "message": "Congratulations! Your presence has been confirmed.",
            "raffle": raffle_to_dict(raffle, participants=True, history=True),
            "confirmedWinner": participant_to_dict(confirmed),
        }
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error confirming winner by PIN raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to confirm presence")
    return JSONResponse(data)


@router.post("/raffles/{raffle_id}/reopen")
async def raffles_reopen(
    raffle_id: int,
    mode: str = "raffle",
    session: AsyncSession = Depends(get_session),
):
    try:
        if mode == "registrations":
            raffle, count = await reopen_registrations(session, raffle_id=raffle_id)
        else:
            raffle, count = await reopen_raffle(session, raffle_id=raffle_id)
        await session.commit()
        data = {
            "success": True,
            "raffle": raffle_to_dict(raffle, participants=True, participant_count=count),
        }
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error reopening raffle raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to reopen raffle")
    return JSONResponse(data)


@router.get("/raffles/{raffle_id}/export")
async def raffles_export(raffle_id: int, session: AsyncSession = Depends(get_session)):
    try:
        raffle = await require_raffle(session, raffle_id)
        content = export_participants_csv(raffle)
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        logger.exception("Error exporting raffle raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to export CSV")
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(raffle)}"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/register/{raffle_id}")
async def register_info(raffle_id: int, session: AsyncSession = Depends(get_session)):
    try:
        raffle = await require_raffle(session, raffle_id)
        count = await count_participants(session, raffle_id=raffle_id)
        data = raffle_public_dict(raffle, participant_count=count)
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        logger.exception("Error fetching raffle info raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to fetch raffle info")
    return JSONResponse(data)


@router.post("/register/{raffle_id}")
@limiter.limit(settings.register_rate_limit)
async def register_action(
    request: Request,
    raffle_id: int,
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        participant = await register_participant(
            session,
            raffle_id=raffle_id,
            name=payload.name,
            email=payload.email,
            pin=payload.pin,
        )
        await session.commit()
        data = participant_to_dict(participant)
    except RegistrationExpired as exc:
        # the raffle was closed on the way out, keep that
        await session.commit()
        return error_response(exc)
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error registering participant raffle_id=%s", raffle_id)
        return await internal_error(session, "Failed to register participant")
    return JSONResponse(data, status_code=201)


@router.get("/talks")
async def talks_list(session: AsyncSession = Depends(get_session)):
    try:
        rows = await list_talks(session)
        items = [talk_to_dict(talk, attendance_count=count) for talk, count in rows]
    except Exception:
        logger.exception("Error fetching talks")
        return await internal_error(session, "Failed to fetch talks")
    return JSONResponse(items)


@router.post("/talks")
async def talks_create(
    payload: TalkCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        talk = await create_talk(
            session,
            title=payload.title,
            speaker=payload.speaker,
            description=payload.description,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
        await session.commit()
        data = talk_to_dict(talk, attendance_count=0)
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error creating talk")
        return await internal_error(session, "Failed to create talk")
    return JSONResponse(data, status_code=201)


@router.get("/talks/{talk_id}")
async def talks_detail(talk_id: int, session: AsyncSession = Depends(get_session)):
    try:
        talk, attendances = await list_attendances(session, talk_id=talk_id)
        data = talk_to_dict(talk, attendance_count=len(attendances))
        data["attendances"] = [attendance_to_dict(a) for a in attendances]
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        logger.exception("Error fetching talk talk_id=%s", talk_id)
        return await internal_error(session, "Failed to fetch talk")
    return JSONResponse(data)


@router.post("/talks/{talk_id}/attendance")
async def talk_attendance_import(
    talk_id: int,
    file: UploadFile | None = File(None),
    session: AsyncSession = Depends(get_session),
):
    try:
        content = None
        if file is not None:
            content = (await file.read()).decode("utf-8-sig", errors="replace")
        imported, total, parsed = await import_attendances(
            session, talk_id=talk_id, content=content
        )
        await session.commit()
        data = {
            "talkId": talk_id,
            "attendeesImported": imported,
            "totalAttendees": total,
            "skippedRows": parsed.skipped_rows,
            "mergedDuplicates": parsed.merged_duplicates,
            "errors": parsed.errors[:REPORTED_ERRORS],
            "message": f"{imported} attendances imported",
        }
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error importing attendances talk_id=%s", talk_id)
        return await internal_error(session, "Failed to import attendances")
    return JSONResponse(data, status_code=201)


@router.delete("/talks/{talk_id}/attendance")
async def talk_attendance_clear(talk_id: int, session: AsyncSession = Depends(get_session)):
    try:
        deleted = await clear_attendances(session, talk_id=talk_id)
        await session.commit()
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception("Error clearing attendances talk_id=%s", talk_id)
        return await internal_error(session, "Failed to delete attendances")
    return JSONResponse({"success": True, "deletedCount": deleted})


@router.get("/talks/{talk_id}/attendance")
async def talk_attendance_list(talk_id: int, session: AsyncSession = Depends(get_session)):
    try:
        talk, attendances = await list_attendances(session, talk_id=talk_id)
        data = attendances_to_dict(talk, attendances)
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        logger.exception("Error fetching attendances talk_id=%s", talk_id)
        return await internal_error(session, "Failed to fetch attendances")
    return JSONResponse(data)


@router.delete("/talks/{talk_id}/attendance/{attendance_id}")
async def talk_attendance_delete(
    talk_id: int,
    attendance_id: int,
    session: AsyncSession = Depends(get_session),
):
    try:
        await delete_attendance(session, talk_id=talk_id, attendance_id=attendance_id)
        await session.commit()
    except ServiceError as exc:
        await session.rollback()
        return error_response(exc)
    except Exception:
        logger.exception(
            "Error deleting attendance talk_id=%s attendance_id=%s", talk_id, attendance_id
        )
        return await internal_error(session, "Failed to delete attendance")
    return JSONResponse({"success": True})
