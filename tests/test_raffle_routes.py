from datetime import timedelta

import pytest
from sqlalchemy import func, select

from qrraffle.app.core.time import utcnow
from qrraffle.app.models import DrawHistory, Raffle, RaffleStatus
from qrraffle.app.web import routes


async def stored_raffle(session_factory, raffle_id: int) -> Raffle:
    async with session_factory() as check:
        return await check.get(Raffle, raffle_id)


async def stored_history(session_factory, raffle_id: int) -> list[DrawHistory]:
    async with session_factory() as check:
        result = await check.execute(
            select(DrawHistory)
            .where(DrawHistory.raffle_id == raffle_id)
            .order_by(DrawHistory.draw_number)
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_create_and_list_raffles(client):
    response = await client.post(
        "/api/raffles",
        json={"name": "Summit", "prize": "Kindle", "timeboxMinutes": 10, "requireConfirmation": True},
    )
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "active"
    assert created["requireConfirmation"] is True
    assert created["endsAt"] is not None
    assert created["winner"] is None
    assert created["createdAt"].endswith("+00:00")
    assert created["endsAt"].endswith("+00:00")

    response = await client.get("/api/raffles")
    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [created["id"]]
    assert response.json()[0]["participantCount"] == 0


@pytest.mark.asyncio
async def test_create_raffle_requires_name_and_prize(client):
    response = await client.post("/api/raffles", json={"name": "Summit"})
    assert response.status_code == 400
    assert response.json() == {"error": "Name and prize are required"}


@pytest.mark.asyncio
async def test_confirm_winner_without_draw(client, session_factory, make_raffle):
    raffle = await make_raffle()

    response = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")

    assert response.status_code == 400
    assert response.json() == {"error": "No draw has been made yet"}
    stored = await stored_raffle(session_factory, raffle.id)
    assert stored.status == RaffleStatus.active


@pytest.mark.asyncio
async def test_confirm_winner_already_finalized(client, session_factory, make_raffle):
    raffle = await make_raffle(status=RaffleStatus.drawn)

    response = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")

    assert response.status_code == 400
    assert response.json() == {"error": "Raffle already finalized"}
    stored = await stored_raffle(session_factory, raffle.id)
    assert stored.status == RaffleStatus.drawn


@pytest.mark.asyncio
async def test_confirm_winner_unknown_raffle(client):
    response = await client.post("/api/raffles/4242/confirm-winner")
    assert response.status_code == 404
    assert response.json() == {"error": "Raffle not found"}


@pytest.mark.asyncio
async def test_confirm_winner_success(
    client, session_factory, make_raffle, make_participant, make_draw
):
    raffle = await make_raffle()
    absent = await make_participant(raffle, name="Ana", email="ana@nava.com.br")
    winner = await make_participant(raffle, name="Bruno", email="bruno@nava.com.br")
    await make_draw(raffle, absent, draw_number=1)
    await make_draw(raffle, winner, draw_number=2)

    response = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["confirmedWinner"]["id"] == winner.id
    assert body["raffle"]["status"] == "drawn"
    assert body["raffle"]["winner"]["id"] == winner.id
    assert [d["drawNumber"] for d in body["raffle"]["drawHistory"]] == [1, 2]
    assert [d["wasPresent"] for d in body["raffle"]["drawHistory"]] == [False, True]
    assert len(body["raffle"]["participants"]) == 2

    history = await stored_history(session_factory, raffle.id)
    assert [h.was_present for h in history] == [False, True]

    again = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")
    assert again.status_code == 400
    assert again.json() == {"error": "Raffle already finalized"}


@pytest.mark.asyncio
async def test_confirm_winner_unexpected_failure(client, make_raffle, monkeypatch):
    raffle = await make_raffle()

    async def broken(session, *, raffle_id):
        raise RuntimeError("database went away")

    monkeypatch.setattr(routes, "confirm_winner", broken)
    response = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to confirm winner"}


@pytest.mark.asyncio
async def test_reopen_not_finalized(client, session_factory, make_raffle):
    raffle = await make_raffle()

    response = await client.post(f"/api/raffles/{raffle.id}/reopen")

    assert response.status_code == 400
    assert response.json() == {"error": "Raffle is not finalized"}
    stored = await stored_raffle(session_factory, raffle.id)
    assert stored.status == RaffleStatus.active


@pytest.mark.asyncio
async def test_reopen_unknown_raffle(client):
    response = await client.post("/api/raffles/4242/reopen")
    assert response.status_code == 404
    assert response.json() == {"error": "Raffle not found"}


@pytest.mark.asyncio
async def test_reopen_drawn_raffle(
    client, session_factory, make_raffle, make_participant, make_draw
):
    raffle = await make_raffle()
    participant = await make_participant(raffle, name="Ana", email="ana@nava.com.br")
    await make_draw(raffle, participant)
    confirmed = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")
    assert confirmed.status_code == 200

    response = await client.post(f"/api/raffles/{raffle.id}/reopen")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["raffle"]["status"] == "active"
    assert body["raffle"]["winnerId"] is None
    assert body["raffle"]["winner"] is None
    assert body["raffle"]["closedAt"] is None
    assert body["raffle"]["participantCount"] == 1

    stored = await stored_raffle(session_factory, raffle.id)
    assert stored.status == RaffleStatus.active
    assert stored.winner_id is None
    assert stored.closed_at is None
    assert await stored_history(session_factory, raffle.id) == []


@pytest.mark.asyncio
async def test_reopen_rolls_back_when_update_fails(
    client, session_factory, make_raffle, make_participant, make_draw, monkeypatch
):
    raffle = await make_raffle()
    participant = await make_participant(raffle, name="Ana", email="ana@nava.com.br")
    await make_draw(raffle, participant)
    assert (await client.post(f"/api/raffles/{raffle.id}/confirm-winner")).status_code == 200

    async def failing_reload(session, raffle_id):
        raise RuntimeError("connection reset")

    monkeypatch.setattr("qrraffle.app.services.raffle_service.require_raffle", failing_reload)
    response = await client.post(f"/api/raffles/{raffle.id}/reopen")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to reopen raffle"}
    stored = await stored_raffle(session_factory, raffle.id)
    assert stored.status == RaffleStatus.drawn
    assert stored.winner_id == participant.id
    assert len(await stored_history(session_factory, raffle.id)) == 1


@pytest.mark.asyncio
async def test_reopen_registrations_mode(client, make_raffle):
    raffle = await make_raffle(status=RaffleStatus.closed, closed_at=utcnow())

    response = await client.post(f"/api/raffles/{raffle.id}/reopen?mode=registrations")
    assert response.status_code == 200
    assert response.json()["raffle"]["status"] == "active"
    assert response.json()["raffle"]["closedAt"] is None

    response = await client.post(f"/api/raffles/{raffle.id}/reopen?mode=registrations")
    assert response.status_code == 400
    assert response.json() == {"error": "Raffle is not closed"}


@pytest.mark.asyncio
async def test_draw_confirm_reopen_cycle(client, session_factory, make_raffle, make_participant):
    raffle = await make_raffle()
    await make_participant(raffle, name="Ana", email="ana@nava.com.br")
    await make_participant(raffle, name="Bruno", email="bruno@nava.com.br")

    first = await client.post(f"/api/raffles/{raffle.id}/draw")
    assert first.status_code == 200
    assert first.json()["eligibleCount"] == 1
    assert (await client.post(f"/api/raffles/{raffle.id}/confirm-winner")).status_code == 200

    drawn_again = await client.post(f"/api/raffles/{raffle.id}/draw")
    assert drawn_again.status_code == 400
    assert drawn_again.json() == {"error": "Raffle already drawn"}

    assert (await client.post(f"/api/raffles/{raffle.id}/reopen")).status_code == 200
    second = await client.post(f"/api/raffles/{raffle.id}/draw")
    assert second.status_code == 200
    assert second.json()["eligibleCount"] == 1
    confirmed = await client.post(f"/api/raffles/{raffle.id}/confirm-winner")
    assert confirmed.status_code == 200

    history = await stored_history(session_factory, raffle.id)
    assert len(history) == 1
    assert history[0].was_present is True
    assert history[0].participant_id == confirmed.json()["confirmedWinner"]["id"]


@pytest.mark.asyncio
async def test_draw_without_participants(client, make_raffle):
    raffle = await make_raffle()
    response = await client.post(f"/api/raffles/{raffle.id}/draw")
    assert response.status_code == 400
    assert response.json() == {"error": "No eligible participants remaining"}


@pytest.mark.asyncio
async def test_close_raffle_with_patch(client, make_raffle):
    raffle = await make_raffle()

    response = await client.patch(f"/api/raffles/{raffle.id}", json={"status": "closed"})
    assert response.status_code == 200
    assert response.json()["status"] == "closed"
    assert response.json()["closedAt"] is not None

    response = await client.patch(f"/api/raffles/{raffle.id}", json={"status": "drawn"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_patch_active_discards_pending_winner(
    client, session_factory, make_raffle, make_participant, make_draw
):
    raffle = await make_raffle(status=RaffleStatus.closed, closed_at=utcnow())
    participant = await make_participant(raffle, name="Ana", email="ana@nava.com.br")
    await make_draw(raffle, participant)

    response = await client.patch(f"/api/raffles/{raffle.id}", json={"status": "active"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "active"
    assert body["winnerId"] is None
    assert body["endsAt"] is None
    stored = await stored_raffle(session_factory, raffle.id)
    assert stored.winner_id is None
    assert len(await stored_history(session_factory, raffle.id)) == 1

    finalized = await make_raffle(status=RaffleStatus.drawn)
    response = await client.patch(f"/api/raffles/{finalized.id}", json={"status": "active"})
    assert response.status_code == 400
    assert response.json() == {"error": "Raffle already finalized"}


@pytest.mark.asyncio
async def test_raffle_detail_and_delete(client, session_factory, make_raffle, make_participant):
    raffle = await make_raffle()
    await make_participant(raffle, name="Ana", email="ana@nava.com.br", pin="12345")

    detail = await client.get(f"/api/raffles/{raffle.id}")
    assert detail.status_code == 200
    participant = detail.json()["participants"][0]
    assert participant["hasPin"] is True
    assert "pinHash" not in participant
    assert detail.json()["drawHistory"] == []

    deleted = await client.delete(f"/api/raffles/{raffle.id}")
    assert deleted.json() == {"success": True}
    assert (await client.get(f"/api/raffles/{raffle.id}")).status_code == 404
    assert (await client.delete(f"/api/raffles/{raffle.id}")).status_code == 404


@pytest.mark.asyncio
async def test_export_csv(client, make_raffle, make_participant, make_draw):
    raffle = await make_raffle(name="Summit 2026!", require_confirmation=True)
    await make_participant(raffle, name="Ana", email="ana@nava.com.br", pin="11111")
    winner = await make_participant(raffle, name="Bruno, Jr", email="bruno@nava.com.br")
    await make_draw(raffle, winner)

    response = await client.get(f"/api/raffles/{raffle.id}/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="Summit_2026__participants.csv"' in response.headers["content-disposition"]
    lines = response.text.lstrip("\ufeff").splitlines()
    assert lines[0] == (
        "Name,Email,Registered At,Is Winner,Prize,Raffle Status,Confirmed Presence,Has PIN"
    )
    assert lines[1].startswith("Ana,ana@nava.com.br,")
    assert lines[1].endswith(",No,,Active,,Yes")
    assert lines[2].startswith('"Bruno, Jr",bruno@nava.com.br,')
    assert lines[2].endswith(",Yes,Headphones,Active,No,No")


@pytest.mark.asyncio
async def test_count_of_participants_in_public_info(client, make_raffle, make_participant):
    raffle = await make_raffle(allowed_domain="nava.com.br", ends_at=utcnow() + timedelta(hours=1))
    await make_participant(raffle, name="Ana", email="ana@nava.com.br")

    response = await client.get(f"/api/register/{raffle.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["participantCount"] == 1
    assert body["allowedDomain"] == "nava.com.br"
    assert "participants" not in body


@pytest.mark.asyncio
async def test_history_rows_match_draw_count(client, session_factory, make_raffle, make_participant):
    raffle = await make_raffle()
    for name in ("ana", "bruno", "carla"):
        await make_participant(raffle, name=name, email=f"{name}@nava.com.br")

    for _ in range(3):
        assert (await client.post(f"/api/raffles/{raffle.id}/draw")).status_code == 200

    async with session_factory() as check:
        result = await check.execute(
            select(func.count(func.distinct(DrawHistory.participant_id))).where(
                DrawHistory.raffle_id == raffle.id
            )
        )
        assert result.scalar_one() == 3
