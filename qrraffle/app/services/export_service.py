import csv
import io
import re

from qrraffle.app.models.enums import RaffleStatus
from qrraffle.app.models.raffle import Raffle

BOM = "\ufeff"

STATUS_LABELS = {
    RaffleStatus.active: "Active",
    RaffleStatus.closed: "Closed",
    RaffleStatus.drawn: "Drawn",
}


def export_filename(raffle: Raffle) -> str:
    safe = re.sub(r"[^a-zA-Z0-9_-]", "_", raffle.name)[:50]
    return f"{safe}_participants.csv"


def export_participants_csv(raffle: Raffle) -> str:
    """CSV of every participant, oldest first, with the winner flagged.

    Expects ``raffle`` loaded with participants and draw history. The BOM keeps
    spreadsheet tools from guessing a legacy encoding.
    """
    headers = [
        "Name",
        "Email",
        "Registered At",
        "Is Winner",
        "Prize",
        "Raffle Status",
        "Confirmed Presence",
    ]
    if raffle.require_confirmation:
        headers.append("Has PIN")

    presence = {entry.participant_id: entry.was_present for entry in raffle.draw_history}
    status_label = STATUS_LABELS.get(raffle.status, str(raffle.status))

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for participant in sorted(raffle.participants, key=lambda p: (p.created_at, p.id)):
        is_winner = raffle.winner_id == participant.id
        row = [
            participant.name,
            participant.email,
            participant.created_at.strftime("%Y-%m-%d %H:%M"),
            "Yes" if is_winner else "No",
            raffle.prize if is_winner else "",
            status_label,
            ("Yes" if presence.get(participant.id) else "No") if is_winner else "",
        ]
        if raffle.require_confirmation:
            row.append("Yes" if participant.pin_hash else "No")
        writer.writerow(row)
    return BOM + buffer.getvalue()
