from qrraffle.app.models.draw_history import DrawHistory
from qrraffle.app.models.enums import RaffleStatus
from qrraffle.app.models.participant import Participant
from qrraffle.app.models.raffle import Raffle
from qrraffle.app.models.talk import Talk, TalkAttendance

__all__ = [
    "DrawHistory",
    "Participant",
    "Raffle",
    "RaffleStatus",
    "Talk",
    "TalkAttendance",
]
