class ServiceError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message: str | None = None, *, details: list[str] | None = None):
        if message is not None:
            self.message = message
        self.details = details
        super().__init__(self.message)


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 400


class RaffleNotFound(NotFound):
    message = "Raffle not found"


class TalkNotFound(NotFound):
    message = "Talk not found"


class AttendanceNotFound(NotFound):
    message = "Attendance not found"


class InvalidTalkInput(Conflict):
    message = "Title is required"


class CsvFileRequired(Conflict):
    message = "A CSV file is required"


class NoValidAttendees(Conflict):
    message = "No valid attendees found in the CSV"


class InvalidRaffleInput(Conflict):
    message = "Name and prize are required"


class InvalidStatusChange(Conflict):
    message = "Unsupported status change"


class RaffleAlreadyFinalized(Conflict):
    message = "Raffle already finalized"


class RaffleAlreadyDrawn(Conflict):
    message = "Raffle already drawn"


class NoDrawYet(Conflict):
    message = "No draw has been made yet"


class NoEligibleParticipants(Conflict):
    message = "No eligible participants remaining"


class RaffleNotFinalized(Conflict):
    message = "Raffle is not finalized"


class RaffleNotActive(Conflict):
    message = "Raffle is not active"


class RaffleNotClosed(Conflict):
    message = "Raffle is not closed"


class InvalidParticipantInput(Conflict):
    message = "Name and email are required"


class RegistrationClosed(Conflict):
    message = "This raffle is no longer accepting registrations"


class RegistrationExpired(Conflict):
    message = "The registration period has expired"


class DomainNotAllowed(Conflict):
    message = "Email domain is not allowed in this raffle"


class PinRequired(Conflict):
    message = "A confirmation code is required"


class InvalidPin(Conflict):
    message = "The confirmation code must have exactly 5 digits"


class ParticipantExists(Conflict):
    message = "This email is already registered in this raffle"


class ConfirmationNotRequired(Conflict):
    message = "This raffle does not use code confirmation"


class WinnerWithoutPin(Conflict):
    message = "The winner has no confirmation code"


class WrongPin(Conflict):
    message = "Incorrect confirmation code"
