"""Attendance lists exported by meeting tools (Google Meet, Zoom, Teams).

The files vary a lot: the delimiter may be ``,``, ``;``, ``|`` or a tab,
headers come in English or Portuguese, and times are either bare
(``08:30:00``) or prefixed with a date (``12/04/25, 17:50:26``). A person who
left and rejoined shows up on several rows, which are merged into one
attendee.
"""
import csv
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone

from qrraffle.app.core.time import utcnow

DELIMITERS = ("|", ",", ";", "\t")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SMALL_WORDS = {"de", "da", "do", "dos", "das", "e"}

NAME_HEADERS = {"name", "nome", "participante"}
EMAIL_HEADERS = {"email", "e-mail"}
ENTRY_HEADERS = {"entry_time", "entry time", "check-in", "checkin", "horário de entrada"}
EXIT_HEADERS = {"exit_time", "exit time", "check-out", "checkout", "horário de saída"}
DURATION_HEADERS = {"duration", "tempo"}


@dataclass
class ParsedAttendee:
    name: str
    email: str
    entry_time: datetime | None = None
    exit_time: datetime | None = None
    duration: int | None = None


@dataclass
class AttendanceCsv:
    attendees: list[ParsedAttendee] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped_rows: int = 0
    merged_duplicates: int = 0


def normalize_name(name: str) -> str:
    """``MARIA DA SILVA`` -> ``Maria da Silva``."""
    words = name.lower().split()
    return " ".join(w if w in SMALL_WORDS else w[:1].upper() + w[1:] for w in words)


def detect_delimiter(header: str) -> str:
    unquoted = re.sub(r'"[^"]*"', "", header)
    best, best_count = ",", 0
    for delimiter in DELIMITERS:
        count = unquoted.count(delimiter)
        if count > best_count:
            best, best_count = delimiter, count
    return best


def parse_time(value: str, base_date: date) -> datetime | None:
    text = value.strip().strip("\"'")
    if "," in text:
        text = text.rsplit(",", 1)[1].strip()
    if " " in text and "-" in text:
        text = text.rsplit(" ", 1)[1].strip()

    parts = text.split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
        seconds = int(parts[2]) if len(parts) > 2 else 0
        clock = time(hours, minutes, seconds)
    except ValueError:
        return None
    return datetime.combine(base_date, clock, tzinfo=timezone.utc)


def parse_duration(value: str) -> int | None:
    """Minutes, from ``HH:MM[:SS]`` or a plain number of minutes."""
    text = value.strip()
    if not text:
        return None
    if ":" in text:
        hours, minutes = (text.split(":") + ["0"])[:2]
        return _int_or_zero(hours) * 60 + _int_or_zero(minutes)
    try:
        return int(text)
    except ValueError:
        return None


def _int_or_zero(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _minutes_between(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)


def _find_column(
    headers: list[str], exact: set[str], fragments: tuple[str, ...] = ()
) -> int | None:
    for index, header in enumerate(headers):
        if header in exact or any(fragment in header for fragment in fragments):
            return index
    return None


def _cell(values: list[str], index: int | None) -> str:
    if index is None or index >= len(values):
        return ""
    return values[index].strip()


def merge_by_email(rows: list[ParsedAttendee]) -> tuple[list[ParsedAttendee], int]:
    """One attendee per e-mail: earliest entry, latest exit, summed minutes."""
    merged: dict[str, ParsedAttendee] = {}
    row_counts: dict[str, int] = {}
    for row in rows:
        minutes = row.duration
        if minutes is None and row.entry_time and row.exit_time:
            minutes = _minutes_between(row.entry_time, row.exit_time)

        current = merged.get(row.email)
        row_counts[row.email] = row_counts.get(row.email, 0) + 1
        if current is None:
            merged[row.email] = ParsedAttendee(
                name=row.name,
                email=row.email,
                entry_time=row.entry_time,
                exit_time=row.exit_time,
                duration=minutes,
            )
            continue

        if row.entry_time and (current.entry_time is None or row.entry_time < current.entry_time):
            current.entry_time = row.entry_time
        if row.exit_time and (current.exit_time is None or row.exit_time > current.exit_time):
            current.exit_time = row.exit_time
        if minutes:
            current.duration = (current.duration or 0) + minutes

    for attendee in merged.values():
        if not attendee.duration or attendee.duration <= 0:
            attendee.duration = None
    return list(merged.values()), sum(1 for count in row_counts.values() if count > 1)


def parse_attendance_csv(content: str, base_date: date | None = None) -> AttendanceCsv:
    """Parse an attendance export.

    Rows without a name or e-mail are skipped silently; rows with a malformed
    e-mail are skipped and reported in ``errors``. Bare times are placed on
    ``base_date`` (today, UTC, by default).
    """
    result = AttendanceCsv()
    lines = [line for line in content.lstrip("\ufeff").splitlines() if line.strip()]
    if not lines:
        result.errors.append("Empty CSV file")
        return result

    delimiter = detect_delimiter(lines[0])
    reader = csv.reader(lines, delimiter=delimiter, skipinitialspace=True)
    headers = [h.strip().lower() for h in next(reader)]

    name_col = _find_column(headers, NAME_HEADERS)
    email_col = _find_column(headers, EMAIL_HEADERS)
    entry_col = _find_column(headers, ENTRY_HEADERS, ("entrada",))
    exit_col = _find_column(headers, EXIT_HEADERS, ("saida", "saída"))
    duration_col = _find_column(headers, DURATION_HEADERS, ("dura",))

    if name_col is None:
        result.errors.append('Column "name" not found in the header')
        return result
    if email_col is None:
        result.errors.append('Column "email" not found in the header')
        return result

    base_date = base_date or utcnow().date()
    rows: list[ParsedAttendee] = []
    for line_number, values in enumerate(reader, start=2):
        name = normalize_name(_cell(values, name_col))
        email = _cell(values, email_col).lower()
        if not name or not email:
            result.skipped_rows += 1
            continue
        if not EMAIL_RE.match(email):
            result.errors.append(f'Line {line_number}: invalid email "{email}"')
            result.skipped_rows += 1
            continue

        entry = _cell(values, entry_col)
        exit_time = _cell(values, exit_col)
        duration = _cell(values, duration_col)
        rows.append(
            ParsedAttendee(
                name=name,
                email=email,
                entry_time=parse_time(entry, base_date) if entry else None,
                exit_time=parse_time(exit_time, base_date) if exit_time else None,
                duration=parse_duration(duration) if duration else None,
            )
        )

    result.attendees, result.merged_duplicates = merge_by_email(rows)
    return result
