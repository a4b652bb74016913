"""
Record types for the portal's collections.

Raw MongoDB documents and JSON bodies use camelCase keys (``studentId``,
``totalDays`` ...). They only become records through the ``from_doc``
constructors below, which reject anything the aggregation functions in
``analytics`` cannot handle. Records are frozen and never mutated.
"""
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
DAILY_STATUSES = ("present", "absent")


class InvalidRecord(ValueError):
    """Raised when a document cannot be turned into a record."""

    def __init__(self, field, message):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


# -------------------- Field coercion -------------------- #
def _require(doc, key):
    value = doc.get(key)
    if value is None or value == "":
        raise InvalidRecord(key, "is required")
    return value


def _as_int(doc, key, minimum=None):
    value = _require(doc, key)
    if isinstance(value, bool):
        raise InvalidRecord(key, "must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidRecord(key, "must be an integer")
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidRecord(key, "must be an integer")
    elif not isinstance(value, int):
        raise InvalidRecord(key, "must be an integer")

    if minimum is not None and value < minimum:
        raise InvalidRecord(key, f"must be at least {minimum}")
    return value


def _as_number(doc, key):
    value = _require(doc, key)
    if isinstance(value, bool):
        raise InvalidRecord(key, "must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidRecord(key, "must be a number")
    elif not isinstance(value, (int, float)):
        raise InvalidRecord(key, "must be a number")

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise InvalidRecord(key, "must be a finite number")
        if value.is_integer():
            value = int(value)
    if value < 0:
        raise InvalidRecord(key, "must not be negative")
    return value


def _as_id(doc, key):
    value = _require(doc, key)
    return str(value)


def _doc_id(doc):
    if doc.get("_id") is not None:
        return str(doc["_id"])
    return _as_id(doc, "id")


def parse_month(value) -> Optional[str]:
    """Validate a ``YYYY-MM`` month key. Empty values mean "Unknown" (None)."""
    if value is None or value == "":
        return None
    match = MONTH_PATTERN.match(str(value).strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise InvalidRecord("month", "must use the YYYY-MM format")
    return match.group(0)


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidRecord("markedAt", "is required")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise InvalidRecord("markedAt", "must be an ISO-8601 timestamp")


# -------------------- Records -------------------- #
@dataclass(frozen=True)
class AttendanceRecord:
    month: Optional[str]
    total_days: int
    present_days: int
    student_id: Optional[str] = None
    subject_id: Optional[str] = None

    @classmethod
    def from_doc(cls, doc):
        total_days = _as_int(doc, "totalDays", minimum=1)
        present_days = _as_int(doc, "presentDays", minimum=0)
        if present_days > total_days:
            raise InvalidRecord(
                "presentDays",
                f"present days ({present_days}) cannot exceed total days ({total_days})",
            )
        return cls(
            student_id=_as_id(doc, "studentId"),
            subject_id=_as_id(doc, "subjectId"),
            month=parse_month(doc.get("month")),
            total_days=total_days,
            present_days=present_days,
        )

    def as_doc(self):
        return {
            "studentId": self.student_id,
            "subjectId": self.subject_id,
            "month": self.month,
            "totalDays": self.total_days,
            "presentDays": self.present_days,
        }


@dataclass(frozen=True)
class DailyAttendanceEntry:
    marked_at: datetime
    status: str

    @classmethod
    def from_doc(cls, doc):
        status = str(_require(doc, "status")).strip().lower()
        if status not in DAILY_STATUSES:
            raise InvalidRecord("status", "must be 'present' or 'absent'")
        return cls(marked_at=parse_timestamp(doc.get("markedAt")), status=status)


@dataclass(frozen=True)
class MarkRecord:
    subject_id: str
    midterm: float
    endterm: float
    internal: float
    student_id: Optional[str] = None
    grade: Optional[str] = None

    @property
    def total(self):
        return self.midterm + self.endterm + self.internal

    @classmethod
    def from_doc(cls, doc):
        grade = doc.get("grade")
        student_id = doc.get("studentId")
        return cls(
            subject_id=_as_id(doc, "subjectId"),
            midterm=_as_number(doc, "midterm"),
            endterm=_as_number(doc, "endterm"),
            internal=_as_number(doc, "internal"),
            student_id=str(student_id) if student_id is not None else None,
            grade=str(grade).strip() if grade not in (None, "") else None,
        )

    def as_doc(self):
        return {
            "studentId": self.student_id,
            "subjectId": self.subject_id,
            "midterm": self.midterm,
            "endterm": self.endterm,
            "internal": self.internal,
            "grade": self.grade,
        }


@dataclass(frozen=True)
class GradeRecord:
    grade: str

    @classmethod
    def from_doc(cls, doc):
        grade = doc.get("grade")
        return cls(grade="" if grade is None else str(grade).strip())


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    code: Optional[str] = None

    @classmethod
    def from_doc(cls, doc):
        code = doc.get("code")
        return cls(
            id=_doc_id(doc),
            name=str(_require(doc, "name")).strip(),
            code=str(code).strip() if code else None,
        )


@dataclass(frozen=True)
class LibraryBook:
    total_copies: int
    available_copies: int
    title: Optional[str] = None

    @classmethod
    def from_doc(cls, doc):
        if "availableCopies" not in doc and "copiesAvailable" in doc:
            doc = dict(doc, availableCopies=doc["copiesAvailable"])
        total_copies = _as_int(doc, "totalCopies", minimum=0)
        available_copies = _as_int(doc, "availableCopies", minimum=0)
        if available_copies > total_copies:
            raise InvalidRecord(
                "availableCopies",
                f"available copies ({available_copies}) cannot exceed total copies ({total_copies})",
            )
        return cls(
            total_copies=total_copies,
            available_copies=available_copies,
            title=doc.get("title"),
        )


@dataclass(frozen=True)
class BookIssue:
    book_id: str
    student_id: str
    status: str = "issued"

    @classmethod
    def from_doc(cls, doc):
        return cls(
            book_id=_as_id(doc, "bookId"),
            student_id=_as_id(doc, "studentId"),
            status=str(doc.get("status") or "issued").strip().lower(),
        )


def load_records(docs, factory):
    """
    Build records from raw documents, skipping the ones that fail validation.
    ``factory`` is a ``from_doc`` constructor.
    """
    records = []
    for doc in docs:
        try:
            records.append(factory(doc))
        except InvalidRecord as e:
            logger.warning("Skipping invalid document %s: %s", doc.get("_id"), e)
    return records
