"""
Aggregations behind the dashboard charts.

Every function here is pure: it takes already-validated records from
``models`` and returns freshly built summaries. Nothing is cached and the
inputs are never mutated, so the same record list can be shared between
concurrent requests.
"""
from collections import OrderedDict
from dataclasses import dataclass
from typing import NamedTuple, Optional

from models import AttendanceRecord, DailyAttendanceEntry, MONTH_PATTERN

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

GOOD_THRESHOLD = 80
AVERAGE_THRESHOLD = 60

STATUS_LABELS = OrderedDict([
    ("Good", "Good (>80%)"),
    ("Average", "Average (60-80%)"),
    ("Poor", "Poor (<60%)"),
])

MARK_RANGES = [
    ("0-20", 0, 20),
    ("21-40", 21, 40),
    ("41-60", 41, 60),
    ("61-80", 61, 80),
    ("81-100", 81, 100),
]

GRADE_GROUPS = OrderedDict([
    ("Excellent (A/A+)", ("A+", "A")),
    ("Good (B/B+)", ("B+", "B")),
    ("Average (C)", ("C",)),
    ("Poor (D/F)", ("D", "F")),
])
OTHER_GROUP = "Other"


# -------------------- Summary types -------------------- #
@dataclass(frozen=True)
class MonthlyAttendanceSummary:
    month: str
    present: int
    absent: int
    percentage: str

    def to_dict(self):
        return {
            "month": self.month,
            "present": self.present,
            "absent": self.absent,
            "percentage": self.percentage,
        }


class AttendanceStatus(NamedTuple):
    label: str
    severity: str


@dataclass(frozen=True)
class MarksDistributionBucket:
    range_label: str
    count: int

    def to_dict(self):
        return {"range": self.range_label, "students": self.count}


@dataclass(frozen=True)
class SubjectPerformanceSummary:
    name: str
    average: float
    student_count: int

    def to_dict(self):
        return {"name": self.name, "average": self.average, "students": self.student_count}


@dataclass(frozen=True)
class LibraryAvailability:
    total_books: int
    available_books: int
    issued_books: int
    title_count: int

    def to_dict(self):
        return {
            "totalBooks": self.total_books,
            "availableBooks": self.available_books,
            "issuedBooks": self.issued_books,
            "titleCount": self.title_count,
        }


# -------------------- Attendance -------------------- #
def month_label(month: Optional[str]) -> str:
    """'2024-05' -> 'May'. Suffixes outside 01..12 are returned unchanged."""
    if not month:
        return "Unknown"
    suffix = month[5:]
    try:
        number = int(suffix)
    except ValueError:
        return suffix
    if 1 <= number <= 12:
        return MONTH_NAMES[number - 1]
    return suffix


def month_sort_key(month: Optional[str]) -> Optional[int]:
    match = MONTH_PATTERN.match(month or "")
    if not match:
        return None
    year, number = int(match.group(1)), int(match.group(2))
    if not 1 <= number <= 12:
        return None
    return year * 12 + (number - 1)


def monthly_from_daily(entries):
    """
    Fold one-entry-per-day attendance into per-month records: every entry
    counts as a day, ``present`` entries count as present days.
    """
    months = OrderedDict()
    for entry in entries:
        key = entry.marked_at.strftime("%Y-%m")
        total, present = months.get(key, (0, 0))
        months[key] = (total + 1, present + (1 if entry.status == "present" else 0))

    return [
        AttendanceRecord(month=key, total_days=total, present_days=present)
        for key, (total, present) in months.items()
    ]


def compute_monthly_attendance(records):
    """
    Present/absent totals per month, in calendar order.

    Accepts ``AttendanceRecord`` items, ``DailyAttendanceEntry`` items or a mix
    of both. Months that cannot be placed on the calendar ("Unknown" and
    malformed keys) come last, in the order they were first seen.
    """
    monthly = [r for r in records if not isinstance(r, DailyAttendanceEntry)]
    daily = [r for r in records if isinstance(r, DailyAttendanceEntry)]
    if daily:
        monthly.extend(monthly_from_daily(daily))

    groups = OrderedDict()
    for record in monthly:
        group = groups.setdefault(record.month, {"present": 0, "absent": 0, "total": 0})
        group["present"] += record.present_days
        group["total"] += record.total_days
        group["absent"] += max(record.total_days - record.present_days, 0)

    ordered = sorted(
        groups.items(),
        key=lambda item: (month_sort_key(item[0]) is None, month_sort_key(item[0]) or 0),
    )

    summaries = []
    for month, group in ordered:
        if group["total"] > 0:
            percentage = f"{group['present'] / group['total'] * 100:.1f}"
        else:
            percentage = "0"
        summaries.append(MonthlyAttendanceSummary(
            month=month_label(month),
            present=group["present"],
            absent=group["absent"],
            percentage=percentage,
        ))
    return summaries


def attendance_percentage(present, total) -> float:
    if not total or total <= 0:
        return 0.0
    return present / total * 100


def classify_attendance_percentage(percentage) -> AttendanceStatus:
    if percentage >= GOOD_THRESHOLD:
        return AttendanceStatus("Good", "default")
    if percentage >= AVERAGE_THRESHOLD:
        return AttendanceStatus("Average", "secondary")
    return AttendanceStatus("Poor", "destructive")


def annotate_attendance(record):
    """Percentage and status stored alongside an attendance document."""
    percentage = attendance_percentage(record.present_days, record.total_days)
    return {
        "percentage": round(percentage, 1),
        "status": classify_attendance_percentage(percentage).label,
    }


def _status_of(item):
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return item.get("status")
    return getattr(item, "status", None)


def compute_daily_attendance_status_counts(records):
    """
    Tally records by their precomputed Good/Average/Poor status.
    Unknown statuses are ignored and empty buckets are left out.
    """
    counts = OrderedDict((key, 0) for key in STATUS_LABELS)
    for record in records:
        status = _status_of(record)
        if status in counts:
            counts[status] += 1

    return OrderedDict(
        (STATUS_LABELS[key], count) for key, count in counts.items() if count > 0
    )


# -------------------- Marks & grades -------------------- #
def bucket_marks_distribution(records):
    """
    Count mark totals per fixed range. Totals outside 0..100, or falling in
    the gaps between ranges, are not counted.
    """
    totals = [r.total for r in records]
    return [
        MarksDistributionBucket(label, sum(1 for t in totals if low <= t <= high))
        for label, low, high in MARK_RANGES
    ]


def compute_subject_averages(marks, subjects):
    summaries = []
    for subject in subjects:
        matching = [m for m in marks if m.subject_id == subject.id]
        average = sum(m.total for m in matching) / len(matching) if matching else 0
        summaries.append(SubjectPerformanceSummary(
            name=subject.code or subject.name,
            average=round(average, 1),
            student_count=len(matching),
        ))
    return summaries


def grade_group(grade) -> str:
    for group, grades in GRADE_GROUPS.items():
        if grade in grades:
            return group
    return OTHER_GROUP


def group_grades(records):
    counts = OrderedDict((group, 0) for group in list(GRADE_GROUPS) + [OTHER_GROUP])
    for record in records:
        counts[grade_group(record.grade)] += 1
    return OrderedDict((group, count) for group, count in counts.items() if count > 0)


# -------------------- Library -------------------- #
def compute_library_availability(books) -> LibraryAvailability:
    total_books = sum(b.total_copies for b in books)
    available_books = sum(b.available_copies for b in books)
    return LibraryAvailability(
        total_books=total_books,
        available_books=available_books,
        issued_books=max(total_books - available_books, 0),
        title_count=len(books),
    )


# -------------------- Per-student -------------------- #
def compute_student_summary(attendance, marks, issues):
    """Headline numbers shown next to each student in the admin listing."""
    total_days = sum(r.total_days for r in attendance)
    present_days = sum(r.present_days for r in attendance)
    avg_marks = sum(m.total for m in marks) / len(marks) if marks else 0

    return {
        "attendancePercentage": f"{attendance_percentage(present_days, total_days):.1f}",
        "avgMarks": f"{avg_marks:.1f}",
        "booksIssued": sum(1 for i in issues if i.status == "issued"),
    }
