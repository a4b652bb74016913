"""
Unit Tests for record validation
"""
import logging
from datetime import datetime, timezone

import pytest

from models import (
    AttendanceRecord, BookIssue, DailyAttendanceEntry, GradeRecord, InvalidRecord,
    LibraryBook, MarkRecord, Subject, load_records, parse_month,
)


class TestAttendanceRecord:

    def test_from_doc(self):
        record = AttendanceRecord.from_doc({
            "studentId": "abc", "subjectId": "def", "month": "2024-05", "totalDays": 20, "presentDays": "18",
        })

        assert record == AttendanceRecord(month="2024-05", total_days=20, present_days=18,
                                          student_id="abc", subject_id="def")

    def test_missing_month_is_none(self):
        record = AttendanceRecord.from_doc({"studentId": 1, "subjectId": 2, "totalDays": 5, "presentDays": 5})

        assert record.month is None
        assert record.student_id == "1"

    def test_present_cannot_exceed_total(self):
        with pytest.raises(InvalidRecord) as exc:
            AttendanceRecord.from_doc({"studentId": 1, "subjectId": 2, "totalDays": 5, "presentDays": 6})

        assert exc.value.field == "presentDays"

    @pytest.mark.parametrize("total_days", [0, -3, "ten", 2.5, True])
    def test_total_days_must_be_positive_integer(self, total_days):
        with pytest.raises(InvalidRecord):
            AttendanceRecord.from_doc({"studentId": 1, "subjectId": 2, "totalDays": total_days, "presentDays": 0})

    def test_as_doc(self):
        record = AttendanceRecord(month="2024-01", total_days=10, present_days=9, student_id="a", subject_id="b")

        assert record.as_doc() == {
            "studentId": "a", "subjectId": "b", "month": "2024-01", "totalDays": 10, "presentDays": 9,
        }


class TestParseMonth:

    @pytest.mark.parametrize("value", ["2024-13", "2024-00", "May 2024", "2024-5"])
    def test_rejects_malformed_months(self, value):
        with pytest.raises(InvalidRecord):
            parse_month(value)

    def test_accepts_valid_month(self):
        assert parse_month(" 2024-12 ") == "2024-12"

    def test_empty_is_unknown(self):
        assert parse_month("") is None


class TestDailyAttendanceEntry:

    def test_parses_utc_timestamp(self):
        entry = DailyAttendanceEntry.from_doc({"markedAt": "2024-05-02T09:30:00Z", "status": "Present"})

        assert entry.marked_at == datetime(2024, 5, 2, 9, 30, tzinfo=timezone.utc)
        assert entry.status == "present"

    def test_accepts_datetime(self):
        stamp = datetime(2024, 5, 2, 9, 30)

        assert DailyAttendanceEntry.from_doc({"markedAt": stamp, "status": "absent"}).marked_at == stamp

    def test_rejects_unknown_status(self):
        with pytest.raises(InvalidRecord):
            DailyAttendanceEntry.from_doc({"markedAt": "2024-05-02", "status": "late"})

    def test_rejects_bad_timestamp(self):
        with pytest.raises(InvalidRecord):
            DailyAttendanceEntry.from_doc({"markedAt": "yesterday", "status": "present"})


class TestMarkRecord:

    def test_total(self):
        record = MarkRecord.from_doc({"subjectId": "s1", "midterm": "20", "endterm": 40.0, "internal": 12.5})

        assert record.midterm == 20
        assert record.endterm == 40
        assert record.total == 72.5
        assert record.grade is None

    def test_total_above_hundred_is_allowed(self):
        record = MarkRecord.from_doc({"subjectId": "s1", "midterm": 50, "endterm": 50, "internal": 20})

        assert record.total == 120

    @pytest.mark.parametrize("value", [-1, "abc", float("nan"), None])
    def test_rejects_bad_numbers(self, value):
        with pytest.raises(InvalidRecord):
            MarkRecord.from_doc({"subjectId": "s1", "midterm": value, "endterm": 0, "internal": 0})

    def test_keeps_grade_and_student(self):
        record = MarkRecord.from_doc({
            "studentId": "st1", "subjectId": "s1", "midterm": 1, "endterm": 1, "internal": 1, "grade": " A+ ",
        })

        assert record.grade == "A+"
        assert record.as_doc()["studentId"] == "st1"


class TestOtherRecords:

    def test_grade_defaults_to_empty(self):
        assert GradeRecord.from_doc({}).grade == ""

    def test_subject_uses_mongo_id(self):
        subject = Subject.from_doc({"_id": 42, "name": "Operating Systems", "code": "CS303"})

        assert subject == Subject(id="42", name="Operating Systems", code="CS303")

    def test_library_book_accepts_copies_available(self):
        book = LibraryBook.from_doc({"totalCopies": 4, "copiesAvailable": 2})

        assert book.available_copies == 2

    def test_library_book_rejects_more_available_than_total(self):
        with pytest.raises(InvalidRecord):
            LibraryBook.from_doc({"totalCopies": 1, "availableCopies": 2})

    def test_book_issue_status_defaults_to_issued(self):
        assert BookIssue.from_doc({"bookId": "b", "studentId": "s"}).status == "issued"


class TestLoadRecords:

    def test_skips_invalid_documents(self, caplog):
        docs = [
            {"_id": 1, "totalCopies": 3, "availableCopies": 1},
            {"_id": 2, "totalCopies": "many", "availableCopies": 1},
        ]

        with caplog.at_level(logging.WARNING, logger="models"):
            books = load_records(docs, LibraryBook.from_doc)

        assert books == [LibraryBook(total_copies=3, available_copies=1)]
        assert "Skipping invalid document 2" in caplog.text
