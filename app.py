# app.py
import io
import os
import time
import zipfile
from datetime import datetime, date
from functools import wraps

from flask import Flask, request, session, jsonify, send_file, abort, g
from werkzeug.exceptions import HTTPException
from pymongo import MongoClient
import certifi
from bson.objectid import ObjectId
from bson.errors import InvalidId

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Table, TableStyle, Spacer
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet

import analytics
from config import Config
from models import (
    InvalidRecord, AttendanceRecord, DailyAttendanceEntry, MarkRecord, GradeRecord,
    Subject, LibraryBook, BookIssue, load_records,
)
from utils import hash_password, check_password, save_file, allowed_file, read_marks_sheet

# ----------------- Config & Setup -----------------
app = Flask(__name__)
app.config.from_object(Config)
# Chart buckets are returned in display order
app.json.sort_keys = False

_client = None


def get_db():
    """Return the portal database, connecting on first use."""
    global _client
    if _client is None:
        options = {"tls": True, "tlsCAFile": certifi.where()} if app.config["MONGO_TLS"] else {}
        _client = MongoClient(app.config["MONGO_URI"], **options)
    return _client.get_database()


# ----------------- Logging & Errors -----------------
@app.before_request
def start_timer():
    g.request_started = time.perf_counter()


@app.after_request
def log_request(response):
    if request.path.startswith("/api"):
        started = g.get("request_started", time.perf_counter())
        duration = int((time.perf_counter() - started) * 1000)
        app.logger.info("%s %s %s in %dms", request.method, request.path, response.status_code, duration)
    return response


@app.errorhandler(InvalidRecord)
def handle_invalid_record(e):
    return jsonify({"message": "Validation failed", "errors": [str(e)]}), 400


@app.errorhandler(HTTPException)
def handle_http_error(e):
    return jsonify({"message": e.description}), e.code


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    app.logger.exception("Server Error: %s", e)
    return jsonify({"message": "Internal Server Error"}), 500


# ----------------- Helpers -----------------
def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if "user" not in session:
            return jsonify({"message": "Unauthorized: Login required"}), 401
        return f(*args, **kwargs)
    return wrapper


def admin_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        u = session.get("user")
        if not u or u.get("role") != "admin":
            return jsonify({"message": "Forbidden: Admin access required"}), 403
        return f(*args, **kwargs)
    return wrapper


def super_admin_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        u = session.get("user")
        if not u or u.get("role") != "admin" or u.get("admin_role") != "super_admin":
            return jsonify({"message": "Forbidden: Super Admin access required"}), 403
        return f(*args, **kwargs)
    return wrapper


def current_user():
    return session.get("user") or {}


def student_scope():
    """Mongo filter limiting a student to their own records; admins see everything."""
    u = current_user()
    if u.get("role") == "student":
        return {"studentId": u["id"]}
    return {}


def serialize(doc):
    if not doc:
        return doc
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    doc.pop("password", None)
    for key, value in doc.items():
        if isinstance(value, (datetime, date)):
            doc[key] = value.isoformat()
    return doc


def to_object_id(value, label):
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        abort(404, description=f"{label} not found")


def find_or_404(collection, item_id, label):
    doc = get_db()[collection].find_one({"_id": to_object_id(item_id, label)})
    if not doc:
        abort(404, description=f"{label} not found")
    return doc


def json_body():
    return request.get_json(silent=True) or {}


def require_fields(body, *fields):
    missing = [f for f in fields if not str(body.get(f) or "").strip()]
    if missing:
        raise InvalidRecord(missing[0], "is required")


def ensure_references(doc):
    """Attendance and marks must point at an existing student and subject."""
    db = get_db()
    for key, collection, label in (("studentId", "students", "Student"),
                                   ("subjectId", "subjects", "Subject")):
        if not doc.get(key):
            raise InvalidRecord(key, "is required")
        try:
            oid = ObjectId(doc[key])
        except (InvalidId, TypeError):
            raise InvalidRecord(key, f"{label} does not exist")
        if not db[collection].find_one({"_id": oid}, {"_id": 1}):
            raise InvalidRecord(key, f"{label} does not exist")


def update_doc(collection, item_id, label, build, unique=None):
    """Merge the request body into the stored document, re-validate and save.

    ``unique`` is a (field, message) pair; another document already holding
    the field's new value makes the update a 409.
    """
    existing = find_or_404(collection, item_id, label)
    merged = dict(existing, **json_body())
    doc = build(merged)
    if unique:
        field, message = unique
        if get_db()[collection].find_one({field: doc[field], "_id": {"$ne": existing["_id"]}}):
            return jsonify({"message": message}), 409
    doc["updatedAt"] = datetime.utcnow()
    get_db()[collection].update_one({"_id": existing["_id"]}, {"$set": doc})
    return jsonify(serialize(get_db()[collection].find_one({"_id": existing["_id"]})))


def delete_doc(collection, item_id, label):
    result = get_db()[collection].delete_one({"_id": to_object_id(item_id, label)})
    if result.deleted_count == 0:
        abort(404, description=f"{label} not found")
    return jsonify({"success": True, "message": f"{label} deleted successfully"})


def create_doc(collection, doc):
    doc["createdAt"] = datetime.utcnow()
    result = get_db()[collection].insert_one(doc)
    return serialize(get_db()[collection].find_one({"_id": result.inserted_id}))


def shelve_copy(book_id):
    """Put one issued copy back, never past the book's total."""
    db = get_db()
    book = db.library_books.find_one({"_id": to_object_id(book_id, "Library book")}, {"totalCopies": 1})
    if book is None:
        return
    db.library_books.update_one(
        {"_id": book["_id"], "availableCopies": {"$lt": book.get("totalCopies", 0)}},
        {"$inc": {"availableCopies": 1}},
    )


# ----------------- Document builders -----------------
def build_student(body):
    require_fields(body, "rollNo", "name")
    roll_no = str(body["rollNo"]).strip().upper()
    doc = {"rollNo": roll_no, "name": str(body["name"]).strip()}
    if body.get("password") and not str(body["password"]).startswith("$2b$"):
        # Student passwords are case-insensitive
        doc["password"] = hash_password(str(body["password"]).lower())
    elif not body.get("password"):
        doc["password"] = hash_password(roll_no.lower())
    return doc


def build_subject(body):
    require_fields(body, "code", "name")
    return {
        "code": str(body["code"]).strip().upper(),
        "name": str(body["name"]).strip(),
        "instructor": body.get("instructor"),
    }


def build_attendance(body):
    record = AttendanceRecord.from_doc(body)
    doc = record.as_doc()
    ensure_references(doc)
    doc.update(analytics.annotate_attendance(record))
    return doc


def build_marks(body):
    doc = MarkRecord.from_doc(body).as_doc()
    ensure_references(doc)
    return doc


def build_book(body):
    require_fields(body, "title", "author")
    book = LibraryBook.from_doc(body)
    return {
        "title": str(body["title"]).strip(),
        "author": str(body["author"]).strip(),
        "totalCopies": book.total_copies,
        "availableCopies": book.available_copies,
    }


def build_notice(body):
    require_fields(body, "title", "content")
    return {
        "title": str(body["title"]).strip(),
        "content": str(body["content"]).strip(),
        "author": current_user().get("username"),
    }


def validate_batch(records, build):
    """Build every record first; nothing is stored unless all of them are valid."""
    if not isinstance(records, list) or not records:
        raise InvalidRecord("records", "must be a non-empty list")

    docs, errors = [], []
    for index, body in enumerate(records):
        try:
            docs.append(build(body if isinstance(body, dict) else {}))
        except InvalidRecord as e:
            errors.append(f"Record {index + 1}: {e}")
    return docs, errors


# ----------------- Auth -----------------
@app.route("/api/login", methods=["POST"])
def login():
    """
    Handles both admin and student login.
    Expects JSON fields: role, username, password
    """
    body = json_body()
    role = body.get("role")
    username = str(body.get("username") or "").strip()
    password = str(body.get("password") or "").strip()

    if not username or not password or not role:
        return jsonify({"message": "Username, password, and role are required"}), 400

    db = get_db()
    session.clear()
    if role == "admin":
        admin = db.admins.find_one({"name": username})
        if not admin or not check_password(password, admin["password"]):
            return jsonify({"message": "Invalid admin credentials"}), 401
        session["user"] = {
            "id": str(admin["_id"]),
            "role": "admin",
            "admin_role": admin.get("role", "admin"),
            "username": admin["name"],
        }
        return jsonify({"success": True, "user": current_user()})

    elif role == "student":
        student = db.students.find_one({"rollNo": username.upper()})
        if not student or not check_password(password.lower(), student["password"]):
            return jsonify({"message": "Invalid student credentials"}), 401
        session["user"] = {
            "id": str(student["_id"]),
            "role": "student",
            "username": student["rollNo"],
            "name": student.get("name"),
        }
        return jsonify({"success": True, "user": current_user()})

    return jsonify({"message": "Invalid role"}), 400


@app.route("/api/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify({"success": True, "message": "Logged out successfully"})


@app.route("/api/me")
@login_required
def me():
    return jsonify(current_user())


# ----------------- Admins -----------------
@app.route("/api/admins")
@super_admin_required
def list_admins():
    return jsonify([serialize(a) for a in get_db().admins.find().sort("name", 1)])


@app.route("/api/admins", methods=["POST"])
@super_admin_required
def create_admin():
    body = json_body()
    require_fields(body, "name", "password")
    role = body.get("role", "admin")
    if role not in ("admin", "super_admin"):
        raise InvalidRecord("role", "must be 'admin' or 'super_admin'")

    db = get_db()
    name = str(body["name"]).strip()
    if db.admins.find_one({"name": name}):
        return jsonify({"message": "Admin already exists"}), 409
    admin = create_doc("admins", {"name": name, "password": hash_password(body["password"]), "role": role})
    return jsonify(admin), 201


@app.route("/api/admins/<admin_id>", methods=["DELETE"])
@super_admin_required
def delete_admin(admin_id):
    db = get_db()
    admin = find_or_404("admins", admin_id, "Admin")
    if admin.get("role") == "super_admin" and db.admins.count_documents({"role": "super_admin"}) <= 1:
        return jsonify({"message": "Cannot delete the last super admin"}), 400
    return delete_doc("admins", admin_id, "Admin")


# ----------------- Students -----------------
@app.route("/api/students")
@login_required
def list_students():
    """All students with their attendance %, average marks and open book issues."""
    db = get_db()
    attendance = load_records(db.attendance.find(), AttendanceRecord.from_doc)
    marks = load_records(db.marks.find(), MarkRecord.from_doc)
    issues = load_records(db.book_issues.find(), BookIssue.from_doc)

    students = []
    for st in db.students.find().sort("rollNo", 1):
        sid = str(st["_id"])
        summary = analytics.compute_student_summary(
            [a for a in attendance if a.student_id == sid],
            [m for m in marks if m.student_id == sid],
            [i for i in issues if i.student_id == sid],
        )
        students.append(dict(serialize(st), **summary))
    return jsonify(students)


@app.route("/api/students", methods=["POST"])
@admin_required
def create_student():
    doc = build_student(json_body())
    if get_db().students.find_one({"rollNo": doc["rollNo"]}):
        return jsonify({"message": "Roll number already exists"}), 409
    return jsonify(create_doc("students", doc)), 201


@app.route("/api/students/<student_id>", methods=["PUT"])
@admin_required
def update_student(student_id):
    return update_doc("students", student_id, "Student", build_student,
                      unique=("rollNo", "Roll number already exists"))


@app.route("/api/students/<student_id>", methods=["DELETE"])
@admin_required
def delete_student(student_id):
    response = delete_doc("students", student_id, "Student")
    db = get_db()
    # Copies still out with this student go back on the shelf
    for issue in db.book_issues.find({"studentId": student_id, "status": "issued"}):
        shelve_copy(issue["bookId"])
    for collection in ("attendance", "daily_attendance", "marks", "book_issues"):
        db[collection].delete_many({"studentId": student_id})
    return response


# ----------------- Subjects -----------------
@app.route("/api/subjects")
@login_required
def list_subjects():
    return jsonify([serialize(s) for s in get_db().subjects.find().sort("code", 1)])


@app.route("/api/subjects", methods=["POST"])
@admin_required
def create_subject():
    doc = build_subject(json_body())
    if get_db().subjects.find_one({"code": doc["code"]}):
        return jsonify({"message": "Subject code already exists"}), 409
    return jsonify(create_doc("subjects", doc)), 201


@app.route("/api/subjects/<subject_id>", methods=["PUT"])
@admin_required
def update_subject(subject_id):
    return update_doc("subjects", subject_id, "Subject", build_subject,
                      unique=("code", "Subject code already exists"))


@app.route("/api/subjects/<subject_id>", methods=["DELETE"])
@admin_required
def delete_subject(subject_id):
    response = delete_doc("subjects", subject_id, "Subject")
    db = get_db()
    db.attendance.delete_many({"subjectId": subject_id})
    db.marks.delete_many({"subjectId": subject_id})
    return response


# ----------------- Attendance -----------------
@app.route("/api/attendance")
@login_required
def list_attendance():
    docs = get_db().attendance.find(student_scope()).sort("month", -1)
    return jsonify([serialize(a) for a in docs])


@app.route("/api/attendance", methods=["POST"])
@admin_required
def create_attendance():
    return jsonify(create_doc("attendance", build_attendance(json_body()))), 201


@app.route("/api/attendance/batch", methods=["POST"])
@admin_required
def create_attendance_batch():
    docs, errors = validate_batch(json_body().get("records"), build_attendance)
    if errors:
        return jsonify({"message": "Validation failed", "errors": errors}), 400
    return jsonify([create_doc("attendance", d) for d in docs]), 201


@app.route("/api/attendance/daily", methods=["POST"])
@admin_required
def mark_daily_attendance():
    body = json_body()
    require_fields(body, "studentId")
    entry = DailyAttendanceEntry.from_doc(dict(body, markedAt=body.get("markedAt") or datetime.utcnow()))
    find_or_404("students", body["studentId"], "Student")
    doc = {"studentId": str(body["studentId"]), "markedAt": entry.marked_at, "status": entry.status}
    return jsonify(create_doc("daily_attendance", doc)), 201


@app.route("/api/attendance/<attendance_id>", methods=["PUT"])
@admin_required
def update_attendance(attendance_id):
    return update_doc("attendance", attendance_id, "Attendance record", build_attendance)


@app.route("/api/attendance/<attendance_id>", methods=["DELETE"])
@admin_required
def delete_attendance(attendance_id):
    return delete_doc("attendance", attendance_id, "Attendance record")


# ----------------- Marks -----------------
@app.route("/api/marks")
@login_required
def list_marks():
    return jsonify([serialize(m) for m in get_db().marks.find(student_scope())])


@app.route("/api/marks", methods=["POST"])
@admin_required
def create_marks():
    return jsonify(create_doc("marks", build_marks(json_body()))), 201


@app.route("/api/marks/batch", methods=["POST"])
@admin_required
def create_marks_batch():
    docs, errors = validate_batch(json_body().get("records"), build_marks)
    if errors:
        return jsonify({"message": "Validation failed", "errors": errors}), 400
    return jsonify([create_doc("marks", d) for d in docs]), 201


@app.route("/api/marks/upload", methods=["POST"])
@admin_required
def upload_marks():
    """Upload a CSV/Excel marks sheet: rollNo, subjectCode, midterm, endterm, internal[, grade]."""
    file = request.files.get("file")
    if not file or not file.filename:
        return jsonify({"message": "Attach a CSV or Excel file"}), 400
    if not allowed_file(file.filename):
        return jsonify({"message": "Only CSV or Excel files are accepted"}), 400

    save_file(file, app.config["UPLOAD_FOLDER"], "marks")
    file.stream.seek(0)
    try:
        rows = read_marks_sheet(file.stream, file.filename)
    except (ValueError, KeyError, zipfile.BadZipFile) as e:
        return jsonify({"message": f"File read error: {e}"}), 400

    db = get_db()
    students = {s["rollNo"]: str(s["_id"]) for s in db.students.find({}, {"rollNo": 1})}
    subjects = {s["code"]: str(s["_id"]) for s in db.subjects.find({}, {"code": 1})}

    created, errors = 0, []
    for line, row in enumerate(rows, start=2):
        student_id = students.get(str(row.get("rollNo") or "").upper())
        subject_id = subjects.get(str(row.get("subjectCode") or "").upper())
        if not student_id or not subject_id:
            errors.append(f"Row {line}: unknown student or subject")
            continue
        try:
            record = MarkRecord.from_doc(dict(row, studentId=student_id, subjectId=subject_id))
        except InvalidRecord as e:
            errors.append(f"Row {line}: {e}")
            continue
        create_doc("marks", record.as_doc())
        created += 1

    return jsonify({"created": created, "skipped": len(errors), "errors": errors}), 201


@app.route("/api/marks/<marks_id>", methods=["PUT"])
@admin_required
def update_marks(marks_id):
    return update_doc("marks", marks_id, "Marks record", build_marks)


@app.route("/api/marks/<marks_id>", methods=["DELETE"])
@admin_required
def delete_marks(marks_id):
    return delete_doc("marks", marks_id, "Marks record")


# ----------------- Library -----------------
@app.route("/api/library/books")
@login_required
def list_books():
    return jsonify([serialize(b) for b in get_db().library_books.find().sort("title", 1)])


@app.route("/api/library/books", methods=["POST"])
@admin_required
def create_book():
    return jsonify(create_doc("library_books", build_book(json_body()))), 201


@app.route("/api/library/books/<book_id>", methods=["PUT"])
@admin_required
def update_book(book_id):
    return update_doc("library_books", book_id, "Library book", build_book)


@app.route("/api/library/books/<book_id>", methods=["DELETE"])
@admin_required
def delete_book(book_id):
    return delete_doc("library_books", book_id, "Library book")


@app.route("/api/library/issues")
@login_required
def list_issues():
    return jsonify([serialize(i) for i in get_db().book_issues.find(student_scope())])


@app.route("/api/library/issues", methods=["POST"])
@admin_required
def issue_book():
    body = json_body()
    require_fields(body, "bookId", "studentId", "dueDate")
    db = get_db()
    book = find_or_404("library_books", body["bookId"], "Library book")
    find_or_404("students", body["studentId"], "Student")
    # Check and decrement in one step so two requests cannot take the last copy
    taken = db.library_books.find_one_and_update(
        {"_id": book["_id"], "availableCopies": {"$gt": 0}},
        {"$inc": {"availableCopies": -1}},
    )
    if taken is None:
        return jsonify({"message": "No copies available"}), 400

    issue = create_doc("book_issues", {
        "bookId": str(book["_id"]),
        "studentId": str(body["studentId"]),
        "issueDate": body.get("issueDate") or date.today().isoformat(),
        "dueDate": body["dueDate"],
        "returnDate": None,
        "status": "issued",
    })
    return jsonify(issue), 201


@app.route("/api/library/issues/<issue_id>/return", methods=["PUT"])
@admin_required
def return_book(issue_id):
    db = get_db()
    issue = find_or_404("book_issues", issue_id, "Book issue")
    return_date = json_body().get("returnDate") or date.today().isoformat()
    # Only the request that flips the status puts the copy back
    returned = db.book_issues.find_one_and_update(
        {"_id": issue["_id"], "status": {"$ne": "returned"}},
        {"$set": {"status": "returned", "returnDate": return_date}},
    )
    if returned is None:
        return jsonify({"message": "Book already returned"}), 400

    shelve_copy(issue["bookId"])
    return jsonify(serialize(db.book_issues.find_one({"_id": issue["_id"]})))


# ----------------- Notices -----------------
@app.route("/api/notices")
@login_required
def list_notices():
    return jsonify([serialize(n) for n in get_db().notices.find().sort([("createdAt", -1), ("_id", -1)])])


@app.route("/api/notices", methods=["POST"])
@admin_required
def create_notice():
    return jsonify(create_doc("notices", build_notice(json_body()))), 201


@app.route("/api/notices/<notice_id>", methods=["PUT"])
@admin_required
def update_notice(notice_id):
    return update_doc("notices", notice_id, "Notice", build_notice)


@app.route("/api/notices/<notice_id>", methods=["DELETE"])
@admin_required
def delete_notice(notice_id):
    return delete_doc("notices", notice_id, "Notice")


# ----------------- Stats -----------------
def monthly_attendance_stats():
    records = load_records(get_db().attendance.find(student_scope()), AttendanceRecord.from_doc)
    return [s.to_dict() for s in analytics.compute_monthly_attendance(records)]


def daily_attendance_stats():
    entries = load_records(get_db().daily_attendance.find(student_scope()), DailyAttendanceEntry.from_doc)
    return [s.to_dict() for s in analytics.compute_monthly_attendance(entries)]


def attendance_status_stats():
    docs = get_db().attendance.find(student_scope(), {"status": 1})
    return analytics.compute_daily_attendance_status_counts(docs)


def marks_distribution_stats():
    marks = load_records(get_db().marks.find(student_scope()), MarkRecord.from_doc)
    return [b.to_dict() for b in analytics.bucket_marks_distribution(marks)]


def subject_performance_stats():
    db = get_db()
    marks = load_records(db.marks.find(student_scope()), MarkRecord.from_doc)
    subjects = load_records(db.subjects.find().sort("code", 1), Subject.from_doc)
    return [s.to_dict() for s in analytics.compute_subject_averages(marks, subjects)]


def grade_stats():
    query = dict(student_scope(), grade={"$nin": [None, ""]})
    grades = load_records(get_db().marks.find(query, {"grade": 1}), GradeRecord.from_doc)
    return analytics.group_grades(grades)


def library_stats():
    books = load_records(get_db().library_books.find(), LibraryBook.from_doc)
    return analytics.compute_library_availability(books).to_dict()


@app.route("/api/stats/attendance/monthly")
@login_required
def stats_attendance_monthly():
    return jsonify(monthly_attendance_stats())


@app.route("/api/stats/attendance/daily-monthly")
@login_required
def stats_attendance_daily_monthly():
    return jsonify(daily_attendance_stats())


@app.route("/api/stats/attendance/status")
@login_required
def stats_attendance_status():
    return jsonify(attendance_status_stats())


@app.route("/api/stats/marks/distribution")
@login_required
def stats_marks_distribution():
    return jsonify(marks_distribution_stats())


@app.route("/api/stats/marks/subjects")
@login_required
def stats_subject_performance():
    return jsonify(subject_performance_stats())


@app.route("/api/stats/grades")
@login_required
def stats_grades():
    return jsonify(grade_stats())


@app.route("/api/stats/library")
@login_required
def stats_library():
    return jsonify(library_stats())


@app.route("/api/stats/overview")
@login_required
def stats_overview():
    return jsonify({
        "attendanceMonthly": monthly_attendance_stats(),
        "attendanceDaily": daily_attendance_stats(),
        "attendanceStatus": attendance_status_stats(),
        "marksDistribution": marks_distribution_stats(),
        "subjectPerformance": subject_performance_stats(),
        "grades": grade_stats(),
        "library": library_stats(),
    })


# ----------------- Report card -----------------
@app.route("/api/students/<student_id>/report.pdf")
@login_required
def download_report(student_id):
    """
    Generates a PDF report card with per-subject marks, attendance and
    eligibility for a student. Students may only download their own.
    """
    u = current_user()
    if u.get("role") == "student" and u.get("id") != student_id:
        return jsonify({"message": "Forbidden: Student access required"}), 403

    db = get_db()
    student = find_or_404("students", student_id, "Student")
    subjects = load_records(db.subjects.find().sort("code", 1), Subject.from_doc)
    marks = load_records(db.marks.find({"studentId": student_id}), MarkRecord.from_doc)
    attendance = load_records(db.attendance.find({"studentId": student_id}), AttendanceRecord.from_doc)
    if not marks and not attendance:
        return jsonify({"message": "No marks or attendance found for this student"}), 404

    threshold = app.config["ATTENDANCE_THRESHOLD"]
    summary = analytics.compute_student_summary(attendance, marks, [])
    overall = analytics.classify_attendance_percentage(float(summary["attendancePercentage"]))

    # ---- PDF Setup ----
    buffer = io.BytesIO()
    pdf = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=40,
        leftMargin=40,
        topMargin=60,
        bottomMargin=50,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "title",
        fontName="Helvetica-Bold",
        fontSize=20,
        textColor=colors.HexColor("#FF4B2B"),
        alignment=1,
        spaceAfter=10,
    )
    normal_style = ParagraphStyle(
        "normal",
        fontName="Helvetica",
        fontSize=11,
        leading=15,
        textColor=colors.HexColor("#333333"),
    )

    elements = [
        Paragraph(f"<b>{app.config['COLLEGE_NAME']}</b>", title_style),
        Paragraph("Student Report Card", styles["Normal"]),
        Spacer(1, 12),
        Paragraph(f"<b>Name:</b> {student.get('name', '')}<br/><b>Roll No:</b> {student.get('rollNo', '')}",
                  normal_style),
        Spacer(1, 18),
    ]

    def draw_watermark(canvas_obj, doc):
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica-Bold", 42)
        canvas_obj.setFillGray(0.9, 0.1)
        canvas_obj.rotate(45)
        canvas_obj.drawString(200, 150, "STUDENT REPORT")
        canvas_obj.restoreState()

    # ---- Table ----
    data = [["Subject", "Midterm", "Endterm", "Internal", "Total", "Attendance (%)", "Status"]]
    for subject in subjects:
        subject_marks = [m for m in marks if m.subject_id == subject.id]
        subject_attendance = [a for a in attendance if a.subject_id == subject.id]
        if not subject_marks and not subject_attendance:
            continue
        present = sum(a.present_days for a in subject_attendance)
        total_days = sum(a.total_days for a in subject_attendance)
        att = round(analytics.attendance_percentage(present, total_days), 1)
        status = "Eligible" if att >= threshold else "Shortage"
        for m in subject_marks or [None]:
            if m is None:
                data.append([subject.code or subject.name, "-", "-", "-", "-", att, status])
            else:
                data.append([subject.code or subject.name, m.midterm, m.endterm, m.internal, m.total, att, status])

    table = Table(
        data,
        colWidths=[1.6 * inch, 0.8 * inch, 0.8 * inch, 0.8 * inch, 0.7 * inch, 1.1 * inch, 0.9 * inch],
        hAlign="CENTER",
    )
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#FF6F3C")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("GRID", (0, 0), (-1, -1), 0.3, colors.lightgrey),
                ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.Color(1, 0.97, 0.93)]),
            ]
        )
    )
    elements.append(table)
    elements.append(Spacer(1, 25))

    # ---- Summary ----
    summary_html = f"""
    <para align='center'>
    <font size=12 color='#FF4B2B'>
    <b>Average Marks:</b> {summary['avgMarks']} &nbsp;&nbsp;|&nbsp;&nbsp;
    <b>Attendance:</b> {summary['attendancePercentage']}% ({overall.label})<br/>
    <b>Date Generated:</b> {datetime.now().strftime('%d %B %Y')}
    </font>
    </para>
    """
    elements.append(Paragraph(summary_html, styles["Normal"]))
    elements.append(Spacer(1, 15))
    elements.append(Paragraph(
        "<para align='center'><font size=9 color='#999999'>"
        "Generated by College Portal | This is a system-generated report."
        "</font></para>",
        styles["Normal"],
    ))

    pdf.build(elements, onFirstPage=draw_watermark, onLaterPages=draw_watermark)

    buffer.seek(0)
    filename = f"{student.get('rollNo', student_id)}_Report.pdf"
    return send_file(buffer, as_attachment=True, download_name=filename, mimetype="application/pdf")


# ----------------- Run -----------------
if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1")
