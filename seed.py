"""
Seed the portal database with a super admin, subjects and library books.

    python seed.py [super-admin-name] [password]

Existing documents are left alone, so the script is safe to re-run.
"""
import sys
from datetime import datetime

from app import app, get_db
from utils import hash_password

SUBJECTS = [
    {"code": "CS301", "name": "Data Structures", "instructor": "Dr. Rao"},
    {"code": "CS302", "name": "Database Management Systems", "instructor": "Prof. Iyer"},
    {"code": "CS303", "name": "Operating Systems", "instructor": "Dr. Menon"},
    {"code": "CS304", "name": "Computer Networks", "instructor": "Prof. Shah"},
]

BOOKS = [
    {"title": "Database System Concepts", "author": "Abraham Silberschatz", "availableCopies": 2, "totalCopies": 4},
    {"title": "Operating System Concepts", "author": "Abraham Silberschatz", "availableCopies": 2, "totalCopies": 3},
    {"title": "Introduction to Algorithms", "author": "Thomas H. Cormen", "availableCopies": 3, "totalCopies": 5},
    {"title": "Computer Networking: A Top-Down Approach", "author": "James Kurose", "availableCopies": 1, "totalCopies": 2},
]


def seed(admin_name="superadmin", admin_password="changeme"):
    db = get_db()

    if not db.admins.find_one({"name": admin_name}):
        db.admins.insert_one({
            "name": admin_name,
            "password": hash_password(admin_password),
            "role": "super_admin",
            "createdAt": datetime.utcnow(),
        })
        print(f"✅ Created super admin '{admin_name}'")
    else:
        print(f"Super admin '{admin_name}' already exists")

    for subject in SUBJECTS:
        result = db.subjects.update_one(
            {"code": subject["code"]},
            {"$setOnInsert": dict(subject, createdAt=datetime.utcnow())},
            upsert=True,
        )
        if result.upserted_id:
            print(f"Added subject {subject['code']}")

    for book in BOOKS:
        result = db.library_books.update_one(
            {"title": book["title"]},
            {"$setOnInsert": dict(book, createdAt=datetime.utcnow())},
            upsert=True,
        )
        if result.upserted_id:
            print(f"Added book '{book['title']}'")

    print("Seeding complete.")


if __name__ == "__main__":
    with app.app_context():
        try:
            seed(*sys.argv[1:3])
        except Exception as e:
            print("⚠️ Warning: could not seed defaults:", e)
            sys.exit(1)
