import os
from werkzeug.utils import secure_filename
from datetime import datetime
import bcrypt
import pandas as pd

# -------------------- Allowed File Types -------------------- #
ALLOWED_EXTENSIONS = {'csv', 'xls', 'xlsx'}

MARKS_SHEET_COLUMNS = ['rollNo', 'subjectCode', 'midterm', 'endterm', 'internal']


def allowed_file(filename):
    """
    Check if the uploaded file has an allowed extension.
    """
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def save_file(file_obj, upload_folder, subpath=''):
    """
    Save uploaded file to a folder and return the relative path.
    Automatically creates subfolders and timestamps filenames.
    """
    if not file_obj or file_obj.filename == '':
        return None
    if not allowed_file(file_obj.filename):
        return None

    filename = secure_filename(file_obj.filename)
    folder = os.path.join(upload_folder, subpath)
    os.makedirs(folder, exist_ok=True)

    # Append timestamp to avoid overwriting files
    timestamp = datetime.utcnow().strftime('%Y%m%d%H%M%S')
    filepath = os.path.join(folder, f"{timestamp}_{filename}")

    try:
        file_obj.save(filepath)
    except OSError as e:
        print(f"❌ Error saving file: {e}")
        return None

    return filepath.replace("\\", "/")


# -------------------- Password Utilities -------------------- #
def hash_password(password: str) -> str:
    """
    Hash a plain password with bcrypt and return a UTF-8 string.
    This string can be stored safely in MongoDB.
    """
    if not password:
        return None
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')


def check_password(plain_password: str, hashed_password) -> bool:
    """
    Verify a plain password against the stored hash.
    Works whether hashed_password is str (from DB) or bytes.
    """
    if not plain_password or not hashed_password:
        return False

    if isinstance(hashed_password, str):
        hashed_bytes = hashed_password.encode('utf-8')
    else:
        hashed_bytes = hashed_password

    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_bytes)
    except ValueError as e:
        print(f"❌ Password check failed: {e}")
        return False


# -------------------- Marks Sheet -------------------- #
def read_marks_sheet(file_obj, filename):
    """
    Read an uploaded marks sheet (CSV or Excel) into a list of row dicts.

    Column names are matched case-insensitively against MARKS_SHEET_COLUMNS
    plus an optional ``grade`` column. Raises ValueError when a required
    column is missing.
    """
    if filename.lower().endswith('.csv'):
        df = pd.read_csv(file_obj)
    else:
        df = pd.read_excel(file_obj)

    lookup = {str(c).strip().lower(): c for c in df.columns}
    wanted = MARKS_SHEET_COLUMNS + ['grade']
    missing = [c for c in MARKS_SHEET_COLUMNS if c.lower() not in lookup]
    if missing:
        raise ValueError(f"Missing columns: {', '.join(missing)}")

    df = df.rename(columns={lookup[c.lower()]: c for c in wanted if c.lower() in lookup})
    df = df[[c for c in wanted if c in df.columns]]
    # NaN cells become None so validation reports them as missing
    df = df.astype(object).where(pd.notna(df), None)

    rows = []
    for _, row in df.iterrows():
        record = row.to_dict()
        for key in ('rollNo', 'subjectCode'):
            if record.get(key) is not None:
                record[key] = str(record[key]).strip()
        rows.append(record)
    return rows
