# database.py
import random
import sqlite3
from datetime import date, datetime
from typing import Dict, List, Optional

from config import DATABASE_FILE

PROFILE_FIELDS = (
    "name",
    "age",
    "gender",
    "profession",
    "qualification",
    "marital_status",
    "height",
    "birth_year",
    "profile_picture",
    "profile_picture_original",
    "document",
    "document_original",
)


def get_conn():
    conn = sqlite3.connect(DATABASE_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create the tables if they don't exist. Call this once at app startup."""
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            profile_id TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            age INTEGER NOT NULL,
            gender TEXT NOT NULL,
            profession TEXT,
            qualification TEXT,
            marital_status TEXT,
            height TEXT NOT NULL,
            birth_year INTEGER NOT NULL,
            profile_picture TEXT,
            profile_picture_original TEXT,
            document TEXT,
            document_original TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    # Extra dropdown values (profession, qualification, height, ...) added by staff
    c.execute("""
        CREATE TABLE IF NOT EXISTS custom_options (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            field_type TEXT NOT NULL,
            value TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """)
    conn.commit()
    conn.close()


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _generate_profile_id(c) -> str:
    # GB-XXXXX, retried until unused
    while True:
        profile_id = f"GB-{random.randint(10000, 99999)}"
        c.execute("SELECT 1 FROM profiles WHERE profile_id = ?", (profile_id,))
        if c.fetchone() is None:
            return profile_id


def add_profile(data: Dict) -> Dict:
    """
    Insert a new profile and return it as stored.
    'birth_year' falls back to current year minus age when not given.
    """
    values = {field: data.get(field) for field in PROFILE_FIELDS}
    if values["birth_year"] is None:
        values["birth_year"] = date.today().year - values["age"]

    conn = get_conn()
    c = conn.cursor()
    now = _now()
    values["profile_id"] = _generate_profile_id(c)
    values["created_at"] = now
    values["updated_at"] = now
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    c.execute(
        f"INSERT INTO profiles ({columns}) VALUES ({placeholders})",
        tuple(values.values()),
    )
    conn.commit()
    new_id = c.lastrowid
    conn.close()
    return get_profile(new_id)


def get_profile(id: int) -> Optional[Dict]:
    """Return the profile as a dict, or None"""
    conn = get_conn()
    c = conn.cursor()
    c.execute("SELECT * FROM profiles WHERE id = ?", (id,))
    row = c.fetchone()
    conn.close()
    return dict(row) if row else None


def update_profile(id: int, data: Dict) -> Optional[Dict]:
    """
    Apply a partial update. Unknown keys are ignored. Returns None if the id doesn't exist.
    A new 'age' without a 'birth_year' moves birth_year along with it.
    """
    changes = {k: v for k, v in data.items() if k in PROFILE_FIELDS}
    if changes.get("age") is not None and changes.get("birth_year") is None:
        changes["birth_year"] = date.today().year - changes["age"]
    changes["updated_at"] = _now()
    assignments = ", ".join(f"{k} = ?" for k in changes)

    conn = get_conn()
    c = conn.cursor()
    c.execute(
        f"UPDATE profiles SET {assignments} WHERE id = ?",
        (*changes.values(), id),
    )
    conn.commit()
    updated = c.rowcount
    conn.close()
    if not updated:
        return None
    return get_profile(id)


def delete_profile(id: int) -> bool:
    conn = get_conn()
    c = conn.cursor()
    c.execute("DELETE FROM profiles WHERE id = ?", (id,))
    conn.commit()
    deleted = c.rowcount > 0
    conn.close()
    return deleted


def get_all_profiles() -> List[Dict]:
    """Return every profile, newest first"""
    conn = get_conn()
    c = conn.cursor()
    c.execute("SELECT * FROM profiles ORDER BY created_at DESC, id DESC")
    rows = c.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_profiles_by_gender(gender: str) -> List[Dict]:
    conn = get_conn()
    c = conn.cursor()
    c.execute("SELECT * FROM profiles WHERE gender = ?", (gender,))
    rows = c.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def search_profiles(
    gender: str = None,
    profession: str = None,
    marital_status: str = None,
    birth_year: int = None,
    height: str = None,
    age: int = None,
) -> List[Dict]:
    """
    Filter profiles; every given filter must hold.
    'profession' is a case-insensitive substring match, 'age' is turned into a birth year.
    """
    conditions = []
    params = []
    if gender:
        conditions.append("gender = ?")
        params.append(gender)
    if profession:
        conditions.append("profession LIKE ?")
        params.append(f"%{profession}%")
    if marital_status:
        conditions.append("marital_status = ?")
        params.append(marital_status)
    if birth_year:
        conditions.append("birth_year = ?")
        params.append(birth_year)
    if height:
        conditions.append("height = ?")
        params.append(height)
    if age:
        conditions.append("birth_year = ?")
        params.append(date.today().year - age)

    query = "SELECT * FROM profiles"
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += " ORDER BY created_at DESC, id DESC"

    conn = get_conn()
    c = conn.cursor()
    c.execute(query, params)
    rows = c.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_profile_stats() -> Dict[str, int]:
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        SELECT
            COUNT(*),
            SUM(CASE WHEN gender = 'Female' THEN 1 ELSE 0 END),
            SUM(CASE WHEN gender = 'Male' THEN 1 ELSE 0 END)
        FROM profiles
    """)
    total, brides, grooms = c.fetchone()
    conn.close()
    return {
        "total_profiles": total,
        "bride_profiles": brides or 0,
        "groom_profiles": grooms or 0,
    }


def get_custom_options(field_type: str) -> List[Dict]:
    """Return options for one dropdown, sorted by value"""
    conn = get_conn()
    c = conn.cursor()
    c.execute(
        "SELECT * FROM custom_options WHERE field_type = ? ORDER BY value",
        (field_type,),
    )
    rows = c.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def add_custom_option(field_type: str, value: str) -> Dict:
    conn = get_conn()
    c = conn.cursor()
    c.execute(
        "INSERT INTO custom_options (field_type, value, created_at) VALUES (?, ?, ?)",
        (field_type, value, _now()),
    )
    conn.commit()
    c.execute("SELECT * FROM custom_options WHERE id = ?", (c.lastrowid,))
    row = c.fetchone()
    conn.close()
    return dict(row)


def delete_custom_option(id: int) -> bool:
    conn = get_conn()
    c = conn.cursor()
    c.execute("DELETE FROM custom_options WHERE id = ?", (id,))
    conn.commit()
    deleted = c.rowcount > 0
    conn.close()
    return deleted
