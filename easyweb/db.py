import sqlite3
from contextlib import contextmanager
from pathlib import Path

DB_PATH = Path("data/easyweb.db")


def configure(path: Path) -> None:
    global DB_PATH
    DB_PATH = Path(path)


def get_db_path() -> Path:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    return DB_PATH


def init_db():
    """Create tables if they don't exist."""
    with get_connection() as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                is_admin INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS form_submissions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                page_id TEXT,
                page_path TEXT NOT NULL,
                form_name TEXT,
                payload_encrypted TEXT NOT NULL,
                recipients TEXT,
                culture TEXT,
                mailed_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)


@contextmanager
def get_connection():
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


# User helpers
def create_user(username: str, password_hash: str, is_admin: bool = False) -> int:
    with get_connection() as conn:
        cursor = conn.execute(
            "INSERT INTO users (username, password_hash, is_admin) VALUES (?, ?, ?)",
            (username, password_hash, int(is_admin)),
        )
        return cursor.lastrowid


def get_user(user_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT id, username, is_admin FROM users WHERE id = ?", (user_id,)
        ).fetchone()
    return dict(row) if row else None


def get_user_by_username(username: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT id, username, password_hash, is_admin FROM users WHERE username = ?",
            (username,),
        ).fetchone()
    return dict(row) if row else None


# Form submission helpers
def save_form_submission(
    page_id: str | None,
    page_path: str,
    form_name: str | None,
    payload_encrypted: str,
    recipients: list[str],
    culture: str | None = None,
) -> int:
    with get_connection() as conn:
        cursor = conn.execute(
            """
            INSERT INTO form_submissions
                (page_id, page_path, form_name, payload_encrypted, recipients, culture)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (page_id, page_path, form_name, payload_encrypted, ",".join(recipients), culture),
        )
        return cursor.lastrowid


def get_form_submission(submission_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM form_submissions WHERE id = ?", (submission_id,)
        ).fetchone()
        if not row:
            return None
        data = dict(row)
        data["recipients"] = [r for r in (data.get("recipients") or "").split(",") if r]
        return data


def list_form_submissions(page_path: str | None = None, limit: int = 50) -> list[dict]:
    with get_connection() as conn:
        if page_path:
            rows = conn.execute(
                "SELECT * FROM form_submissions WHERE page_path = ? ORDER BY id DESC LIMIT ?",
                (page_path, limit),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM form_submissions ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
    return [dict(r) for r in rows]


def mark_submission_mailed(submission_id: int):
    with get_connection() as conn:
        conn.execute(
            "UPDATE form_submissions SET mailed_at = CURRENT_TIMESTAMP WHERE id = ?",
            (submission_id,),
        )
