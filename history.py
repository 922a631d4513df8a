"""
Per-user report history stored in sqlite.
"""
import logging
import sqlite3
from datetime import datetime, timezone

from extractor import HealthParameter

logger = logging.getLogger(__name__)


def get_db(database):
    """Get database connection"""
    conn = sqlite3.connect(database)
    conn.row_factory = sqlite3.Row
    conn.execute('PRAGMA foreign_keys = ON')
    return conn


def init_db(database):
    """Initialize the database"""
    conn = get_db(database)
    cursor = conn.cursor()

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS reports (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            file_name TEXT NOT NULL,
            file_size INTEGER NOT NULL DEFAULT 0,
            extracted_text TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_reports_user ON reports (user_id)')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS health_parameters (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            report_id INTEGER NOT NULL,
            position INTEGER NOT NULL,
            name TEXT NOT NULL,
            value TEXT NOT NULL,
            unit TEXT NOT NULL DEFAULT '',
            normal_range TEXT NOT NULL DEFAULT '',
            status TEXT CHECK (status IN ('normal', 'high', 'low')),
            FOREIGN KEY (report_id) REFERENCES reports (id) ON DELETE CASCADE
        )
    ''')

    conn.commit()
    conn.close()


def save_report(database, user_id, file_name, parameters, file_size=0, extracted_text=""):
    """Store a report and its parameters, returning the new report id.

    parameters may hold HealthParameter objects or dicts in the
    to_dict() shape.
    """
    if not user_id:
        raise ValueError("A user id is required to save a report")
    if not file_name:
        raise ValueError("Missing required field: fileName")

    records = [p if isinstance(p, HealthParameter) else HealthParameter.from_dict(p)
               for p in parameters]
    now = datetime.now(timezone.utc).isoformat()

    conn = get_db(database)
    try:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO reports (user_id, file_name, file_size, extracted_text, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (user_id, file_name, int(file_size or 0), extracted_text or '', now, now))

        report_id = cursor.lastrowid

        for position, p in enumerate(records):
            cursor.execute('''
                INSERT INTO health_parameters (report_id, position, name, value, unit, normal_range, status)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (report_id, position, p.name, p.value, p.unit or '', p.normal_range or '', p.status))

        conn.commit()
    finally:
        conn.close()

    logger.info("✅ Saved report %s for user %s (%d parameters)", report_id, user_id, len(records))
    return report_id


def _row_to_parameter(row):
    return HealthParameter(
        name=row['name'],
        value=row['value'],
        unit=row['unit'] or None,
        normal_range=row['normal_range'] or None,
        status=row['status'],
    )


def list_reports(database, user_id, limit=50):
    """Most recent reports for a user, newest first"""
    conn = get_db(database)
    try:
        cursor = conn.cursor()
        cursor.execute('''
            SELECT * FROM reports WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT ?
        ''', (user_id, limit))
        reports = cursor.fetchall()

        results = []
        for report in reports:
            cursor.execute('''
                SELECT * FROM health_parameters WHERE report_id = ? ORDER BY position
            ''', (report['id'],))
            parameters = [_row_to_parameter(row).to_dict() for row in cursor.fetchall()]
            results.append({
                'id': report['id'],
                'fileName': report['file_name'],
                'fileSize': report['file_size'] or 0,
                'healthParameters': parameters,
                'createdAt': report['created_at'],
                'parametersCount': len(parameters),
            })
    finally:
        conn.close()

    return results
