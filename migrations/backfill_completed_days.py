"""
Migration: backfill enrollments.completed_days from legacy progress.

Older rows stored only a progress percentage. Completed days are rebuilt as the prefix
{1..round(progress * L / 100)} where L is the number of authored days of the course.
Rows that already carry completed_days are left alone.
"""

import json
import os
import sqlite3

from progression.aggregator import prefix_from_progress


def run_migration():
    db_path = os.getenv("DATABASE_URL", "sqlite:///./progression.db").replace("sqlite:///", "")
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='enrollments'"
        )
        if not cursor.fetchone():
            print("enrollments table not found. Skipping.")
            return

        try:
            cursor.execute("ALTER TABLE enrollments ADD COLUMN completed_days TEXT")
            print("enrollments: added completed_days")
        except sqlite3.OperationalError as e:
            if "duplicate column" in str(e).lower():
                print("enrollments.completed_days already exists. Skipping column add.")
            else:
                raise

        cursor.execute(
            "SELECT course_id, COUNT(*) FROM course_days GROUP BY course_id"
        )
        days_by_course = {row[0]: int(row[1]) for row in cursor.fetchall()}

        cursor.execute(
            "SELECT id, course_id, progress FROM enrollments WHERE completed_days IS NULL"
        )
        rows = cursor.fetchall()
        for enrollment_id, course_id, progress in rows:
            days = sorted(prefix_from_progress(int(progress or 0), days_by_course.get(course_id, 0)))
            cursor.execute(
                "UPDATE enrollments SET completed_days = ? WHERE id = ?",
                (json.dumps(days), enrollment_id),
            )
        print(f"enrollments: backfilled completed_days on {len(rows)} rows")

        conn.commit()
        print("✓ Migration backfill_completed_days completed successfully!")

    except sqlite3.Error as e:
        print(f"Error during migration: {e}")
        if conn:
            conn.rollback()
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    run_migration()
