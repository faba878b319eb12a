# app/services/reports.py
"""
Counter audit reports.

Compares every denormalized counter with the relation it mirrors. Used by
``app.cli check-counters``; request handlers never recompute counters.
"""

from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.orm import Session

# (table, counter column, expression counting the mirrored relation)
COUNTER_SOURCES = [
    ("posts", "likes_count", "SELECT COUNT(*) FROM likes l WHERE l.post_id = t.id"),
    ("posts", "comments_count", "SELECT COUNT(*) FROM comments c WHERE c.post_id = t.id"),
    ("users", "followers_count", "SELECT COUNT(*) FROM follows f WHERE f.following_id = t.id"),
    ("users", "following_count", "SELECT COUNT(*) FROM follows f WHERE f.follower_id = t.id"),
    ("users", "posts_count", "SELECT COUNT(*) FROM posts p WHERE p.user_id = t.id"),
]


def get_counter_drift(session: Session, limit: int = 100) -> List[Dict[str, Any]]:
    """
    Find rows whose stored counter disagrees with the underlying relation.

    Args:
        session: Database session
        limit: Maximum number of drifted rows reported per counter

    Returns:
        List of dicts with table, column, row id, stored and actual values
    """
    drift = []
    for table, column, source in COUNTER_SOURCES:
        query = text(f"""
            SELECT t.id AS row_id, t.{column} AS stored, ({source}) AS actual
            FROM {table} t
            WHERE t.{column} <> ({source})
            ORDER BY t.id
            LIMIT :limit
        """)
        for row in session.execute(query, {"limit": limit}).fetchall():
            drift.append({
                "table": table,
                "column": column,
                "row_id": row.row_id,
                "stored": row.stored,
                "actual": row.actual,
            })
    return drift


def repair_counters(session: Session) -> int:
    """Overwrite drifted counters with the relation counts; returns rows updated."""
    updated = 0
    for table, column, source in COUNTER_SOURCES:
        result = session.execute(text(f"""
            UPDATE {table} SET {column} = ({source.replace("t.id", f"{table}.id")})
            WHERE {column} <> ({source.replace("t.id", f"{table}.id")})
        """))
        updated += result.rowcount
    return updated
