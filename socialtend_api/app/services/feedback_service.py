"""Business logic for product feedback."""

import logging
import sqlite3
from typing import Any, List, Optional

from socialtend_api.app.core.clock import to_utc, utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.schemas.feedback import FeedbackCreate, FeedbackRead, FeedbackSummary

logger = logging.getLogger(__name__)


def _feedback_from_row(row: sqlite3.Row) -> FeedbackRead:
    return FeedbackRead(
        id=row["id"],
        user_id=row["user_id"],
        rating=row["rating"],
        recommendation_rating=row["recommendation_rating"],
        experience_rating=row["experience_rating"],
        category=row["category"],
        message=row["message"],
        user_intent=row["user_intent"],
        created_at=to_utc(row["created_at"]),
    )


class FeedbackService:
    """Store feedback and report on it for administrators."""

    @classmethod
    async def create_feedback(cls, data: FeedbackCreate, user_id: Optional[int] = None) -> FeedbackRead:
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO feedback (user_id, rating, recommendation_rating, experience_rating,
                                      category, message, user_intent, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    data.rating,
                    data.recommendation_rating,
                    data.experience_rating,
                    data.category,
                    data.message,
                    data.user_intent,
                    utcnow_iso(),
                ),
            )
            feedback_id = cursor.lastrowid
            conn.commit()
            row = conn.execute("SELECT * FROM feedback WHERE id = ?", (feedback_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Feedback %s received (category %s, rating %s)", feedback_id, data.category, data.rating)
        return _feedback_from_row(row)

    @classmethod
    async def list_feedback(
        cls, category: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[FeedbackRead]:
        """Newest feedback first, optionally restricted to one category."""
        query = "SELECT * FROM feedback"
        params: List[Any] = []
        if category:
            query += " WHERE category = ?"
            params.append(category)
        query += " ORDER BY id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_feedback_from_row(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def summary(cls) -> FeedbackSummary:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS count,
                       AVG(rating) AS average_rating,
                       AVG(recommendation_rating) AS average_recommendation_rating,
                       AVG(experience_rating) AS average_experience_rating
                FROM feedback
                """
            ).fetchone()
        finally:
            conn.close()
        return FeedbackSummary(
            count=row["count"],
            average_rating=_round(row["average_rating"]),
            average_recommendation_rating=_round(row["average_recommendation_rating"]),
            average_experience_rating=_round(row["average_experience_rating"]),
        )


def _round(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None
