"""
Repository helpers for persisted game suggestions.
"""

from collections.abc import Iterable, Sequence

from gamefinder.db.helpers import DuplicateKeyError, execute_query, execute_transaction, fetch_all
from gamefinder.features.suggestions.domain import SuggestionRow
from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SuggestionRepository:
    """Thin wrappers for reading and replacing a source game's suggestion set."""

    DELETE_QUERY = "DELETE FROM game_suggestions WHERE source_appid = %s"
    INSERT_QUERY = """
        INSERT INTO game_suggestions (source_appid, suggested_appid, reason)
        VALUES (%s, %s, %s)
    """
    UPSERT_QUERY = """
        INSERT INTO game_suggestions (source_appid, suggested_appid, reason)
        VALUES (%s, %s, %s)
        ON CONFLICT (source_appid, suggested_appid)
        DO UPDATE SET reason = EXCLUDED.reason
    """

    @staticmethod
    def _row_queries(query: str, rows: Iterable[SuggestionRow]) -> list[tuple]:
        return [(query, (row.source_app_id, row.suggested_app_id, row.reason)) for row in rows]

    @classmethod
    async def fetch_for_source(cls, source_app_id: int) -> list[SuggestionRow]:
        rows = await fetch_all(
            """
            SELECT source_appid, suggested_appid, reason
            FROM game_suggestions
            WHERE source_appid = %s
            ORDER BY created_at ASC, suggested_appid ASC
            """,
            (source_app_id,),
        )
        return [
            SuggestionRow(
                source_app_id=int(row["source_appid"]),
                suggested_app_id=int(row["suggested_appid"]),
                reason=row["reason"],
            )
            for row in rows
        ]

    @classmethod
    async def delete_suggestions_for_source(cls, source_app_id: int) -> int:
        return await execute_query(cls.DELETE_QUERY, (source_app_id,))

    @classmethod
    async def insert_suggestions(cls, rows: Sequence[SuggestionRow]) -> None:
        if rows:
            await execute_transaction(cls._row_queries(cls.INSERT_QUERY, rows))

    @classmethod
    async def upsert_suggestions(cls, rows: Sequence[SuggestionRow]) -> None:
        if rows:
            await execute_transaction(cls._row_queries(cls.UPSERT_QUERY, rows))

    @classmethod
    async def replace_for_source(cls, source_app_id: int, rows: Sequence[SuggestionRow]) -> int:
        """
        Replace every suggestion for `source_app_id` with `rows` atomically.

        A concurrent run for the same source can make the insert hit the
        (source_appid, suggested_appid) constraint; that case is retried once
        with an upsert. Any other failure propagates.
        """
        foreign = [row for row in rows if row.source_app_id != source_app_id]
        if foreign:
            raise ValueError(
                f"Suggestion rows for source {foreign[0].source_app_id} passed for {source_app_id}"
            )

        delete = (cls.DELETE_QUERY, (source_app_id,))
        try:
            await execute_transaction([delete, *cls._row_queries(cls.INSERT_QUERY, rows)])
        except DuplicateKeyError as e:
            logger.warning(
                "Duplicate suggestion insert, retrying as upsert",
                source_app_id=source_app_id,
                constraint=e.constraint,
            )
            await execute_transaction([delete, *cls._row_queries(cls.UPSERT_QUERY, rows)])

        logger.info(
            "Suggestions replaced atomically",
            source_app_id=source_app_id,
            suggestion_count=len(rows),
        )
        return len(rows)
