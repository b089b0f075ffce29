"""
Migration script adding the pending negative-sentiment uniqueness index to response_flags.

Duplicate pending negative_sentiment flags for the same employee and survey are
closed (all but the oldest) before the index is created.
"""
from sqlalchemy import create_engine, inspect, text

from pulse.config import get_settings

settings = get_settings()

INDEX_NAME = "uq_response_flags_pending_negative"


def _index_exists(conn, table_name: str, index_name: str) -> bool:
    return any(ix.get("name") == index_name for ix in inspect(conn).get_indexes(table_name))


def _close_duplicate_pending_flags(conn) -> int:
    result = conn.execute(
        text(
            """
            UPDATE response_flags
            SET status = 'reviewed',
                reviewed_by = 'system-dedup',
                reviewed_at = CURRENT_TIMESTAMP
            WHERE issue_type = 'negative_sentiment'
              AND status = 'pending'
              AND id NOT IN (
                SELECT MIN(id) FROM response_flags
                WHERE issue_type = 'negative_sentiment' AND status = 'pending'
                GROUP BY employee_id, survey_id
              )
            """
        )
    )
    return result.rowcount or 0


def migrate_pending_flag_uniqueness_v1():
    engine = create_engine(settings.database_url_sync, echo=True)
    with engine.begin() as conn:
        if _index_exists(conn, "response_flags", INDEX_NAME):
            print(f"Index already exists: {INDEX_NAME}")
            return
        closed = _close_duplicate_pending_flags(conn)
        print(f"Closed duplicate pending flags: {closed}")
        conn.execute(
            text(
                f"""
                CREATE UNIQUE INDEX {INDEX_NAME}
                ON response_flags (employee_id, survey_id)
                WHERE issue_type = 'negative_sentiment' AND status = 'pending'
                """
            )
        )


if __name__ == "__main__":
    print("Starting pending flag uniqueness migration...")
    migrate_pending_flag_uniqueness_v1()
    print("✅ Migration complete")
