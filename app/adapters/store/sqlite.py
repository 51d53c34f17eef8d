"""SQLite medium so store contents survive process restarts.

Notes:
- One table, one row per key. Expiry lives inside the value envelope, so
  the table knows nothing about TTLs.
- Several processes may open the same file; writes are last-writer-wins.
- Calls are synchronous and block the event loop for their duration; in
  exchange each store read-modify-write runs without interleaving within
  one process.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import StoreUnavailableError

_metadata = MetaData()

kv_table = Table(
    "kv_store",
    _metadata,
    Column("key", String, primary_key=True),
    Column("value", Text, nullable=False),
)


class SqliteMedium:
    """Medium persisted in a SQLite file through SQLAlchemy Core."""

    def __init__(self, path: str) -> None:
        """Open (and create if needed) the database file.

        Args:
            path: Filesystem path of the SQLite database.

        Raises:
            StoreUnavailableError: If the file cannot be created or opened.
        """
        self.path = path
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            self._engine: Engine = create_engine(
                f"sqlite:///{path}",
                connect_args={"check_same_thread": False, "timeout": 30},
            )
            with self._engine.begin() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
                _metadata.create_all(conn)
        except (OSError, SQLAlchemyError) as exc:
            raise StoreUnavailableError(
                code="medium_unavailable",
                message=f"Cannot open SQLite medium at {path}",
                details={"backend": "sqlite"},
            ) from exc
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError(
                code="medium_closed",
                message="SQLite medium has been closed",
                details={"backend": "sqlite"},
            )

    def get(self, key: str) -> str | None:
        self._ensure_open()
        with self._engine.connect() as conn:
            return conn.execute(
                select(kv_table.c.value).where(kv_table.c.key == key)
            ).scalar_one_or_none()

    def put(self, key: str, value: str) -> None:
        self._ensure_open()
        stmt = insert(kv_table).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[kv_table.c.key],
            set_={"value": stmt.excluded.value},
        )
        with self._engine.begin() as conn:
            conn.execute(stmt)

    def remove(self, key: str) -> None:
        self._ensure_open()
        with self._engine.begin() as conn:
            conn.execute(delete(kv_table).where(kv_table.c.key == key))

    def keys(self) -> list[str]:
        self._ensure_open()
        with self._engine.connect() as conn:
            return list(conn.execute(select(kv_table.c.key)).scalars())

    def close(self) -> None:
        if not self._closed:
            self._engine.dispose()
            self._closed = True
