"""
Event Store

SQLite-backed storage for UTM events. The database file is created lazily
on first use; aggregate queries are memoized in the ``queries`` cache region,
which is flushed completely after every insert.
"""

import hashlib
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import Column, Integer, MetaData, Table, Text, create_engine, func, text
from sqlalchemy.dialects.sqlite import DATETIME
from sqlalchemy.engine import Engine

from .cache import CacheRegion
from .models import UtmEvent

logger = logging.getLogger(__name__)

TABLE_NAME = "utm"

DEFAULT_COUNT_QUERY = f"SELECT count(*) AS count FROM {TABLE_NAME}"

# Same layout as SQLite's own datetime(), so range filters compare as text
VisitedAt = DATETIME(
    storage_format="%(year)04d-%(month)02d-%(day)02d %(hour)02d:%(minute)02d:%(second)02d",
    regexp=r"(\d+)-(\d+)-(\d+) (\d+):(\d+):(\d+)",
)

metadata = MetaData()

utm_table = Table(
    TABLE_NAME,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("page_id", Text, nullable=False),
    Column("utm_source", Text),
    Column("utm_medium", Text),
    Column("utm_campaign", Text),
    Column("utm_term", Text),
    Column("utm_content", Text),
    Column("visited_at", VisitedAt, server_default=func.current_timestamp()),
    Column("iphash", Text),
    Column("country_name", Text),
    Column("city", Text),
    Column("user_agent", Text),
    sqlite_autoincrement=True,
)


def date_range_filter(begin: int = 7, end: int = 0, column: str = "visited_at") -> str:
    """Build a WHERE fragment for rows between ``begin`` and ``end`` days ago.

    Both bounds are inclusive and evaluated in local time.

    Args:
        begin: Start of the range, in days before now
        end: End of the range, in days before now
        column: Timestamp column of the utm table

    Returns:
        SQL condition usable after WHERE
    """
    if column not in utm_table.c:
        raise ValueError(f"Unknown column: {column}")
    begin, end = int(begin), int(end)
    if begin < 0 or end < 0:
        raise ValueError("Day offsets must not be negative")
    return (
        f" {column} >= datetime('now', '-{begin} days', 'localtime')"
        f" AND {column} <= datetime('now', '-{end} days', 'localtime')"
    )


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def percent_change(recent: float, compare: float) -> int:
    """Relative change of recent against compare, in whole percent.

    A zero baseline falls back to ``recent * 100 - 100``; callers should
    display that case specially.
    """
    if compare > 0:
        return _round_half_away(recent / compare * 100.0 - 100.0)
    return _round_half_away(recent * 100.0 - 100.0)


class EventStore:
    """Append-only event table with memoized aggregate queries."""

    def __init__(self, file: str, query_cache: CacheRegion):
        """Initialize the store. No file is touched until first use.

        Args:
            file: Path of the SQLite database file
            query_cache: Region memoizing aggregate query results
        """
        self.file = Path(file)
        self.query_cache = query_cache
        self._engine: Optional[Engine] = None

    @property
    def url(self) -> str:
        return f"sqlite:///{self.file}"

    @property
    def engine(self) -> Engine:
        """Shared engine, created on first access."""
        if self._engine is None:
            self.ensure_schema()
            self._engine = create_engine(self.url)
        return self._engine

    def ensure_schema(self) -> bool:
        """Create the database file with the utm table if it does not exist.

        An existing file is left untouched.

        Returns:
            True if the file was created by this call
        """
        if self.file.exists():
            return False

        self.file.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(self.url)
        try:
            metadata.create_all(engine)
        finally:
            engine.dispose()
        logger.info(f"Created UTM database at {self.file}")
        return True

    def insert(self, event: UtmEvent) -> int:
        """Append one event and invalidate all memoized query results.

        Returns:
            The new row id
        """
        with self.engine.begin() as conn:
            result = conn.execute(utm_table.insert().values(**event.to_row()))
            row_id = result.inserted_primary_key[0]

        self.query_cache.flush()
        return row_id

    def count(self, query: str = DEFAULT_COUNT_QUERY, params: Optional[Mapping[str, Any]] = None) -> int:
        """Run an aggregate query and return its first column as int.

        Args:
            query: SQL returning one row; a ``count`` column is preferred
            params: Bound parameters for the query

        Returns:
            The aggregate, served from the query cache when available
        """
        key = f"{self._cache_key(query, params)}-count"
        cached = self.query_cache.get(key)
        if cached is not None:
            return cached

        with self.engine.connect() as conn:
            row = conn.execute(text(query), dict(params or {})).first()

        if row is None:
            value = 0
        else:
            mapping = row._mapping
            value = mapping["count"] if "count" in mapping else row[0]
        count = int(value or 0)

        self.query_cache.set(key, count)
        return count

    def group_count(self, column: str, where: str = "", limit: int = 10) -> List[Tuple[str, int]]:
        """Count events per distinct value of column, most frequent first."""
        if column not in utm_table.c:
            raise ValueError(f"Unknown column: {column}")

        query = f"SELECT {column} AS value, count(*) AS count FROM {TABLE_NAME}"
        if where:
            query += f" WHERE{where}"
        query += f" GROUP BY {column} ORDER BY count DESC, value ASC LIMIT :limit"
        params = {"limit": int(limit)}

        key = f"{self._cache_key(query, params)}-group"
        cached = self.query_cache.get(key)
        if cached is not None:
            return [tuple(item) for item in cached]

        with self.engine.connect() as conn:
            rows = conn.execute(text(query), params).all()

        groups = [(row._mapping["value"] or "", int(row._mapping["count"])) for row in rows]
        self.query_cache.set(key, [list(item) for item in groups])
        return groups

    def delete_all(self) -> None:
        """Remove every event. Maintenance only."""
        with self.engine.begin() as conn:
            conn.execute(utm_table.delete())
        self.query_cache.flush()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @staticmethod
    def _cache_key(query: str, params: Optional[Mapping[str, Any]]) -> str:
        material = query
        if params:
            material += json.dumps(dict(params), sort_keys=True, default=str)
        return hashlib.md5(material.encode("utf-8")).hexdigest()
