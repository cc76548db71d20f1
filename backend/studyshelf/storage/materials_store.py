"""
Materials store: read/write access to the materials table.

The store only filters, orders by recency and paginates. It has no notion of
relevance; ranking happens in the search package.
"""

import sqlite3
import json
from typing import Any, Dict, List, Optional, Protocol
from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from ..common.models import Material
from ..search.errors import RetrievalError

logger = logging.getLogger(__name__)

# Columns mapped straight onto Material fields
_MATERIAL_COLUMNS = ('id', 'title', 'description', 'category', 'sub_category', 'file_name', 'created_at')

# Columns returned through Material.extra
_EXTRA_COLUMNS = (
    'file_url', 'file_type', 'file_size', 'user_id',
    'is_public', 'download_count', 'updated_at'
)


@dataclass
class MaterialQuery:
    """Structural filters plus an optional keyword predicate."""
    category: Optional[str] = None
    sub_category: Optional[str] = None
    is_public: Optional[bool] = None
    keyword: Optional[str] = None  # substring on title/description OR exact tag
    limit: int = 100
    offset: int = 0


class MaterialsStore(Protocol):
    """Anything that can answer a MaterialQuery, newest first."""

    def query(self, material_query: MaterialQuery) -> List[Material]:
        ...


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


class SQLiteMaterialsStore:
    """Materials store backed by the service's SQLite database."""

    def __init__(self, db_connection: sqlite3.Connection):
        """
        Initialize materials store.

        Args:
            db_connection: Connection from Database.connect (materials schema and casefold function)
        """
        self.db = db_connection

    def query(self, material_query: MaterialQuery) -> List[Material]:
        """
        Run a filtered query ordered by created_at descending.

        Args:
            material_query: Filters, keyword predicate and pagination

        Returns:
            Matching materials, newest first

        Raises:
            RetrievalError: If the database rejects or cannot run the query
        """
        if material_query.limit <= 0:
            return []

        conditions = []
        params: List[Any] = []

        if material_query.category:
            conditions.append("category = ?")
            params.append(material_query.category)

        if material_query.sub_category:
            conditions.append("sub_category = ?")
            params.append(material_query.sub_category)

        if material_query.is_public is not None:
            conditions.append("is_public = ?")
            params.append(1 if material_query.is_public else 0)

        if material_query.keyword is not None:
            pattern = f"%{_escape_like(material_query.keyword.casefold())}%"
            conditions.append(
                "(casefold(title) LIKE ? ESCAPE '\\' "
                "OR casefold(COALESCE(description, '')) LIKE ? ESCAPE '\\' "
                "OR EXISTS (SELECT 1 FROM json_each(materials.tags_json) WHERE json_each.value = ?))"
            )
            params.extend([pattern, pattern, material_query.keyword])

        sql = "SELECT * FROM materials"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        params.extend([material_query.limit, max(material_query.offset, 0)])

        try:
            cursor = self.db.cursor()
            cursor.execute(sql, params)
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise RetrievalError(f"Materials query failed: {e}") from e

        logger.debug(f"Materials query returned {len(rows)} rows: {material_query}")
        return [self._row_to_material(row) for row in rows]

    def add_material(self, record: Dict[str, Any]) -> Material:
        """
        Insert or replace a material.

        Args:
            record: Material record; ``created_at``/``updated_at`` default to now

        Returns:
            The stored Material
        """
        material = Material.from_dict(record)
        now = datetime.now(timezone.utc).isoformat()
        extra = dict(material.extra)
        columns = {k: extra.pop(k, None) for k in _EXTRA_COLUMNS}

        is_public = columns['is_public']
        created_at = material.created_at or now

        cursor = self.db.cursor()
        cursor.execute(
            """
            INSERT OR REPLACE INTO materials (
                id, title, description, tags_json, category, sub_category,
                file_name, file_url, file_type, file_size, user_id, is_public,
                download_count, created_at, updated_at, extra_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                material.id,
                material.title,
                material.description,
                json.dumps(material.tags) if material.tags is not None else None,
                material.category or 'Other',
                material.sub_category,
                material.file_name,
                columns['file_url'],
                columns['file_type'],
                columns['file_size'] or 0,
                columns['user_id'],
                1 if is_public is None or is_public else 0,
                columns['download_count'] or 0,
                created_at,
                columns['updated_at'] or created_at,
                json.dumps(extra) if extra else None,
            )
        )
        self.db.commit()

        material.created_at = created_at
        return material

    def add_materials(self, records: List[Dict[str, Any]]) -> int:
        """Insert many materials, returning how many were stored."""
        for record in records:
            self.add_material(record)
        logger.info(f"Stored {len(records)} materials")
        return len(records)

    def count_materials(self) -> int:
        """Count all materials."""
        try:
            cursor = self.db.cursor()
            cursor.execute("SELECT COUNT(*) FROM materials")
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise RetrievalError(f"Materials count failed: {e}") from e

    def _row_to_material(self, row: sqlite3.Row) -> Material:
        """Convert a materials row into a Material."""
        data = {k: row[k] for k in _MATERIAL_COLUMNS}
        data['tags'] = json.loads(row['tags_json']) if row['tags_json'] else None

        extra = json.loads(row['extra_json']) if row['extra_json'] else {}
        for key in _EXTRA_COLUMNS:
            extra[key] = row[key]
        extra['is_public'] = bool(row['is_public'])
        data['extra'] = extra

        return Material.from_dict(data)
