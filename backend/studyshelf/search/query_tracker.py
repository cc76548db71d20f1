"""
Search query log and trending searches.

Every search is recorded (trimmed, lowercased) in the search_queries table.
Trending searches are the most frequent queries of the last week, padded with
a short list of suggestions; if the log cannot be read a fixed default list is
served instead.
"""

import sqlite3
from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta, timezone
from collections import Counter
import logging

from .fallback import StrategyChain
from config.search_config import TRENDING_CONFIG

logger = logging.getLogger('search')


class QueryTracker:
    """Records search queries and derives trending searches from them."""

    def __init__(self, db_connection: sqlite3.Connection, config: Optional[Dict[str, Any]] = None):
        """
        Initialize query tracker.

        Args:
            db_connection: SQLite connection with the search_queries table
            config: Overrides for TRENDING_CONFIG
        """
        self.db = db_connection
        self.config = dict(TRENDING_CONFIG)
        if config:
            self.config.update(config)

    def save_query(self, query: str, user_id: Optional[str] = None) -> bool:
        """
        Record a search query.

        Tracking is best effort: failures are logged, not raised.

        Returns:
            True if the query was stored
        """
        normalized = (query or '').strip().lower()
        if not normalized:
            return False

        try:
            cursor = self.db.cursor()
            cursor.execute(
                "INSERT INTO search_queries (query, user_id, created_at) VALUES (?, ?, ?)",
                (normalized, user_id, datetime.now(timezone.utc).isoformat())
            )
            self.db.commit()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Search query tracking not available: {e}")
            return False

    async def trending(self, limit: Optional[int] = None) -> List[str]:
        """
        Get trending search queries.

        Args:
            limit: Maximum queries to return

        Returns:
            Queries ordered by frequency, padded with suggestions
        """
        limit = limit if limit is not None else self.config['default_limit']

        chain = StrategyChain('trending searches', [
            ('query_log', lambda: self._from_query_log(limit)),
            ('defaults', lambda: list(self.config['default_queries'])[:limit]),
        ])
        result = await chain.run()

        logger.debug(f"Trending searches from {result.name}: {result.value}")
        return result.value

    def _from_query_log(self, limit: int) -> List[str]:
        """Most frequent recent queries; raises sqlite3.Error if the log is unreadable."""
        since = datetime.now(timezone.utc) - timedelta(days=self.config['window_days'])

        cursor = self.db.cursor()
        cursor.execute(
            """
            SELECT query FROM search_queries
            WHERE created_at >= ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (since.isoformat(), self.config['sample_size'])
        )
        counts = Counter(row[0] for row in cursor.fetchall())

        # most_common keeps first-seen order for ties, i.e. most recent first
        trending = [q for q, _ in counts.most_common(limit)]

        for suggestion in self.config['padding_queries']:
            if len(trending) >= limit:
                break
            if suggestion not in trending:
                trending.append(suggestion)

        return trending
