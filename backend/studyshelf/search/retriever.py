"""
Candidate retrieval for the material search pipeline.
"""

from typing import List, Optional, Set
import logging

from .errors import RetrievalError
from ..common.models import Material
from ..storage.materials_store import MaterialQuery, MaterialsStore

logger = logging.getLogger('search')


class CandidateRetriever:
    """
    Pulls a bounded candidate pool from the materials store.

    Keyword matches come first. Only when the keyword predicate matches
    nothing is the pool filled with the most recent materials under the same
    category filters, so a query never starves the ranker while the store
    has materials.
    """

    def __init__(self, store: MaterialsStore):
        self.store = store

    def retrieve(
        self,
        query: str,
        category: Optional[str] = None,
        sub_category: Optional[str] = None,
        candidate_limit: int = 100
    ) -> List[Material]:
        """
        Retrieve candidates for a query.

        Args:
            query: Raw query text
            category: Optional category equality filter
            sub_category: Optional subcategory equality filter
            candidate_limit: Maximum pool size

        Returns:
            Candidates ordered by recency, unique by id, at most candidate_limit

        Raises:
            RetrievalError: If the store fails
        """
        if candidate_limit <= 0:
            return []

        keyword = (query or '').strip()

        keyword_hits = self._run(MaterialQuery(
            category=category,
            sub_category=sub_category,
            keyword=keyword,
            limit=candidate_limit
        ))

        candidates: List[Material] = []
        seen: Set[str] = set()
        self._merge(candidates, seen, keyword_hits, candidate_limit)

        if not candidates:
            logger.info(f"No keyword matches for '{keyword}', using most recent materials")
            recent = self._run(MaterialQuery(
                category=category,
                sub_category=sub_category,
                limit=candidate_limit
            ))
            self._merge(candidates, seen, recent, candidate_limit)

        logger.debug(
            f"Retrieved {len(candidates)} candidates "
            f"({len(keyword_hits)} keyword matches, limit {candidate_limit})"
        )
        return candidates[:candidate_limit]

    def _run(self, material_query: MaterialQuery) -> List[Material]:
        try:
            return self.store.query(material_query)
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"Materials store failed: {e}") from e

    @staticmethod
    def _merge(
        candidates: List[Material],
        seen: Set[str],
        incoming: List[Material],
        candidate_limit: int
    ):
        """Append unseen materials until the pool is full."""
        for material in incoming:
            if len(candidates) >= candidate_limit:
                break
            if material.id in seen:
                continue
            seen.add(material.id)
            candidates.append(material)
