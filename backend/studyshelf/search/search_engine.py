"""
Material search engine: retrieval, hybrid ranking and graceful degradation.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
import logging

from .blender import ScoreBlender, ScoredCandidate
from .errors import SemanticServiceError
from .fallback import StrategyChain
from .lexical_scorer import LexicalScorer
from .retriever import CandidateRetriever
from .semantic_scorer import SemanticScorer, compose_text
from ..common.models import Material
from ..storage.materials_store import MaterialQuery, MaterialsStore
from config.search_config import (
    RETRIEVAL_CONFIG,
    RANKING_CONFIG,
    FALLBACK_CONFIG
)

logger = logging.getLogger('search')

MODE_HYBRID = 'hybrid'
MODE_LEXICAL = 'lexical'
MODE_FALLBACK = 'fallback'


@dataclass
class SearchOutcome:
    """Ranked results plus how they were produced."""
    query: str
    results: List[Material]
    mode: str
    semantic_used: bool
    query_time_ms: int = 0
    scored: List[ScoredCandidate] = field(default_factory=list)


class SearchEngine:
    """
    Stateless material search over an injected materials store.

    Pipeline per call:
        retrieve candidates -> lexical scores -> semantic scores (optional)
        -> blend -> filter -> sort -> truncate

    Quality degrades instead of failing:
    - no similarity credential, or the service fails: lexical-only ranking
    - anything else in the pipeline fails: unscored plain keyword search
    - the plain search fails too: FallbackExhausted reaches the caller
    """

    def __init__(
        self,
        store: MaterialsStore,
        semantic_scorer: Optional[SemanticScorer] = None,
        ranking_config: Optional[Dict[str, Any]] = None,
        plain_search_limit: Optional[int] = None
    ):
        """
        Initialize search engine.

        Args:
            store: Materials store to query
            semantic_scorer: Similarity adapter; built from SEMANTIC_CONFIG if omitted
            ranking_config: Overrides for RANKING_CONFIG (weights, thresholds)
            plain_search_limit: Result cap for the plain search fallback
        """
        settings = dict(RANKING_CONFIG)
        if ranking_config:
            settings.update(ranking_config)

        self.store = store
        self.retriever = CandidateRetriever(store)
        self.lexical_scorer = LexicalScorer(settings.get('field_weights'))
        self.semantic_scorer = semantic_scorer or SemanticScorer()
        self.blender = ScoreBlender(settings)
        self.plain_search_limit = plain_search_limit or FALLBACK_CONFIG['plain_search_limit']

        if self.semantic_scorer.is_configured:
            logger.info(f"Semantic scoring enabled with model {self.semantic_scorer.model}")
        else:
            logger.info("Semantic scoring not configured, using keyword ranking only")

    async def search(
        self,
        query: str,
        limit: int = RETRIEVAL_CONFIG['default_limit'],
        candidate_limit: int = RETRIEVAL_CONFIG['default_candidate_limit'],
        category: Optional[str] = None,
        sub_category: Optional[str] = None
    ) -> List[Material]:
        """
        Search materials and return them in ranked order.

        Args:
            query: Free-text query
            limit: Maximum results
            candidate_limit: Maximum candidates pulled from the store
            category: Optional category filter
            sub_category: Optional subcategory filter

        Returns:
            Materials in ranked order (unranked, newest first, when degraded
            to plain search)

        Raises:
            FallbackExhausted: If both ranked and plain search fail
        """
        outcome = await self.search_with_details(
            query,
            limit=limit,
            candidate_limit=candidate_limit,
            category=category,
            sub_category=sub_category
        )
        return outcome.results

    async def search_with_details(
        self,
        query: str,
        limit: int = RETRIEVAL_CONFIG['default_limit'],
        candidate_limit: int = RETRIEVAL_CONFIG['default_candidate_limit'],
        category: Optional[str] = None,
        sub_category: Optional[str] = None
    ) -> SearchOutcome:
        """Same as search(), returning a SearchOutcome with mode and timing."""
        query = (query or '').strip()
        start_time = datetime.now()

        logger.info(
            f"Executing search: query='{query}', category={category}, "
            f"sub_category={sub_category}, limit={limit}, candidate_limit={candidate_limit}"
        )

        chain = StrategyChain('material search', [
            ('ranked', lambda: self._ranked_search(query, limit, candidate_limit, category, sub_category)),
            ('plain', lambda: self._plain_search(query, category, sub_category)),
        ])
        outcome = (await chain.run()).value

        outcome.query_time_ms = int((datetime.now() - start_time).total_seconds() * 1000)

        logger.info(
            f"Search completed: {len(outcome.results)} results, mode={outcome.mode}, "
            f"semantic_used={outcome.semantic_used}, {outcome.query_time_ms}ms"
        )
        return outcome

    async def _ranked_search(
        self,
        query: str,
        limit: int,
        candidate_limit: int,
        category: Optional[str],
        sub_category: Optional[str]
    ) -> SearchOutcome:
        """Full pipeline. Any exception here sends the chain to plain search."""
        candidates = self.retriever.retrieve(
            query,
            category=category,
            sub_category=sub_category,
            candidate_limit=candidate_limit
        )

        if not candidates:
            return SearchOutcome(query=query, results=[], mode=MODE_LEXICAL, semantic_used=False)

        lexical_scores = self.lexical_scorer.score_all(candidates, query)
        lexical_norms = self.lexical_scorer.normalize(lexical_scores)

        semantic_scores = await self._semantic_scores(query, candidates)

        scored = self.blender.blend(candidates, lexical_scores, lexical_norms, semantic_scores)
        ranked = self.blender.rank(scored, limit)

        semantic_used = semantic_scores is not None
        return SearchOutcome(
            query=query,
            results=[c.material for c in ranked],
            mode=MODE_HYBRID if semantic_used else MODE_LEXICAL,
            semantic_used=semantic_used,
            scored=ranked
        )

    async def _semantic_scores(self, query: str, candidates: List[Material]) -> Optional[List[float]]:
        """Semantic scores, or None when not configured or the service failed."""
        if not self.semantic_scorer.is_configured:
            logger.warning("Semantic scorer not configured, using keyword ranking only (mode lexical)")
            return None

        texts = [compose_text(m) for m in candidates]

        try:
            return await self.semantic_scorer.score(query, texts)
        except SemanticServiceError as e:
            logger.warning(f"Semantic scoring failed, using keyword ranking only (mode lexical): {e}")
            return None

    def _plain_search(
        self,
        query: str,
        category: Optional[str],
        sub_category: Optional[str]
    ) -> SearchOutcome:
        """Unscored keyword search, newest first."""
        logger.warning(f"Falling back to plain keyword search for '{query}'")

        results = self.store.query(MaterialQuery(
            category=category,
            sub_category=sub_category,
            keyword=query,
            limit=self.plain_search_limit
        ))

        return SearchOutcome(query=query, results=results, mode=MODE_FALLBACK, semantic_used=False)
