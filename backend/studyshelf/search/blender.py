"""
Score blending, relevance filtering, sorting and truncation.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass
import logging

from ..common.models import Material
from config.search_config import RANKING_CONFIG

logger = logging.getLogger('search')


@dataclass
class ScoredCandidate:
    """A candidate decorated with the scores of one ranking pass."""
    material: Material
    lexical_score: float
    lexical_norm: float
    semantic_score: Optional[float] = None
    blended_score: float = 0.0


class ScoreBlender:
    """
    Combines lexical and semantic scores and picks the final ranking.

    With semantic scores:  blended = 0.85 * semantic + 0.15 * lexical_norm
    Without:               blended = lexical_norm
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize blender.

        Args:
            config: Overrides for RANKING_CONFIG weights and thresholds
        """
        settings = dict(RANKING_CONFIG)
        if config:
            settings.update(config)

        self.semantic_weight = settings['semantic_weight']
        self.lexical_weight = settings['lexical_weight']
        self.min_semantic_score = settings['min_semantic_score']
        self.min_lexical_score = settings['min_lexical_score']

    def blend(
        self,
        materials: List[Material],
        lexical_scores: List[float],
        lexical_norms: List[float],
        semantic_scores: Optional[List[float]] = None
    ) -> List[ScoredCandidate]:
        """
        Attach blended scores to every candidate.

        Args:
            materials: Candidates in retrieval order
            lexical_scores: Raw lexical scores
            lexical_norms: Normalized lexical scores
            semantic_scores: Semantic scores, or None in lexical-only mode

        Returns:
            Scored candidates in retrieval order
        """
        if semantic_scores is not None and len(semantic_scores) != len(materials):
            raise ValueError(
                f"Got {len(semantic_scores)} semantic scores for {len(materials)} candidates"
            )

        scored = []
        for i, material in enumerate(materials):
            lexical_norm = lexical_norms[i]

            if semantic_scores is None:
                semantic = None
                blended = lexical_norm
            else:
                semantic = semantic_scores[i]
                blended = self.semantic_weight * semantic + self.lexical_weight * lexical_norm

            scored.append(ScoredCandidate(
                material=material,
                lexical_score=lexical_scores[i],
                lexical_norm=lexical_norm,
                semantic_score=semantic,
                blended_score=blended
            ))

        return scored

    def filter(self, scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
        """
        Drop low-relevance candidates.

        Semantic mode keeps a candidate meeting either floor. Lexical-only
        mode keeps any candidate with a keyword hit. If nothing survives, the
        unfiltered list is returned instead.
        """
        kept = [c for c in scored if self._is_relevant(c)]

        if scored and not kept:
            logger.info(f"Relevance filter removed all {len(scored)} candidates, keeping unfiltered set")
            return list(scored)

        logger.debug(f"Relevance filter kept {len(kept)}/{len(scored)} candidates")
        return kept

    def _is_relevant(self, candidate: ScoredCandidate) -> bool:
        if candidate.semantic_score is not None:
            return (
                candidate.semantic_score >= self.min_semantic_score
                or candidate.lexical_norm >= self.min_lexical_score
            )
        return candidate.lexical_norm > 0

    @staticmethod
    def sort(scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
        """Descending by blended score; ties keep retrieval (recency) order."""
        return sorted(scored, key=lambda c: c.blended_score, reverse=True)

    def rank(self, scored: List[ScoredCandidate], limit: int) -> List[ScoredCandidate]:
        """Filter, sort and truncate to ``limit``."""
        if limit <= 0:
            return []
        return self.sort(self.filter(scored))[:limit]
