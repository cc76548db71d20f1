"""
Weighted keyword scorer for material candidates.

Each query token earns a fixed weight for every field it appears in:

    title         substring   2.0
    description   substring   1.0
    tags          substring   1.5  (tags joined with spaces)
    category      exact       0.8
    sub_category  substring   1.0

The raw score is the sum over all tokens. Scores are then normalized against
the best candidate in the pool, so the top match always scores 1.0.
"""

import re
from typing import Dict, List, Optional
import logging

from ..common.models import Material
from config.search_config import RANKING_CONFIG

logger = logging.getLogger(__name__)

TOKEN_SPLIT_PATTERN = re.compile(r'[^a-z0-9]+')


class LexicalScorer:
    """Scores materials against query tokens using per-field weights."""

    def __init__(self, field_weights: Optional[Dict[str, float]] = None):
        """
        Initialize lexical scorer.

        Args:
            field_weights: Overrides for title/description/tags/category/sub_category
        """
        self.field_weights = dict(RANKING_CONFIG['field_weights'])
        if field_weights:
            self.field_weights.update(field_weights)

    @staticmethod
    def tokenize(text: Optional[str]) -> List[str]:
        """
        Tokenize text into lowercase alphanumeric tokens.

        Args:
            text: Input text

        Returns:
            Non-empty tokens in order of appearance
        """
        return [t for t in TOKEN_SPLIT_PATTERN.split((text or '').lower()) if t]

    def score(self, material: Material, tokens: List[str]) -> float:
        """
        Compute the raw (unbounded) lexical score of one material.

        Args:
            material: Candidate material
            tokens: Query tokens from tokenize()

        Returns:
            Sum of field weights over all tokens, 0.0 for no tokens
        """
        if not tokens:
            return 0.0

        title = (material.title or '').lower()
        description = (material.description or '').lower()
        tags = ' '.join(material.tags or []).lower()
        category = (material.category or '').lower()
        sub_category = (material.sub_category or '').lower()

        weights = self.field_weights
        score = 0.0

        for token in tokens:
            if token in title:
                score += weights['title']
            if token in description:
                score += weights['description']
            if token in tags:
                score += weights['tags']
            if token == category:
                score += weights['category']
            if token in sub_category:
                score += weights['sub_category']

        return score

    def score_all(self, materials: List[Material], query: str) -> List[float]:
        """Raw scores for every material, aligned with the input order."""
        tokens = self.tokenize(query)
        return [self.score(m, tokens) for m in materials]

    @staticmethod
    def normalize(scores: List[float]) -> List[float]:
        """
        Scale raw scores into [0, 1] by the maximum score.

        Args:
            scores: Raw lexical scores

        Returns:
            Normalized scores; all zeros if the maximum is zero
        """
        if not scores:
            return []

        max_score = max(scores)
        if max_score <= 0:
            return [0.0 for _ in scores]

        return [s / max_score for s in scores]
