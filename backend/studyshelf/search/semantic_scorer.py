"""
Adapter for the external sentence-similarity service.

The service compares one source sentence against a batch of sentences and
answers with one float per sentence, in input order. It is called at most once
per search and never retried: any failure is reported as SemanticServiceError
and the search carries on with lexical scores.
"""

import asyncio
import json
import math
import numbers
from typing import List, Optional
from urllib.parse import quote
import logging

import aiohttp

from .errors import SemanticServiceError
from ..common.models import Material
from config.search_config import SEMANTIC_CONFIG

logger = logging.getLogger('search')


def compose_text(material: Material, separator: str = SEMANTIC_CONFIG['text_separator']) -> str:
    """
    Build the text a material is compared on.

    Order: file name, title, description, tags, category, subcategory.
    Missing or empty fields are left out.
    """
    parts = []
    if material.file_name:
        parts.append(material.file_name)
    if material.title:
        parts.append(material.title)
    if material.description:
        parts.append(material.description)
    if material.tags:
        parts.append(', '.join(material.tags))
    if material.category:
        parts.append(material.category)
    if material.sub_category:
        parts.append(material.sub_category)
    return separator.join(parts)


class SemanticScorer:
    """Batched query-vs-candidates similarity over HTTP."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        wait_for_model: Optional[bool] = None
    ):
        """
        Initialize semantic scorer.

        Args:
            api_key: Bearer token; without one the scorer is not configured
            model: Model id appended to the endpoint
            endpoint: Base URL of the inference API
            timeout_seconds: Total timeout for the single request
            wait_for_model: Ask the service to wait for a cold model
        """
        self.api_key = api_key if api_key is not None else SEMANTIC_CONFIG['api_key']
        self.model = model or SEMANTIC_CONFIG['model']
        self.endpoint = (endpoint or SEMANTIC_CONFIG['endpoint']).rstrip('/')
        self.timeout_seconds = timeout_seconds or SEMANTIC_CONFIG['timeout_seconds']
        self.wait_for_model = (
            wait_for_model if wait_for_model is not None else SEMANTIC_CONFIG['wait_for_model']
        )

    @property
    def is_configured(self) -> bool:
        """Whether a credential is available."""
        return bool(self.api_key)

    @property
    def url(self) -> str:
        url = f"{self.endpoint}/{quote(self.model, safe='/')}"
        if self.wait_for_model:
            url += "?wait_for_model=true"
        return url

    async def score(self, query: str, texts: List[str]) -> List[float]:
        """
        Score every candidate text against the query.

        Args:
            query: Raw query text
            texts: Composed candidate texts

        Returns:
            One score per text, aligned with the input

        Raises:
            SemanticServiceError: On any transport, status or payload problem
        """
        if not self.is_configured:
            raise SemanticServiceError("Semantic service credential not configured")

        if not texts:
            return []

        payload = {
            "inputs": {
                "source_sentence": query,
                "sentences": texts,
            }
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.wait_for_model:
            headers["X-Wait-For-Model"] = "true"

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=payload, headers=headers) as response:
                    if response.status < 200 or response.status >= 300:
                        body = await response.text()
                        raise SemanticServiceError(
                            f"Similarity service returned HTTP {response.status}: {body[:200]}",
                            status=response.status
                        )

                    raw = await response.text()

        except asyncio.TimeoutError as e:
            raise SemanticServiceError(
                f"Similarity service timed out after {self.timeout_seconds}s"
            ) from e
        except aiohttp.ClientError as e:
            raise SemanticServiceError(f"Similarity service request failed: {e}") from e

        return self._parse_scores(raw, len(texts))

    @staticmethod
    def _parse_scores(raw: str, expected: int) -> List[float]:
        """Validate the response body: a list of exactly ``expected`` numbers."""
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SemanticServiceError(f"Similarity service returned invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise SemanticServiceError(
                f"Similarity service returned {type(data).__name__}, expected a list"
            )

        if len(data) != expected:
            raise SemanticServiceError(
                f"Similarity service returned {len(data)} scores for {expected} sentences"
            )

        scores = []
        for value in data:
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise SemanticServiceError(f"Non-numeric similarity score: {value!r}")
            scores.append(float(value))

        return scores
