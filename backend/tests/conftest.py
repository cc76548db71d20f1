"""Shared fixtures for the search service tests."""

from typing import Dict, List, Optional

import pytest

from studyshelf.common.models import Material
from studyshelf.search.errors import RetrievalError, SemanticServiceError
from studyshelf.search.semantic_scorer import SemanticScorer
from studyshelf.storage.database import init_database
from studyshelf.storage.materials_store import SQLiteMaterialsStore


def make_material(material_id, title, day=1, **fields) -> Dict:
    """Material record created on 2024-01-<day>; later days are more recent."""
    record = {
        "id": str(material_id),
        "title": title,
        "created_at": f"2024-01-{day:02d}T00:00:00+00:00",
    }
    record.update(fields)
    return record


@pytest.fixture
def database(tmp_path):
    db = init_database(str(tmp_path / "materials.db"))
    yield db
    db.close()


@pytest.fixture
def store(database):
    return SQLiteMaterialsStore(database.connect())


@pytest.fixture
def no_semantic():
    """Scorer without a credential: lexical-only ranking."""
    return SemanticScorer(api_key="")


class FakeSemanticScorer:
    """Stands in for the HTTP adapter; scores by title lookup or raises."""

    def __init__(self, scores: Optional[Dict[str, float]] = None, error: Optional[Exception] = None):
        self.scores = scores or {}
        self.error = error
        self.model = "fake/model"
        self.calls: List = []

    @property
    def is_configured(self) -> bool:
        return True

    async def score(self, query: str, texts: List[str]) -> List[float]:
        self.calls.append((query, texts))
        if self.error:
            raise self.error
        result = []
        for text in texts:
            matched = [s for title, s in self.scores.items() if title in text]
            result.append(matched[0] if matched else 0.0)
        return result


class FailingStore:
    """Store whose queries always fail."""

    def __init__(self, error: Exception = None):
        self.error = error or RetrievalError("store unreachable")
        self.calls = 0

    def query(self, material_query) -> List[Material]:
        self.calls += 1
        raise self.error


class FlakyStore:
    """Delegates to a real store but fails the first ``failures`` queries."""

    def __init__(self, inner, failures: int = 1):
        self.inner = inner
        self.failures = failures
        self.queries = []

    def query(self, material_query) -> List[Material]:
        self.queries.append(material_query)
        if self.failures > 0:
            self.failures -= 1
            raise RetrievalError("transient store failure")
        return self.inner.query(material_query)


@pytest.fixture
def semantic_error():
    return SemanticServiceError("Similarity service returned HTTP 503", status=503)
