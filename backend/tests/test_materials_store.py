"""Tests for the SQLite materials store."""

import pytest

from conftest import make_material
from studyshelf.search.errors import RetrievalError
from studyshelf.storage.materials_store import MaterialQuery


@pytest.fixture
def seeded(store):
    store.add_materials([
        make_material(1, "Calculus I notes", day=1, category="Mathematics", sub_category="Notes",
                      tags=["calculus", "limits"], file_url="https://files/1.pdf"),
        make_material(2, "Physics intro", day=2, category="Physics", sub_category="Textbook",
                      description="Kinematics and CALCULUS refresher"),
        make_material(3, "Discrete math", day=3, category="Mathematics", sub_category="Notes",
                      tags=["Graphs"], is_public=False),
        make_material(4, "100% guide_to stats", day=4, category="Mathematics"),
    ])
    return store


def titles(materials):
    return [m.title for m in materials]


def test_query_orders_by_recency(seeded):
    assert titles(seeded.query(MaterialQuery())) == [
        "100% guide_to stats", "Discrete math", "Physics intro", "Calculus I notes"
    ]


def test_keyword_matches_title_and_description_case_insensitively(seeded):
    results = seeded.query(MaterialQuery(keyword="calculus"))
    assert titles(results) == ["Physics intro", "Calculus I notes"]


def test_keyword_matches_tags_exactly(seeded):
    assert titles(seeded.query(MaterialQuery(keyword="Graphs"))) == ["Discrete math"]
    assert seeded.query(MaterialQuery(keyword="Graph")) == []


def test_keyword_escapes_like_wildcards(seeded):
    assert titles(seeded.query(MaterialQuery(keyword="100%"))) == ["100% guide_to stats"]
    assert titles(seeded.query(MaterialQuery(keyword="s_i"))) == []


def test_equality_filters(seeded):
    results = seeded.query(MaterialQuery(category="Mathematics", sub_category="Notes"))
    assert titles(results) == ["Discrete math", "Calculus I notes"]

    public = seeded.query(MaterialQuery(category="Mathematics", is_public=True))
    assert "Discrete math" not in titles(public)


def test_pagination(seeded):
    assert titles(seeded.query(MaterialQuery(limit=2))) == ["100% guide_to stats", "Discrete math"]
    assert titles(seeded.query(MaterialQuery(limit=2, offset=2))) == ["Physics intro", "Calculus I notes"]
    assert seeded.query(MaterialQuery(limit=0)) == []


def test_passthrough_fields_are_preserved(seeded):
    material = seeded.query(MaterialQuery(keyword="Calculus I"))[0]
    record = material.to_dict()

    assert record["file_url"] == "https://files/1.pdf"
    assert record["tags"] == ["calculus", "limits"]
    assert record["is_public"] is True
    assert record["created_at"] == "2024-01-01T00:00:00+00:00"


def test_store_errors_become_retrieval_errors(store, database):
    database.connect().execute("DROP TABLE materials")

    with pytest.raises(RetrievalError):
        store.query(MaterialQuery(keyword="anything"))


def test_add_material_requires_id(store):
    with pytest.raises(ValueError):
        store.add_material({"title": "No id"})


def test_count_materials(seeded):
    assert seeded.count_materials() == 4


def test_keyword_matches_non_ascii_titles(store):
    store.add_materials([
        make_material(1, "Économie politique", day=1, category="Economics"),
        make_material(2, "Straßenbau Grundlagen", day=2, description="Über Brücken und Tunnel"),
        make_material(3, "Physics intro", day=3),
    ])

    assert titles(store.query(MaterialQuery(keyword="Économie"))) == ["Économie politique"]
    assert titles(store.query(MaterialQuery(keyword="éCONOMIE"))) == ["Économie politique"]
    assert titles(store.query(MaterialQuery(keyword="STRASSENBAU"))) == ["Straßenbau Grundlagen"]
    assert titles(store.query(MaterialQuery(keyword="über"))) == ["Straßenbau Grundlagen"]


def test_add_material_rejects_string_tags(store):
    with pytest.raises(ValueError, match="tags must be a list"):
        store.add_material(make_material(1, "Calculus I notes", tags="math"))

    assert store.count_materials() == 0
