"""Tests for topicgraph/resolver.py — bucket key → entity resolution."""

from __future__ import annotations

import pytest

from topicgraph.models import UNAVAILABLE, AggregationResult, Entity
from topicgraph.resolver import resolve_entities


# ── Fixtures ───────────────────────────────────────────────────────────────────


def make_aggs(name: str, buckets: list[tuple[str, int]], total: int = 10) -> AggregationResult:
    return AggregationResult(
        total_hits=total,
        aggregations={name: [{"key": k, "doc_count": c} for k, c in buckets]},
    )


@pytest.fixture
def authors() -> list[Entity]:
    return [
        Entity(id="p1", name="Ada Lovelace"),
        Entity(id="p2", name="Alan Turing"),
        Entity(id="p3", name="Grace Hopper"),
    ]


# ── resolve_entities ───────────────────────────────────────────────────────────


class TestResolveEntities:
    def test_unavailable_propagates(self, authors):
        assert resolve_entities(UNAVAILABLE, authors, "topAuthors") is UNAVAILABLE

    def test_none_is_treated_as_unavailable(self, authors):
        assert resolve_entities(None, authors, "topAuthors") is UNAVAILABLE

    def test_matches_bucket_keys_to_entities(self, authors):
        aggs = make_aggs("topAuthors", [("p2", 7), ("p1", 3)])
        result = resolve_entities(aggs, authors, "topAuthors")
        assert [(m.entity.id, m.count) for m in result] == [("p2", 7), ("p1", 3)]

    def test_unmatched_buckets_are_dropped(self, authors):
        aggs = make_aggs("topAuthors", [("p1", 3), ("deleted", 9)])
        result = resolve_entities(aggs, authors, "topAuthors")
        assert [m.entity.id for m in result] == ["p1"]

    def test_empty_result_is_not_unavailable(self, authors):
        aggs = make_aggs("topAuthors", [("nobody", 1)])
        assert resolve_entities(aggs, authors, "topAuthors") == []

    def test_missing_aggregation_name_yields_empty(self, authors):
        aggs = make_aggs("topAuthors", [("p1", 3)])
        assert resolve_entities(aggs, authors, "mentions") == []

    def test_keys_are_subset_and_size_bounded(self, authors):
        buckets = [("p1", 1), ("p3", 2), ("x", 3), ("p1", 4)]
        aggs = make_aggs("mentions", buckets)
        result = resolve_entities(aggs, authors, "mentions")
        ids = [m.entity.id for m in result]
        assert set(ids) <= {a.id for a in authors}
        assert len(ids) == len(set(ids))
        assert len(result) <= len(buckets)

    def test_repeated_key_keeps_position_and_last_count(self, authors):
        aggs = make_aggs("mentions", [("p1", 1), ("p2", 2), ("p1", 4)])
        result = resolve_entities(aggs, authors, "mentions")
        assert [(m.entity.id, m.count) for m in result] == [("p1", 4), ("p2", 2)]

    def test_returns_the_candidate_record(self, authors):
        aggs = make_aggs("topAuthors", [("p3", 5)])
        (mention,) = resolve_entities(aggs, authors, "topAuthors")
        assert mention.entity is authors[2]
        assert mention.entity.display_name == "Grace Hopper"
