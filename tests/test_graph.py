"""Tests for topicgraph/graph.py — node/link graph construction."""

from __future__ import annotations

import logging

import pytest

from topicgraph.graph import (
    LinkPolicy,
    build_graph,
    merge_nodes,
    prefer_primary,
    split_relation_key,
)
from topicgraph.models import (
    Entity,
    EntityMention,
    GraphNode,
    LinkType,
    NodeType,
    RelationCell,
    ResourceAggregation,
    Topic,
)


# ── Fixtures ───────────────────────────────────────────────────────────────────


def make_topic(name: str, related: dict[str, int] | None = None, loose: int | None = None) -> Topic:
    return Topic(
        id=f"doc-{name}",
        name=name,
        aggregations_loose=ResourceAggregation(doc_count=loose) if loose is not None else None,
        related=[
            EntityMention(entity=Entity(id=f"t-{n}", preferred_name=n), count=c)
            for n, c in (related or {}).items()
        ],
    )


def cells(*pairs: tuple[str, int]) -> list[RelationCell]:
    return [RelationCell(key=k, doc_count=c) for k, c in pairs]


def assert_well_formed(graph) -> None:
    ids = [n.id for n in graph.nodes]
    assert len(ids) == len(set(ids))
    for link in graph.links:
        assert link.source in ids
        assert link.target in ids


# ── Scenarios ──────────────────────────────────────────────────────────────────


class TestBuildGraph:
    def test_climate_policy_keeps_duplicate_links(self):
        topics = [make_topic("Climate", {"Policy": 5}), make_topic("Policy")]
        graph = build_graph(topics, cells(("Climate&Policy", 5)))

        assert [(n.id, n.type) for n in graph.nodes] == [
            ("Climate", NodeType.PRIMARY),
            ("Policy", NodeType.PRIMARY),
        ]
        # Both derivations are kept under the default policy
        assert [(l.source, l.target, l.type, l.weight) for l in graph.links] == [
            ("Climate", "Policy", LinkType.MENTIONS_ID_LINK, 5),
            ("Climate", "Policy", LinkType.MENTIONS_NAME_LINK, 5),
        ]
        assert_well_formed(graph)

    def test_merge_pairs_policy_keeps_first_link(self):
        topics = [make_topic("Climate", {"Policy": 5}), make_topic("Policy")]
        graph = build_graph(
            topics, cells(("Climate&Policy", 5)), link_policy=LinkPolicy.MERGE_PAIRS
        )
        assert [(l.id, l.type) for l in graph.links] == [
            ("Climate-Policy", LinkType.MENTIONS_ID_LINK),
        ]

    def test_related_name_becomes_secondary_placeholder(self):
        graph = build_graph([make_topic("Ocean", {"Reef": 3}, loose=12)], [])

        ocean, reef = graph.nodes
        assert (ocean.id, ocean.type, ocean.count) == ("Ocean", NodeType.PRIMARY, 12)
        assert ocean.doc is not None and ocean.doc.name == "Ocean"
        assert (reef.id, reef.type, reef.text) == ("Reef", NodeType.SECONDARY, "Reef")
        assert reef.count is None
        assert reef.doc is None

        (link,) = graph.links
        assert (link.id, link.source, link.target, link.weight) == ("Ocean-Reef", "Ocean", "Reef", 3)
        assert link.type is LinkType.MENTIONS_ID_LINK

    def test_primary_precedence_when_related_listed_first(self):
        topics = [make_topic("Ocean", {"Climate": 2}), make_topic("Climate")]
        graph = build_graph(topics, [])
        climate = [n for n in graph.nodes if n.id == "Climate"]
        assert len(climate) == 1
        assert climate[0].type is NodeType.PRIMARY

    def test_related_name_shared_by_topics_creates_one_placeholder(self):
        topics = [make_topic("A", {"X": 1}), make_topic("B", {"X": 2})]
        graph = build_graph(topics, [])
        assert [n.id for n in graph.nodes] == ["A", "B", "X"]

    def test_diagonal_cell_is_ignored(self):
        graph = build_graph([make_topic("X")], cells(("X", 9)))
        assert graph.links == []
        assert [n.id for n in graph.nodes] == ["X"]

    def test_trailing_separator_is_diagonal(self):
        graph = build_graph([make_topic("X")], cells(("X&", 9)))
        assert graph.links == []

    def test_empty_source_is_skipped(self):
        graph = build_graph([make_topic("X")], cells(("&X", 2)))
        assert graph.links == []
        assert [n.id for n in graph.nodes] == ["X"]

    def test_orphan_relation_endpoints_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="topicgraph.graph"):
            graph = build_graph([make_topic("A")], cells(("A&Ghost", 4), ("Other&A", 1)))

        assert [(n.id, n.type) for n in graph.nodes] == [
            ("A", NodeType.PRIMARY),
            ("Ghost", NodeType.SECONDARY),
            ("Other", NodeType.SECONDARY),
        ]
        assert "Ghost" in caplog.text
        assert "Other" in caplog.text
        assert_well_formed(graph)

    def test_id_links_precede_name_links(self):
        topics = [make_topic("A", {"B": 1}), make_topic("C", {"D": 2})]
        graph = build_graph(topics, cells(("A&C", 3)))
        assert [l.type for l in graph.links] == [
            LinkType.MENTIONS_ID_LINK,
            LinkType.MENTIONS_ID_LINK,
            LinkType.MENTIONS_NAME_LINK,
        ]
        assert_well_formed(graph)

    def test_duplicate_topic_names_collapse(self):
        graph = build_graph([make_topic("A", loose=1), make_topic("A", loose=2)], [])
        (node,) = graph.nodes
        assert node.count == 1


# ── Helpers ────────────────────────────────────────────────────────────────────


class TestMergeNodes:
    def _node(self, node_id: str, node_type: NodeType) -> GraphNode:
        return GraphNode(id=node_id, type=node_type, text=node_id)

    def test_primary_wins_over_earlier_secondary(self):
        merged = merge_nodes([
            self._node("X", NodeType.SECONDARY),
            self._node("Y", NodeType.SECONDARY),
            self._node("X", NodeType.PRIMARY),
        ])
        assert [(n.id, n.type) for n in merged] == [
            ("X", NodeType.PRIMARY),
            ("Y", NodeType.SECONDARY),
        ]

    def test_first_seen_wins_between_equals(self):
        first = self._node("X", NodeType.SECONDARY)
        merged = merge_nodes([first, self._node("X", NodeType.SECONDARY)])
        assert merged == [first]
        assert merged[0] is first

    def test_custom_policy(self):
        keep_last = lambda existing, candidate: candidate  # noqa: E731
        last = self._node("X", NodeType.SECONDARY)
        merged = merge_nodes([self._node("X", NodeType.PRIMARY), last], keep_last)
        assert merged[0] is last

    def test_prefer_primary_keeps_existing_primary(self):
        existing = self._node("X", NodeType.PRIMARY)
        assert prefer_primary(existing, self._node("X", NodeType.SECONDARY)) is existing


class TestSplitRelationKey:
    @pytest.mark.parametrize(
        "key, expected",
        [
            ("A&B", ("A", "B")),
            ("A", ("A", None)),
            ("A&", ("A", None)),
            ("A&B&C", ("A", "B")),
        ],
    )
    def test_split(self, key, expected):
        assert split_relation_key(key) == expected
