"""Graph construction from enriched topics and the co-occurrence relation table.

Responsibilities:
- Create one primary node per enriched topic
- Link every topic to its related topics (id-derived links)
- Infer secondary placeholder nodes for related names that are not topics
- Turn relation-table cells into name-derived links
- Deduplicate nodes by id through an explicit merge policy

Node ids are display names. A topic that is also referenced as a related name
elsewhere always ends up as a single primary node.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from typing import Optional

from topicgraph.models import (
    Graph,
    GraphLink,
    GraphNode,
    LinkType,
    NodeType,
    RelationCell,
    Topic,
)

logger = logging.getLogger(__name__)

#: Separator between source and target in a relation-table key.
RELATION_SEPARATOR = "&"

#: ``merge(existing, candidate)`` returns the node to keep for a shared id.
MergePolicy = Callable[[GraphNode, GraphNode], GraphNode]


class LinkPolicy(str, Enum):
    """How links between the same endpoint pair are handled."""

    KEEP_ALL = "keep_all"          # id- and name-derived links both kept
    MERGE_PAIRS = "merge_pairs"    # first link per (source, target) wins


# ── Node merging ───────────────────────────────────────────────────────────────


def prefer_primary(existing: GraphNode, candidate: GraphNode) -> GraphNode:
    """Keep a primary node over a secondary one, otherwise the first seen."""
    if existing.type is not NodeType.PRIMARY and candidate.type is NodeType.PRIMARY:
        return candidate
    return existing


def merge_nodes(
    nodes: Iterable[GraphNode],
    merge: MergePolicy = prefer_primary,
) -> list[GraphNode]:
    """Deduplicate nodes by id, in first-seen order.

    Examples:
        >>> [n.id for n in merge_nodes([a, b, a_placeholder])]
        ['a', 'b']
    """
    kept: dict[str, GraphNode] = {}
    for node in nodes:
        existing = kept.get(node.id)
        kept[node.id] = node if existing is None else merge(existing, node)
    return list(kept.values())


def _placeholder(name: str) -> GraphNode:
    return GraphNode(id=name, type=NodeType.SECONDARY, text=name, doc=None, count=None)


def _primary(topic: Topic) -> GraphNode:
    loose = topic.aggregations_loose
    return GraphNode(
        id=topic.name,
        type=NodeType.PRIMARY,
        text=topic.name,
        doc=topic,
        count=loose.doc_count if loose is not None else None,
    )


# ── Relation table ─────────────────────────────────────────────────────────────


def split_relation_key(key: str) -> tuple[str, Optional[str]]:
    """Split a ``"source&target"`` key; diagonal cells have no target.

    Examples:
        >>> split_relation_key("Climate&Policy")
        ('Climate', 'Policy')
        >>> split_relation_key("Climate")
        ('Climate', None)
    """
    parts = key.split(RELATION_SEPARATOR)
    target = parts[1] if len(parts) > 1 and parts[1] else None
    return parts[0], target


def _dedupe_links(links: Sequence[GraphLink], policy: LinkPolicy) -> list[GraphLink]:
    if policy is LinkPolicy.KEEP_ALL:
        return list(links)

    seen: set[tuple[str, str]] = set()
    unique: list[GraphLink] = []
    for link in links:
        pair = (link.source, link.target)
        if pair not in seen:
            seen.add(pair)
            unique.append(link)
    return unique


# ── Public pipeline ────────────────────────────────────────────────────────────


def build_graph(
    topics: Sequence[Topic],
    relations: Sequence[RelationCell],
    *,
    merge: MergePolicy = prefer_primary,
    link_policy: LinkPolicy = LinkPolicy.KEEP_ALL,
) -> Graph:
    """Build the visualization graph for one pass.

    Args:
        topics: Enriched topics, in display order.
        relations: Flattened co-occurrence matrix cells.
        merge: Policy deciding which node survives when two share an id.
        link_policy: Whether links between the same endpoints are merged.

    Returns:
        A ``Graph`` whose node ids are unique and whose links only reference
        those nodes. Id-derived links precede name-derived ones.
    """
    nodes: list[GraphNode] = []
    links: list[GraphLink] = []
    related_names: list[str] = []

    # Top-level topics first so they take precedence over placeholders
    for topic in topics:
        node = _primary(topic)
        nodes.append(node)

        for mention in topic.related:
            name = mention.entity.display_name
            related_names.append(name)
            links.append(GraphLink(
                id=f"{node.id}-{name}",
                source=node.id,
                target=name,
                type=LinkType.MENTIONS_ID_LINK,
                weight=mention.count,
            ))

    known: set[str] = {n.id for n in nodes}
    for name in related_names:
        if name not in known:
            nodes.append(_placeholder(name))
            known.add(name)

    for cell in relations:
        source, target = split_relation_key(cell.key)
        if target is None:
            continue
        if not source:
            logger.warning("Skipping relation with empty source: %r", cell.key)
            continue

        for name in (source, target):
            if name not in known:
                # Every relation endpoint should be a topic or a related name
                logger.warning("Relation %r references unknown node %r", cell.key, name)
                nodes.append(_placeholder(name))
                known.add(name)

        links.append(GraphLink(
            id=f"{source}-{target}",
            source=source,
            target=target,
            type=LinkType.MENTIONS_NAME_LINK,
            weight=cell.doc_count,
        ))

    graph = Graph(
        nodes=merge_nodes(nodes, merge),
        links=_dedupe_links(links, link_policy),
    )
    logger.info("Built graph: %d nodes, %d links", len(graph.nodes), len(graph.links))
    return graph
