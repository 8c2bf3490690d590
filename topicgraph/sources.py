"""Data sources consumed by the enricher and graph builder.

``TopicSources`` is the seam to the search-index client: each method issues
(or awaits) one independent request. ``SnapshotSources`` serves a fixed
in-memory snapshot, e.g. a payload posted to the web API or test fixtures.

Snapshot payload shape (all keys optional except ``topics``)::

    {
      "topics":              [{"_id": ..., "_score": ..., "_source": {...}}],
      "authors":             [{"@id": ..., "name": ...}],
      "locations":           [...],
      "related_topics":      [...],
      "events":              [...],
      "alt_counts":          {"<alternate name>": 12},
      "strict_aggregations": {"<topic @id>": <raw aggregation response>},
      "loose_aggregations":  {"<preferred name>": <raw aggregation response>},
      "relations":           [{"key": "A&B", "doc_count": 3}]
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from topicgraph.models import AggregationResult, Entity, RelationCell, TopicHit


class TopicSources(Protocol):
    """Independent asynchronous inputs of one enrichment pass."""

    async def topics(self) -> list[TopicHit]: ...

    async def authors(self) -> list[Entity]: ...

    async def alt_counts(self) -> dict[str, int]: ...

    async def strict_aggregations(self) -> dict[str, AggregationResult]: ...

    async def loose_aggregations(self) -> dict[str, AggregationResult]: ...

    async def locations(self) -> list[Entity]: ...

    async def related_topics(self) -> list[Entity]: ...

    async def events(self) -> list[Entity]: ...

    async def relations(self) -> list[RelationCell]: ...


@dataclass
class SnapshotSources:
    """``TopicSources`` backed by already-fetched data."""

    topic_hits: list[TopicHit] = field(default_factory=list)
    author_list: list[Entity] = field(default_factory=list)
    alt_count_map: dict[str, int] = field(default_factory=dict)
    strict_map: dict[str, AggregationResult] = field(default_factory=dict)
    loose_map: dict[str, AggregationResult] = field(default_factory=dict)
    location_list: list[Entity] = field(default_factory=list)
    related_list: list[Entity] = field(default_factory=list)
    event_list: list[Entity] = field(default_factory=list)
    relation_cells: list[RelationCell] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SnapshotSources:
        """Build a snapshot from search-index shaped JSON.

        Raises:
            ValueError: If ``topics`` is missing.
            pydantic.ValidationError: If any record is malformed.
        """
        if "topics" not in payload:
            raise ValueError("Snapshot payload must contain 'topics'.")

        def entities(name: str) -> list[Entity]:
            return [Entity.model_validate(e) for e in payload.get(name) or []]

        def aggregations(name: str) -> dict[str, AggregationResult]:
            return {
                key: AggregationResult.from_es(raw)
                for key, raw in (payload.get(name) or {}).items()
            }

        return cls(
            topic_hits=[TopicHit.from_es(h) for h in payload["topics"]],
            author_list=entities("authors"),
            alt_count_map={k: int(v) for k, v in (payload.get("alt_counts") or {}).items()},
            strict_map=aggregations("strict_aggregations"),
            loose_map=aggregations("loose_aggregations"),
            location_list=entities("locations"),
            related_list=entities("related_topics"),
            event_list=entities("events"),
            relation_cells=[
                RelationCell.model_validate(r) for r in payload.get("relations") or []
            ],
        )

    async def topics(self) -> list[TopicHit]:
        return self.topic_hits

    async def authors(self) -> list[Entity]:
        return self.author_list

    async def alt_counts(self) -> dict[str, int]:
        return self.alt_count_map

    async def strict_aggregations(self) -> dict[str, AggregationResult]:
        return self.strict_map

    async def loose_aggregations(self) -> dict[str, AggregationResult]:
        return self.loose_map

    async def locations(self) -> list[Entity]:
        return self.location_list

    async def related_topics(self) -> list[Entity]:
        return self.related_list

    async def events(self) -> list[Entity]:
        return self.event_list

    async def relations(self) -> list[RelationCell]:
        return self.relation_cells
