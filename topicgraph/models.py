"""
Pydantic models shared across the topic graph core.

Raw input models mirror the search-index responses (``_id``/``_source`` hits,
``hits.total.value`` totals, ``<agg>.buckets`` aggregations) and accept both
the wire aliases and the Python field names. Output models (``Topic``,
``GraphNode``, ``GraphLink``, ``Graph``) are created fresh on every pass.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Unavailable(Enum):
    """Marker for a source whose data was never fetched."""

    UNAVAILABLE = "unavailable"


#: Distinct from an empty result: "no data fetched" vs "fetched, zero matches".
UNAVAILABLE = Unavailable.UNAVAILABLE


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Raw inputs ─────────────────────────────────────────────────────────────────


class AggregationBucket(_WireModel):
    """A single (key, count) bucket of a search aggregation."""

    key: Union[int, float, str]
    doc_count: int = Field(ge=0)
    key_as_string: Optional[str] = None


class AggregationResult(_WireModel):
    """Resource aggregation response for one topic."""

    total_hits: int = Field(ge=0)
    aggregations: dict[str, list[AggregationBucket]] = Field(default_factory=dict)

    @classmethod
    def from_es(cls, payload: dict[str, Any]) -> AggregationResult:
        """Parse a raw response shaped like ``{"hits": {"total": {"value": n}}, "aggregations": {...}}``.

        ``hits.total`` may also be a bare integer (older index versions).
        """
        total = payload.get("hits", {}).get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        aggregations = {
            name: agg.get("buckets", [])
            for name, agg in (payload.get("aggregations") or {}).items()
        }
        return cls.model_validate({"total_hits": total, "aggregations": aggregations})


class Entity(_WireModel):
    """A candidate record from one of the entity indices."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="@id")
    preferred_name: Optional[str] = Field(default=None, alias="preferredName")
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.preferred_name or self.name or self.id


class AdditionalTypeRef(_WireModel):
    """Classification reference as it appears inside a topic hit."""

    id: str = Field(alias="@id")
    name: str = ""
    description: Optional[str] = None


class TopicSource(_WireModel):
    """The ``_source`` document of a topic search hit."""

    id: str = Field(alias="@id")
    preferred_name: str = Field(alias="preferredName")
    alternate_name: list[str] = Field(default_factory=list, alias="alternateName")
    description: Optional[str] = None
    additional_type: list[AdditionalTypeRef] = Field(
        default_factory=list, alias="additionalType"
    )


class TopicHit(_WireModel):
    """One hit of the topic search."""

    id: str = Field(alias="_id")
    score: float = Field(default=0.0, alias="_score")
    source: TopicSource = Field(alias="_source")

    @classmethod
    def from_es(cls, payload: dict[str, Any]) -> TopicHit:
        """Parse a raw hit; a ``null`` score (sorted queries) becomes 0.0."""
        data = dict(payload)
        if data.get("_score") is None:
            data["_score"] = 0.0
        return cls.model_validate(data)


class RelationCell(_WireModel):
    """One cell of the flattened co-occurrence matrix (``"source&target"``)."""

    key: str
    doc_count: int = Field(ge=0)


# ── Topic records ──────────────────────────────────────────────────────────────


class TopAuthor(BaseModel):
    key: str
    doc_count: int


class DatePublished(BaseModel):
    year: int
    count: int


class Mention(BaseModel):
    name: str
    doc_count: int


class ResourceAggregation(BaseModel):
    """Topic metadata derived from a resource aggregation.

    ``doc_count`` is the query's hit total; it need not equal the sum of
    any histogram since those are top-K.
    """

    doc_count: int = Field(ge=0)
    top_authors: list[TopAuthor] = Field(default_factory=list)
    date_published: list[DatePublished] = Field(default_factory=list)
    mentions: list[Mention] = Field(default_factory=list)


class EntityMention(BaseModel):
    """A resolved entity and the number of resources mentioning it."""

    entity: Entity
    count: int = Field(ge=0)


class AdditionalType(BaseModel):
    # Not resolved into a full Topic even when one with the same id exists.
    id: str
    name: str
    description: Optional[str] = None


class Topic(BaseModel):
    """An enriched topic record."""

    id: str
    name: str
    alternate_name: Optional[str] = None
    description: Optional[str] = None
    score: float = 0.0
    additional_types: list[AdditionalType] = Field(default_factory=list)
    aggregations: Optional[ResourceAggregation] = None
    aggregations_loose: Optional[ResourceAggregation] = None
    alt_count: Optional[int] = None
    authors: list[EntityMention] = Field(default_factory=list)
    locations: list[EntityMention] = Field(default_factory=list)
    related: list[EntityMention] = Field(default_factory=list)
    events: list[EntityMention] = Field(default_factory=list)


# ── Graph ──────────────────────────────────────────────────────────────────────


class NodeType(str, Enum):
    PRIMARY = "PRIMARY_NODE"        # Directly queried topic
    SECONDARY = "SECONDARY_NODE"    # Inferred from a relation, no document
    AUTHOR = "AUTHOR_NODE"          # Reserved


class LinkType(str, Enum):
    MENTIONS_ID_LINK = "MENTIONS_ID_LINK"
    MENTIONS_NAME_LINK = "MENTIONS_NAME_LINK"
    TOPIC_AUTHOR = "topicAuthor"    # Reserved


class GraphNode(BaseModel):
    id: str
    type: NodeType
    text: str
    doc: Optional[Topic] = None
    count: Optional[int] = None


class GraphLink(BaseModel):
    id: str
    source: str
    target: str
    type: LinkType
    weight: int = Field(ge=0)


class Graph(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    links: list[GraphLink] = Field(default_factory=list)
