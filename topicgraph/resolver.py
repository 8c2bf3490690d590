"""Resolution of aggregation bucket keys into entity records.

Aggregations on the resource index only carry entity identifiers as bucket
keys. The candidate entities themselves are fetched separately from their own
index; this module joins the two.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from topicgraph.models import (
    UNAVAILABLE,
    AggregationResult,
    Entity,
    EntityMention,
    Unavailable,
)

logger = logging.getLogger(__name__)


def resolve_entities(
    aggs: Union[AggregationResult, Unavailable, None],
    entities: Sequence[Entity],
    agg_name: str,
) -> Union[list[EntityMention], Unavailable]:
    """Replace the bucket keys of aggregation *agg_name* with entity records.

    Buckets whose key matches no candidate are dropped; they typically refer to
    entities deleted since the resources were indexed.

    Args:
        aggs: Aggregation result, or ``UNAVAILABLE`` if it was never fetched.
        entities: Candidate entities, each with a unique ``id``.
        agg_name: Name of the aggregation whose buckets hold entity ids.

    Returns:
        One ``EntityMention`` per matched entity, in bucket order, or
        ``UNAVAILABLE`` when *aggs* is unavailable.

    Examples:
        >>> resolve_entities(UNAVAILABLE, authors, "topAuthors")
        <Unavailable.UNAVAILABLE: 'unavailable'>
    """
    if aggs is None or aggs is UNAVAILABLE:
        return UNAVAILABLE

    by_id: dict[str, Entity] = {}
    for entity in entities:
        by_id.setdefault(entity.id, entity)

    resolved: dict[str, EntityMention] = {}
    dropped = 0
    for bucket in aggs.aggregations.get(agg_name, []):
        entity: Optional[Entity] = by_id.get(str(bucket.key))
        if entity is None:
            dropped += 1
            continue
        # A repeated key keeps its first position and takes the later count
        resolved[entity.id] = EntityMention(entity=entity, count=bucket.doc_count)

    if dropped:
        logger.debug("Dropped %d unmatched %s bucket(s)", dropped, agg_name)

    return list(resolved.values())
