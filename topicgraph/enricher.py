"""Topic enrichment: join independently fetched sources into ``Topic`` records.

Flow
────
1. gather_sources({name: awaitable, ...})
     → runs every request concurrently as its own task
     → all-or-nothing: the first failure cancels the rest and raises
       ``SourceUnavailableError``
2. merge_topics(hits, ...)
     → one ``Topic`` per search hit, in hit order, with aggregations
       converted and entity references resolved

Strict aggregations are keyed by the topic's ``@id``. Loose aggregations are
keyed by preferred name.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping, Sequence
from enum import Enum
from typing import Any, Optional, Union

from topicgraph.converter import MENTIONS, TOP_AUTHORS, convert_aggregation
from topicgraph.models import (
    UNAVAILABLE,
    AdditionalType,
    AggregationResult,
    Entity,
    EntityMention,
    Topic,
    TopicHit,
    Unavailable,
)
from topicgraph.resolver import resolve_entities
from topicgraph.sources import TopicSources

logger = logging.getLogger(__name__)


class SourceUnavailableError(RuntimeError):
    """Raised when one of the joined sources fails; the whole pass fails with it."""

    def __init__(
        self,
        source: str,
        cause: BaseException,
        also_failed: Sequence[str] = (),
    ) -> None:
        super().__init__(f"Source {source!r} unavailable: {cause}")
        self.source = source
        #: Other sources that had already failed when the join gave up.
        self.also_failed = list(also_failed)


class EnrichmentVariant(str, Enum):
    """Which sources a pass joins."""

    FULL = "full"      # 8 sources
    BASIC = "basic"    # 5 sources: no locations, related topics or events


# ── Join ───────────────────────────────────────────────────────────────────────


async def gather_sources(requests: Mapping[str, Awaitable[Any]]) -> dict[str, Any]:
    """Await every request concurrently and return results keyed by name.

    Raises:
        SourceUnavailableError: For the first request that fails. Requests
            still in flight are cancelled; no partial result is returned.
    """
    tasks = {name: asyncio.ensure_future(aw) for name, aw in requests.items()}

    try:
        await asyncio.gather(*tasks.values())
    except Exception as exc:
        pending = [t for t in tasks.values() if not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        failed = "unknown"
        also_failed: list[str] = []
        for name, task in tasks.items():
            if task in pending or task.cancelled():
                continue
            # Retrieve every exception, not just the one gather raised
            task_exc = task.exception()
            if task_exc is exc:
                failed = name
            elif task_exc is not None:
                also_failed.append(name)
        logger.error(
            "Enrichment join failed on source %r: %s (also failed: %s)",
            failed, exc, also_failed,
        )
        raise SourceUnavailableError(failed, exc, also_failed) from exc

    return {name: task.result() for name, task in tasks.items()}


# ── Merge ──────────────────────────────────────────────────────────────────────


def _mentions(
    aggs: Union[AggregationResult, Unavailable],
    entities: Sequence[Entity],
    agg_name: str,
) -> list[EntityMention]:
    resolved = resolve_entities(aggs, entities, agg_name)
    return [] if resolved is UNAVAILABLE else resolved


def enrich_hit(
    hit: TopicHit,
    *,
    authors: Sequence[Entity],
    alt_counts: Mapping[str, int],
    strict: Mapping[str, AggregationResult],
    loose: Mapping[str, AggregationResult],
    locations: Sequence[Entity] = (),
    related: Sequence[Entity] = (),
    events: Sequence[Entity] = (),
) -> Topic:
    """Build the ``Topic`` record for a single search hit."""
    source = hit.source
    agg_strict = strict.get(source.id, UNAVAILABLE)
    agg_loose = loose.get(source.preferred_name, UNAVAILABLE)

    # Only the first alternate name is looked up
    alt_name: Optional[str] = source.alternate_name[0] if source.alternate_name else None

    return Topic(
        id=hit.id,
        score=hit.score,
        name=source.preferred_name,
        alternate_name=alt_name,
        description=source.description,
        additional_types=[
            AdditionalType(id=t.id, name=t.name, description=t.description)
            for t in source.additional_type
        ],
        aggregations=None if agg_strict is UNAVAILABLE else convert_aggregation(agg_strict),
        aggregations_loose=None if agg_loose is UNAVAILABLE else convert_aggregation(agg_loose),
        alt_count=alt_counts.get(alt_name) if alt_name is not None else None,
        authors=_mentions(agg_strict, authors, TOP_AUTHORS),
        locations=_mentions(agg_strict, locations, MENTIONS),
        related=_mentions(agg_strict, related, MENTIONS),
        events=_mentions(agg_strict, events, MENTIONS),
    )


def merge_topics(hits: Sequence[TopicHit], **lookups: Any) -> list[Topic]:
    """Enrich every hit, preserving hit order.

    Keyword arguments are passed through to ``enrich_hit``.
    """
    return [enrich_hit(hit, **lookups) for hit in hits]


# ── Enricher ───────────────────────────────────────────────────────────────────


class TopicEnricher:
    """Fans out to the sources of one pass, joins them and merges the results.

    The enricher holds no state between passes; each ``enrich`` call is a pure
    function of what the sources return.
    """

    def __init__(self, variant: EnrichmentVariant = EnrichmentVariant.FULL) -> None:
        self.variant = EnrichmentVariant(variant)

    def requests(self, sources: TopicSources) -> dict[str, Awaitable[Any]]:
        """Return the raw fetches of one pass, keyed by source name."""
        requests: dict[str, Awaitable[Any]] = {
            "topics": sources.topics(),
            "authors": sources.authors(),
            "alt_counts": sources.alt_counts(),
            "strict": sources.strict_aggregations(),
            "loose": sources.loose_aggregations(),
        }
        if self.variant is EnrichmentVariant.FULL:
            requests.update(
                locations=sources.locations(),
                related=sources.related_topics(),
                events=sources.events(),
            )
        return requests

    async def enrich(self, sources: TopicSources) -> list[Topic]:
        """Run one enrichment pass.

        Returns:
            One ``Topic`` per topic hit, in hit order.

        Raises:
            SourceUnavailableError: If any source fails.
            ValueError: If the fetched data cannot be merged (bad date keys,
                invalid records); not wrapped, since no source failed.
        """
        return self.merge(await gather_sources(self.requests(sources)))

    def merge(self, fetched: Mapping[str, Any]) -> list[Topic]:
        """Merge the results of ``requests`` (keyed the same way) into topics."""
        data = dict(fetched)
        hits = data.pop("topics")
        topics = merge_topics(hits, **data)

        logger.info(
            "Enriched %d topic(s) from %d sources (%s)",
            len(topics), len(data) + 1, self.variant.value,
        )
        return topics
