"""Enrichment → graph pipeline with generation-stamped publishing.

A new pass may start while an older one is still awaiting its sources. Each
pass takes a generation number from a ``GenerationCounter`` shared by the
pipeline's slots, and its result (or error) is only published if no newer
pass has started since. Late completions of stale passes are discarded.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from topicgraph.enricher import EnrichmentVariant, TopicEnricher, gather_sources
from topicgraph.graph import LinkPolicy, MergePolicy, build_graph, prefer_primary
from topicgraph.models import Graph, Topic
from topicgraph.sources import TopicSources

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationCounter:
    """Monotonic pass counter; the web layer may run passes on several threads."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._issued = 0

    @property
    def latest(self) -> int:
        return self._issued

    def next(self) -> int:
        with self.lock:
            self._issued += 1
            return self._issued


@dataclass
class ResultSlot(Generic[T]):
    """Single-writer holder of the latest published value of a computation."""

    value: Optional[T] = None
    error: Optional[BaseException] = None
    published_generation: int = 0
    counter: GenerationCounter = field(default_factory=GenerationCounter, repr=False)

    @property
    def latest_generation(self) -> int:
        return self.counter.latest

    def begin(self) -> int:
        """Start a pass and return its generation."""
        return self.counter.next()

    def is_current(self, generation: int) -> bool:
        return generation == self.counter.latest

    def publish(self, generation: int, value: T) -> bool:
        """Publish *value* if *generation* is still the latest; return whether it was."""
        with self.counter.lock:
            if not self.is_current(generation):
                logger.info(
                    "Discarding stale result of generation %d (latest %d)",
                    generation, self.counter.latest,
                )
                return False
            self.value = value
            self.error = None
            self.published_generation = generation
            return True

    def fail(self, generation: int, error: BaseException) -> bool:
        """Record *error* if *generation* is still the latest; the last value is kept."""
        with self.counter.lock:
            if not self.is_current(generation):
                logger.info("Discarding stale failure of generation %d: %s", generation, error)
                return False
            self.error = error
            self.published_generation = generation
            return True


@dataclass
class PassResult:
    generation: int
    topics: list[Topic]
    graph: Graph


class TopicGraphPipeline:
    """Runs enrichment and graph construction and publishes the results.

    ``topics`` and ``graph`` are the two published slots; the rendering layer
    reads them, only ``refresh`` writes them. Both share one generation
    counter.
    """

    def __init__(
        self,
        variant: EnrichmentVariant = EnrichmentVariant.FULL,
        link_policy: LinkPolicy = LinkPolicy.KEEP_ALL,
        merge: MergePolicy = prefer_primary,
    ) -> None:
        self.enricher = TopicEnricher(variant)
        self.link_policy = LinkPolicy(link_policy)
        self.merge = merge
        self.generations = GenerationCounter()
        self.topics: ResultSlot[list[Topic]] = ResultSlot(counter=self.generations)
        self.graph: ResultSlot[Graph] = ResultSlot(counter=self.generations)

    async def refresh(self, sources: TopicSources) -> PassResult:
        """Run one pass against *sources*.

        Returns:
            The pass result, whether or not it was still current when it
            completed (check ``self.graph.published_generation``).

        Raises:
            SourceUnavailableError: If any source fails.
            ValueError: If the fetched data cannot be merged into topics.
            Either is recorded on both slots when the pass is still current.
        """
        generation = self.generations.next()

        try:
            # One join over the raw fetches; merging happens outside it
            requests = self.enricher.requests(sources)
            requests["relations"] = sources.relations()
            fetched = await gather_sources(requests)

            relations = fetched.pop("relations")
            topics = self.enricher.merge(fetched)
            graph = build_graph(
                topics,
                relations,
                merge=self.merge,
                link_policy=self.link_policy,
            )
        except Exception as exc:
            self.topics.fail(generation, exc)
            self.graph.fail(generation, exc)
            raise

        self.topics.publish(generation, topics)
        self.graph.publish(generation, graph)
        return PassResult(generation=generation, topics=topics, graph=graph)
