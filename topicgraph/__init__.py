"""
topic-graph core package.

Modules
───────
models     — Pydantic data models (raw search-index inputs, Topic, Graph)
resolver   — resolve aggregation bucket keys into entity records
converter  — raw resource aggregation → ResourceAggregation metadata
sources    — TopicSources protocol + in-memory SnapshotSources
enricher   — async all-or-nothing join of the sources into Topic records
graph      — node/link graph construction with placeholder inference
pipeline   — enrichment → graph pass with generation-stamped publishing
"""
