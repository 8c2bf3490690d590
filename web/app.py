"""
Flask web server for the topic graph.

Routes
──────
POST /api/topics    Enrich a posted snapshot, return the Topic records (JSON)
POST /api/graph     Run a full pass on a posted snapshot, return the graph (JSON)
GET  /api/graph     Latest published graph (JSON)

Snapshot payloads use the shape documented in ``topicgraph/sources.py``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from pydantic import ValidationError

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

from config.settings import Settings
from topicgraph.enricher import SourceUnavailableError, TopicEnricher
from topicgraph.pipeline import TopicGraphPipeline
from topicgraph.sources import SnapshotSources

settings = Settings()
settings.validate()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = Flask(__name__)

pipeline = TopicGraphPipeline(
    variant=settings.enrichment_variant,
    link_policy=settings.graph_link_policy,
)


def _snapshot() -> SnapshotSources:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object.")
    return SnapshotSources.from_payload(payload)


@app.errorhandler(ValidationError)
@app.errorhandler(ValueError)
def bad_request(exc: Exception):
    logger.warning("Rejected snapshot: %s", exc)
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(SourceUnavailableError)
def source_unavailable(exc: SourceUnavailableError):
    logger.exception("Enrichment failed on source %r", exc.source)
    return jsonify({"error": str(exc), "source": exc.source}), 502


# ── Topics ─────────────────────────────────────────────────────────────────

@app.route("/api/topics", methods=["POST"])
def enrich_topics():
    """Return the enriched Topic records for the posted snapshot."""
    sources = _snapshot()
    topics = asyncio.run(TopicEnricher(settings.enrichment_variant).enrich(sources))
    return jsonify([t.model_dump(mode="json") for t in topics])


# ── Graph ──────────────────────────────────────────────────────────────────

@app.route("/api/graph", methods=["POST"])
def refresh_graph():
    """Run a pass on the posted snapshot and return its graph."""
    sources = _snapshot()
    result = asyncio.run(pipeline.refresh(sources))
    return jsonify(
        {
            "generation": result.generation,
            "graph": result.graph.model_dump(mode="json"),
        }
    )


@app.route("/api/graph")
def latest_graph():
    """Return the most recently published graph."""
    slot = pipeline.graph
    if slot.error is not None:
        return jsonify({"error": str(slot.error)}), 502
    if slot.value is None:
        return jsonify({"error": "No graph published yet"}), 404
    return jsonify(
        {
            "generation": slot.published_generation,
            "graph": slot.value.model_dump(mode="json"),
        }
    )


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app.run(debug=settings.debug, host="0.0.0.0", port=settings.port)
