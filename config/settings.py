"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ValueError on an unknown variant or policy
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from topicgraph.enricher import EnrichmentVariant
from topicgraph.graph import LinkPolicy


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ``.
    """

    # ── Enrichment / graph ──────────────────────────────────────────────────
    #: ``full`` joins 8 sources, ``basic`` omits locations, related topics, events.
    variant: str = field(
        default_factory=lambda: os.environ.get("TOPICGRAPH_VARIANT", "full").lower()
    )
    #: ``keep_all`` keeps id- and name-derived links between the same pair.
    link_policy: str = field(
        default_factory=lambda: os.environ.get("TOPICGRAPH_LINK_POLICY", "keep_all").lower()
    )

    # ── Logging ─────────────────────────────────────────────────────────────
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "5000"))
    )

    @property
    def enrichment_variant(self) -> EnrichmentVariant:
        return EnrichmentVariant(self.variant)

    @property
    def graph_link_policy(self) -> LinkPolicy:
        return LinkPolicy(self.link_policy)

    def validate(self) -> None:
        """Raise ``ValueError`` if any setting has an unsupported value."""
        valid_variants = [v.value for v in EnrichmentVariant]
        if self.variant not in valid_variants:
            raise ValueError(
                f"TOPICGRAPH_VARIANT must be one of {valid_variants}, got {self.variant!r}."
            )
        valid_policies = [p.value for p in LinkPolicy]
        if self.link_policy not in valid_policies:
            raise ValueError(
                f"TOPICGRAPH_LINK_POLICY must be one of {valid_policies}, "
                f"got {self.link_policy!r}."
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"LOG_LEVEL {self.log_level!r} is not a logging level.")
