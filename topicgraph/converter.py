"""Conversion of raw resource aggregations into ``ResourceAggregation`` metadata."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Union

from topicgraph.models import (
    AggregationBucket,
    AggregationResult,
    DatePublished,
    Mention,
    ResourceAggregation,
    TopAuthor,
)

#: Aggregation names used by the resource index queries.
TOP_AUTHORS = "topAuthors"
DATE_PUBLISHED = "datePublished"
MENTIONS = "mentions"

_LEADING_YEAR = re.compile(r"^(\d{4})(?!\d)")


def bucket_year(bucket: AggregationBucket) -> int:
    """Return the calendar year of a date-histogram bucket.

    Numeric keys are epoch milliseconds (UTC). For string keys,
    ``key_as_string`` takes precedence over ``key``; it is read as an ISO
    date, falling back to a leading four-digit year (``"2020"``,
    ``"2020/06"``).

    Raises:
        ValueError: If no year can be read from a string key.
    """
    key: Union[int, float, str] = bucket.key
    if isinstance(key, (int, float)):
        return datetime.fromtimestamp(key / 1000, tz=timezone.utc).year
    text = bucket.key_as_string or key
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).year
    except ValueError:
        match = _LEADING_YEAR.match(text)
        if match is None:
            raise ValueError(f"Cannot read a year from date bucket key {text!r}") from None
        return int(match.group(1))


def convert_aggregation(aggs: AggregationResult) -> ResourceAggregation:
    """Transform a resource aggregation result into topic metadata.

    Date buckets are converted one-to-one: two buckets falling in the same
    year yield two ``DatePublished`` entries, they are not summed.
    """
    buckets = aggs.aggregations
    return ResourceAggregation(
        doc_count=aggs.total_hits,
        top_authors=[
            TopAuthor(key=str(b.key), doc_count=b.doc_count)
            for b in buckets.get(TOP_AUTHORS, [])
        ],
        date_published=[
            DatePublished(year=bucket_year(b), count=b.doc_count)
            for b in buckets.get(DATE_PUBLISHED, [])
        ],
        mentions=[
            Mention(name=str(b.key), doc_count=b.doc_count)
            for b in buckets.get(MENTIONS, [])
        ],
    )
