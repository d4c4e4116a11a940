"""Cosine-similarity ranking of a query vector against a pool of stored entity vectors."""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger("match.engine")


@dataclass
class PoolMember:
    """One rankable entity. `vector` is None when the entity has no embedding yet."""
    entity_id: Any
    vector: Optional[Sequence[float]]
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MatchHit:
    entity_id: Any
    score: float
    payload: Dict[str, Any] = field(default_factory=dict)


def cosine_similarity(vec1: np.ndarray | list, vec2: np.ndarray | list) -> float:
    """
    Cosine similarity of two vectors, clamped to [-1, 1].
    A zero vector has similarity 0.0 with everything.
    """
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)

    norm_v1 = np.linalg.norm(v1)
    norm_v2 = np.linalg.norm(v2)
    if norm_v1 == 0 or norm_v2 == 0:
        return 0.0

    similarity = np.dot(v1, v2) / (norm_v1 * norm_v2)
    # Clamp floating point overshoot
    return float(max(-1.0, min(1.0, similarity)))


def rank(
    query_vector: Sequence[float],
    pool: Sequence[PoolMember],
    *,
    threshold: float,
    limit: int,
) -> List[MatchHit]:
    """
    Score every pool member with a vector, keep score >= threshold, sort by score
    descending with ties in pool order, drop repeated ids, cut to `limit`.

    Pool order is the tie-break key, so callers pass members in creation order.
    Members without a vector, or with a vector of a different dimension, are left out.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    query = np.asarray(query_vector, dtype=np.float64)
    if query.ndim != 1 or query.size == 0:
        raise ValueError("query vector must be a non-empty 1-D sequence")

    scored: List[MatchHit] = []
    skipped = 0
    for member in pool:
        if member.vector is None:
            skipped += 1
            continue
        vec = np.asarray(member.vector, dtype=np.float64)
        if vec.shape != query.shape:
            skipped += 1
            continue
        score = cosine_similarity(query, vec)
        if score >= threshold:
            scored.append(MatchHit(entity_id=member.entity_id, score=score, payload=member.payload))

    # list.sort is stable: equal scores keep pool order
    scored.sort(key=lambda h: h.score, reverse=True)

    hits: List[MatchHit] = []
    seen = set()
    for hit in scored:
        key = str(hit.entity_id)
        if key in seen:
            continue
        seen.add(key)
        hits.append(hit)
        if len(hits) >= limit:
            break

    logger.debug(
        "Ranked pool of %d (%d without usable vector): %d hits at threshold %.2f, limit %d",
        len(pool), skipped, len(hits), threshold, limit,
    )
    return hits
