"""
Cosine similarity with a neutral score for degenerate input.

Mismatched lengths and near-zero norms score ``0.0`` instead of raising,
so a corrupt or foreign entry ranks last rather than breaking a search.
Callers are responsible for logging dimension mismatches.
"""

from __future__ import annotations

import numpy as np

# Minimum similarity for a stored vector to count as a match.
SIMILARITY_THRESHOLD = 0.1

NORM_EPSILON = 1e-10


def cosine_similarity(a, b) -> float:
    """Return the cosine of the angle between *a* and *b*, in ``[-1, 1]``."""
    if a is None or b is None:
        return 0.0
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.size == 0 or va.size != vb.size:
        return 0.0

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a < NORM_EPSILON or norm_b < NORM_EPSILON:
        return 0.0

    score = float(np.dot(va, vb) / (norm_a * norm_b))
    if not np.isfinite(score):
        return 0.0
    # Rounding can push identical vectors a hair past 1.0.
    return max(-1.0, min(1.0, score))


def cosine_similarity_batch(query, matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity between *query* (1-D) and each row of *matrix*.

    Rows with a near-zero norm score ``0.0``.  ``matrix`` must already
    have ``query``'s width.
    """
    q = np.asarray(query, dtype=np.float64).ravel()
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2 or m.shape[0] == 0:
        return np.zeros(0)

    q_norm = float(np.linalg.norm(q))
    if q_norm < NORM_EPSILON:
        return np.zeros(m.shape[0])

    row_norms = np.linalg.norm(m, axis=1)
    degenerate = row_norms < NORM_EPSILON
    row_norms[degenerate] = 1.0
    scores = (m @ q) / (row_norms * q_norm)
    scores[degenerate] = 0.0
    scores[~np.isfinite(scores)] = 0.0
    return np.clip(scores, -1.0, 1.0)
