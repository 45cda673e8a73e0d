"""
Cosine similarity helpers used by the stores and the prototype classifiers.
"""

from typing import Sequence

import numpy as np


def cosine_similarity(a, b) -> float:
    """Cosine of the angle between two vectors; 0.0 for zero or mismatched vectors."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return 0.0

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0

    # Rounding can push |cos| a hair past 1
    return float(np.clip(np.dot(a, b) / denominator, -1.0, 1.0))


def mean_similarity(query, prototypes: Sequence) -> float:
    """Average cosine similarity between a query vector and a set of prototype vectors."""
    if len(prototypes) == 0:
        return 0.0
    return sum(cosine_similarity(query, p) for p in prototypes) / len(prototypes)


def row_norms(matrix: np.ndarray) -> np.ndarray:
    """L2 norm of every row of a 2-D matrix."""
    if matrix.size == 0:
        return np.zeros(matrix.shape[0], dtype=np.float32)
    return np.linalg.norm(matrix, axis=1).astype(np.float32)
