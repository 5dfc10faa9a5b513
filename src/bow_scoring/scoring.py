"""
Similarity and distance scores between two bag-of-words vectors.

Every scorer co-iterates the ascending entries of both vectors (a merge-join)
and only differs in what a matched word contributes, how the cursors move past
words present in a single vector, and how the accumulated sum is scaled:

=============================================================================
  Scorer          Matched term               Skip step      Result
=============================================================================
  L1              |v-w| - |v| - |w|          one entry      -sum/2, [0, 1]
  L2              |v-w| - |v| - |w|          lookup in b    -sum/2, [0, 1]
  Chi-Square      v*w / (v+w)                lower bound    2*sum,  [0, 1]
  KL              v * ln(v/w)                mixed          sum, unbounded
  Bhattacharyya   sqrt(v*w)                  lower bound    sum,    [0, 1]
  Dot product     v*w                        lower bound    sum, unbounded
=============================================================================

Usage:
    from bow_scoring.scoring import ScoringType, make_scoring

    scoring = make_scoring(ScoringType.BHATTACHARYYA)
    scoring.score(query_vector, candidate_vector)
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from bow_scoring.bow_vector import LNorm

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from bow_scoring.bow_vector import BowVector

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

# ln(0) is replaced by ln(eps) of the weight type (float64) in the KL score
LOG_EPS = math.log(np.finfo(np.float64).eps)

# Default number of workers for the L2 reduction, 1 keeps it on the calling thread
DEFAULT_NUM_WORKERS = 1

# Minimum entries in the first vector before the L2 reduction goes parallel
MIN_ENTRIES_FOR_PARALLEL = 4096


class ScoringType(str, Enum):
    L1_NORM = "l1"
    L2_NORM = "l2"
    CHI_SQUARE = "chi_square"
    KL = "kl"
    BHATTACHARYYA = "bhattacharyya"
    DOT_PRODUCT = "dot_product"


# =============================================================================
# Base class
# =============================================================================


class GeneralScoring:
    """
    Base class of the scorers.

    Scorers are stateless: ``score`` only reads its two vectors, so one
    instance can be shared between threads.

    Attributes:
        scoring_type (ScoringType): Tag of the implemented measure.
        must_normalize (bool): Whether callers are expected to normalize vectors first.
        norm_type (LNorm | None): Norm to apply when ``must_normalize`` is set.
    """

    scoring_type: ScoringType
    must_normalize: bool = True
    norm_type: LNorm | None = LNorm.L1

    def score(self, v1: BowVector, v2: BowVector) -> float:
        raise NotImplementedError

    def __call__(self, v1: BowVector, v2: BowVector) -> float:
        return self.score(v1, v2)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# =============================================================================
# Scorers
# =============================================================================


class L1Scoring(GeneralScoring):
    """L1 similarity; single-step cursors."""

    scoring_type = ScoringType.L1_NORM

    def score(self, v1: BowVector, v2: BowVector) -> float:
        ids1, values1 = v1.word_ids, v1.weights
        ids2, values2 = v2.word_ids, v2.weights
        i, j = 0, 0
        n1, n2 = len(ids1), len(ids2)
        score = 0.0

        while i < n1 and j < n2:
            if ids1[i] == ids2[j]:
                vi = values1[i]
                wi = values2[j]
                score += abs(vi - wi) - abs(vi) - abs(wi)
                i += 1
                j += 1
            elif ids1[i] < ids2[j]:
                i += 1
            else:
                j += 1

        # words in a single vector cancel out: |v - 0| - |v| - 0 = 0
        return -score / 2.0


def _l1_partial_sum(
    ids: NDArray[np.int64],
    values: NDArray[np.float64],
    other_ids: NDArray[np.int64],
    other_values: NDArray[np.float64],
) -> float:
    """Sum of the L1 terms of ``ids`` (ascending) matched in ``other_ids``."""
    if len(ids) == 0 or len(other_ids) == 0:
        return 0.0
    pos = np.searchsorted(other_ids, ids)
    in_range = pos < len(other_ids)
    matched = np.zeros(len(ids), dtype=bool)
    matched[in_range] = other_ids[pos[in_range]] == ids[in_range]

    vi = values[matched]
    wi = other_values[pos[matched]]
    # pure zero-valued pairs give 0 and need no special case
    return float(np.sum(np.abs(vi - wi) - np.abs(vi) - np.abs(wi)))


class L2Scoring(GeneralScoring):
    """
    L2 similarity as reduced over independent per-word terms.

    The matched term is the same as :class:`L1Scoring` so both produce the
    same value (up to summation order). Entries of ``v1`` are looked up in
    ``v2`` with a vectorized binary search, so large vectors can be split in
    chunks and reduced on a thread pool (numpy releases the GIL).

    Args:
        num_workers: Threads used for the reduction (1 disables threading).
        min_entries_for_parallel: Size of ``v1`` from which threads are used.
    """

    scoring_type = ScoringType.L2_NORM
    norm_type = LNorm.L2

    def __init__(
        self,
        num_workers: int = DEFAULT_NUM_WORKERS,
        min_entries_for_parallel: int = MIN_ENTRIES_FOR_PARALLEL,
    ):
        self.num_workers = num_workers
        self.min_entries_for_parallel = min_entries_for_parallel

    def __repr__(self) -> str:
        return (
            f"L2Scoring(num_workers={self.num_workers}, "
            f"min_entries_for_parallel={self.min_entries_for_parallel})"
        )

    def score(self, v1: BowVector, v2: BowVector) -> float:
        n = len(v1)
        if n == 0 or len(v2) == 0:
            return 0.0

        ids = np.asarray(v1.word_ids, dtype=np.int64)
        values = np.asarray(v1.weights, dtype=np.float64)
        other_ids = np.asarray(v2.word_ids, dtype=np.int64)
        other_values = np.asarray(v2.weights, dtype=np.float64)

        if self.num_workers <= 1 or n < self.min_entries_for_parallel:
            return -_l1_partial_sum(ids, values, other_ids, other_values) / 2.0

        chunk_size = math.ceil(n / self.num_workers)
        bounds = [(start, min(start + chunk_size, n)) for start in range(0, n, chunk_size)]
        logger.debug("L2 reduction over %d entries in %d chunks", n, len(bounds))

        def partial(bound: tuple[int, int]) -> float:
            start, stop = bound
            return _l1_partial_sum(ids[start:stop], values[start:stop], other_ids, other_values)

        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            partial_sums = list(executor.map(partial, bounds))

        return -math.fsum(partial_sums) / 2.0


class ChiSquareScoring(GeneralScoring):
    """Chi-square kernel; lower-bound skips."""

    scoring_type = ScoringType.CHI_SQUARE

    def score(self, v1: BowVector, v2: BowVector) -> float:
        ids1, values1 = v1.word_ids, v1.weights
        ids2, values2 = v2.word_ids, v2.weights
        i, j = 0, 0
        n1, n2 = len(ids1), len(ids2)
        score = 0.0

        while i < n1 and j < n2:
            if ids1[i] == ids2[j]:
                vi = values1[i]
                wi = values2[j]
                # (v-w)^2/(v+w) - v - w = -4 vw/(v+w), the -4 is applied below
                if vi + wi != 0.0:
                    score += vi * wi / (vi + wi)
                i += 1
                j += 1
            elif ids1[i] < ids2[j]:
                i = v1.lower_bound(ids2[j], i)
            else:
                j = v2.lower_bound(ids1[i], j)

        return 2.0 * score


class KLScoring(GeneralScoring):
    """
    Kullback-Leibler divergence of ``v1`` from ``v2``.

    Not symmetric. A non-zero weight of ``v1`` with no counterpart in ``v2``
    is scored as ``v * (ln(v) - LOG_EPS)``, i.e. against a weight of eps.
    The result cannot be scaled to a fixed range.
    """

    scoring_type = ScoringType.KL

    def score(self, v1: BowVector, v2: BowVector) -> float:
        ids1, values1 = v1.word_ids, v1.weights
        ids2, values2 = v2.word_ids, v2.weights
        i, j = 0, 0
        n1, n2 = len(ids1), len(ids2)
        score = 0.0

        while i < n1 and j < n2:
            vi = values1[i]
            if ids1[i] == ids2[j]:
                wi = values2[j]
                if vi != 0 and wi != 0:
                    score += vi * math.log(vi / wi)
                elif vi != 0:
                    # a stored zero in v2 counts as a missing word
                    score += vi * (math.log(vi) - LOG_EPS)
                i += 1
                j += 1
            elif ids1[i] < ids2[j]:
                if vi != 0:
                    score += vi * (math.log(vi) - LOG_EPS)
                i += 1
            else:
                # words only in v2 add nothing
                j = v2.lower_bound(ids1[i], j)

        for vi in values1[i:]:
            if vi != 0:
                score += vi * (math.log(vi) - LOG_EPS)

        return score


class BhattacharyyaScoring(GeneralScoring):
    """Bhattacharyya coefficient; lower-bound skips."""

    scoring_type = ScoringType.BHATTACHARYYA

    def score(self, v1: BowVector, v2: BowVector) -> float:
        ids1, values1 = v1.word_ids, v1.weights
        ids2, values2 = v2.word_ids, v2.weights
        i, j = 0, 0
        n1, n2 = len(ids1), len(ids2)
        score = 0.0

        while i < n1 and j < n2:
            if ids1[i] == ids2[j]:
                score += math.sqrt(values1[i] * values2[j])
                i += 1
                j += 1
            elif ids1[i] < ids2[j]:
                i = v1.lower_bound(ids2[j], i)
            else:
                j = v2.lower_bound(ids1[i], j)

        return score


class DotProductScoring(GeneralScoring):
    """Plain dot product; lower-bound skips. Unbounded."""

    scoring_type = ScoringType.DOT_PRODUCT
    must_normalize = False
    norm_type = None

    def score(self, v1: BowVector, v2: BowVector) -> float:
        ids1, values1 = v1.word_ids, v1.weights
        ids2, values2 = v2.word_ids, v2.weights
        i, j = 0, 0
        n1, n2 = len(ids1), len(ids2)
        score = 0.0

        while i < n1 and j < n2:
            if ids1[i] == ids2[j]:
                score += values1[i] * values2[j]
                i += 1
                j += 1
            elif ids1[i] < ids2[j]:
                i = v1.lower_bound(ids2[j], i)
            else:
                j = v2.lower_bound(ids1[i], j)

        return score


# =============================================================================
# Factory
# =============================================================================

SCORING_CLASSES: dict[ScoringType, type[GeneralScoring]] = {
    ScoringType.L1_NORM: L1Scoring,
    ScoringType.L2_NORM: L2Scoring,
    ScoringType.CHI_SQUARE: ChiSquareScoring,
    ScoringType.KL: KLScoring,
    ScoringType.BHATTACHARYYA: BhattacharyyaScoring,
    ScoringType.DOT_PRODUCT: DotProductScoring,
}


def make_scoring(kind: ScoringType | str, **options) -> GeneralScoring:
    """
    Build the scorer for ``kind``.

    Args:
        kind: A ScoringType or its value (e.g. "l1", "chi_square"), case-insensitive.
        **options: Constructor arguments; only L2Scoring accepts any
            (``num_workers``, ``min_entries_for_parallel``).

    Returns:
        A scorer instance.
    """
    try:
        scoring_type = ScoringType(kind.lower() if isinstance(kind, str) else kind)
    except ValueError:
        valid = ", ".join(t.value for t in ScoringType)
        raise ValueError(f"Unknown scoring type {kind!r}, expected one of: {valid}.") from None

    cls = SCORING_CLASSES[scoring_type]
    if options and cls is not L2Scoring:
        raise ValueError(f"{cls.__name__} takes no options, got {sorted(options)}.")

    scoring = cls(**options)
    logger.debug("Created %r", scoring)
    return scoring


__all__ = [
    "LOG_EPS",
    "DEFAULT_NUM_WORKERS",
    "MIN_ENTRIES_FOR_PARALLEL",
    "ScoringType",
    "GeneralScoring",
    "L1Scoring",
    "L2Scoring",
    "ChiSquareScoring",
    "KLScoring",
    "BhattacharyyaScoring",
    "DotProductScoring",
    "SCORING_CLASSES",
    "make_scoring",
]
