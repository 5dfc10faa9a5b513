"""Scorer configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from bow_scoring.scoring import (
    DEFAULT_NUM_WORKERS,
    MIN_ENTRIES_FOR_PARALLEL,
    GeneralScoring,
    ScoringType,
    make_scoring,
)

DEFAULT_SCORING_TYPE = ScoringType.L1_NORM


@dataclass
class ScoringConfig:
    """
    Which scorer to use and how to run it.

    Args:
        scoring_type: Measure to compute (ScoringType or its value).
        num_workers: Threads for the parallel L2 reduction.
        min_entries_for_parallel: First-vector size from which L2 goes parallel.
    """

    scoring_type: ScoringType | str = DEFAULT_SCORING_TYPE
    num_workers: int = DEFAULT_NUM_WORKERS
    min_entries_for_parallel: int = MIN_ENTRIES_FOR_PARALLEL

    def __post_init__(self) -> None:
        kind = self.scoring_type
        try:
            self.scoring_type = ScoringType(kind.lower() if isinstance(kind, str) else kind)
        except ValueError:
            raise ValueError(f"Unknown scoring type {kind!r}.") from None
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}.")
        if self.min_entries_for_parallel < 1:
            raise ValueError(
                f"min_entries_for_parallel must be >= 1, got {self.min_entries_for_parallel}."
            )

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> ScoringConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}.")
        return cls(**values)

    def create_scoring(self) -> GeneralScoring:
        if self.scoring_type is ScoringType.L2_NORM:
            return make_scoring(
                self.scoring_type,
                num_workers=self.num_workers,
                min_entries_for_parallel=self.min_entries_for_parallel,
            )
        return make_scoring(self.scoring_type)
