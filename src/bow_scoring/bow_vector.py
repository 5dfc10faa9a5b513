"""
Sparse bag-of-words vectors.

A BowVector maps a visual-word identifier to a non-negative weight. Keys are
kept in ascending order so that two vectors can be co-iterated with a
merge-join, which is what every scorer in ``bow_scoring.scoring`` relies on.

Usage:
    from bow_scoring.bow_vector import BowVector

    v = BowVector({3: 0.25, 1: 0.75})
    list(v.items())  # [(1, 0.75), (3, 0.25)]
"""

from __future__ import annotations

import math
from bisect import bisect_left
from collections.abc import ItemsView, Iterable, Iterator, Mapping, MutableMapping
from enum import Enum
from numbers import Integral, Real
from typing import TYPE_CHECKING

import numpy as np
from scipy.sparse import csr_matrix

if TYPE_CHECKING:
    from scipy.sparse import spmatrix


class LNorm(str, Enum):
    """Norms a caller may apply to a vector before scoring."""

    L1 = "l1"
    L2 = "l2"


def _check_word_id(word_id) -> int:
    if isinstance(word_id, bool) or not isinstance(word_id, Integral):
        raise TypeError(f"Word id must be an integer, got {type(word_id).__name__}.")
    if word_id < 0:
        raise ValueError(f"Word id must be non-negative, got {word_id}.")
    return int(word_id)


def _check_weight(weight) -> float:
    if not isinstance(weight, Real):
        raise TypeError(f"Weight must be a real number, got {type(weight).__name__}.")
    if weight < 0 or math.isnan(weight):
        raise ValueError(f"Weight must be non-negative, got {weight}.")
    return float(weight)


class BowItemsView(ItemsView):
    """Items view iterating the aligned id/weight lists directly."""

    def __iter__(self) -> Iterator[tuple[int, float]]:
        return zip(self._mapping._ids, self._mapping._values)


class BowVector(MutableMapping):
    """
    Sparse bag-of-words vector ordered by word id.

    Entries are stored as two aligned lists (ascending word ids and their
    weights). Absent word ids have an implicit weight of 0; a stored 0 is
    allowed and is treated like an absent entry by every scorer.

    Args:
        entries: Optional mapping or iterable of (word_id, weight) pairs, in any order.

    Attributes:
        word_ids (list[int]): Ascending word ids. Do not mutate.
        weights (list[float]): Weights aligned with ``word_ids``. Do not mutate.

    Equality compares stored entries, so a stored zero makes two vectors
    unequal even though no scorer can tell them apart.
    """

    def __init__(self, entries: Mapping[int, float] | Iterable[tuple[int, float]] | None = None):
        self._ids: list[int] = []
        self._values: list[float] = []
        if entries is not None:
            self.update(entries)

    # ----- Mapping protocol -----

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    def _find(self, word_id) -> int:
        """Position of ``word_id``, or -1 if absent."""
        if isinstance(word_id, bool) or not isinstance(word_id, Integral):
            return -1
        pos = bisect_left(self._ids, word_id)
        if pos < len(self._ids) and self._ids[pos] == word_id:
            return pos
        return -1

    def __contains__(self, word_id) -> bool:
        return self._find(word_id) >= 0

    def __getitem__(self, word_id: int) -> float:
        pos = self._find(word_id)
        if pos < 0:
            raise KeyError(word_id)
        return self._values[pos]

    def __setitem__(self, word_id: int, weight: float) -> None:
        word_id = _check_word_id(word_id)
        weight = _check_weight(weight)
        pos = bisect_left(self._ids, word_id)
        if pos < len(self._ids) and self._ids[pos] == word_id:
            self._values[pos] = weight
        else:
            self._ids.insert(pos, word_id)
            self._values.insert(pos, weight)

    def __delitem__(self, word_id: int) -> None:
        pos = self._find(word_id)
        if pos < 0:
            raise KeyError(word_id)
        del self._ids[pos]
        del self._values[pos]

    def __eq__(self, other) -> bool:
        if isinstance(other, BowVector):
            return self._ids == other._ids and self._values == other._values
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other.items())
        return NotImplemented

    def __repr__(self) -> str:
        return f"BowVector({dict(zip(self._ids, self._values))!r})"

    def __str__(self) -> str:
        return ", ".join(f"<{word_id}, {weight}>" for word_id, weight in zip(self._ids, self._values))

    def items(self) -> BowItemsView:
        """(word_id, weight) pairs in ascending word id order."""
        return BowItemsView(self)

    # ----- Cursor view -----

    @property
    def word_ids(self) -> list[int]:
        return self._ids

    @property
    def weights(self) -> list[float]:
        return self._values

    def lower_bound(self, word_id: int, start: int = 0) -> int:
        """
        Position of the first entry whose word id is >= ``word_id``.

        Args:
            word_id: Key to search for.
            start: Position to start searching from (entries before it are ignored).

        Returns:
            Index into ``word_ids``; ``len(self)`` when every key is smaller.
        """
        return bisect_left(self._ids, word_id, start)

    # ----- Building helpers -----

    def add_weight(self, word_id: int, weight: float) -> None:
        """Add ``weight`` to the entry of ``word_id``, creating it if needed."""
        word_id = _check_word_id(word_id)
        weight = _check_weight(weight)
        pos = bisect_left(self._ids, word_id)
        if pos < len(self._ids) and self._ids[pos] == word_id:
            self._values[pos] += weight
        else:
            self._ids.insert(pos, word_id)
            self._values.insert(pos, weight)

    def add_if_not_exist(self, word_id: int, weight: float) -> None:
        """Insert ``weight`` for ``word_id`` only if the word is not present yet."""
        if word_id not in self:
            self[word_id] = weight

    def total_weight(self) -> float:
        return math.fsum(self._values)

    def normalize(self, norm: LNorm | str = LNorm.L1) -> None:
        """
        Scale the weights in place so that their L1 or L2 norm is 1.

        Vectors whose norm is 0 are left unchanged.
        """
        norm = LNorm(norm)
        values = np.asarray(self._values, dtype=np.float64)
        if norm is LNorm.L1:
            total = float(np.sum(np.abs(values)))
        else:
            total = float(np.sqrt(np.sum(values * values)))
        if total > 0:
            self._values = (values / total).tolist()

    # ----- scipy.sparse interop -----

    @classmethod
    def from_sparse(cls, row: spmatrix) -> BowVector:
        """Build a vector from a 1 x N sparse row, column index = word id."""
        row = csr_matrix(row, copy=True)
        if row.shape[0] != 1:
            raise ValueError(f"Expected a single row, got shape {row.shape}.")
        row.sum_duplicates()
        row.sort_indices()
        vector = cls()
        for word_id, weight in zip(row.indices.tolist(), row.data.tolist()):
            vector[word_id] = weight
        return vector

    def to_sparse(self, vocabulary_size: int | None = None) -> csr_matrix:
        """
        Convert to a 1 x ``vocabulary_size`` CSR row.

        Args:
            vocabulary_size: Number of columns; defaults to the largest word id + 1.
        """
        if vocabulary_size is None:
            vocabulary_size = self._ids[-1] + 1 if self._ids else 0
        elif self._ids and self._ids[-1] >= vocabulary_size:
            raise ValueError(
                f"Word id {self._ids[-1]} does not fit in a vocabulary of size {vocabulary_size}."
            )
        data = np.asarray(self._values, dtype=np.float64)
        indices = np.asarray(self._ids, dtype=np.int64)
        indptr = np.array([0, len(self._ids)], dtype=np.int64)
        return csr_matrix((data, indices, indptr), shape=(1, vocabulary_size))
