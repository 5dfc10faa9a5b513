import numpy as np
import pytest
from scipy.sparse import csr_matrix

from bow_scoring.bow_vector import BowVector, LNorm


def test_iteration_is_ascending_regardless_of_insertion_order():
    v = BowVector()
    for word_id, weight in [(9, 0.1), (2, 0.2), (5, 0.3), (0, 0.4)]:
        v[word_id] = weight

    assert list(v) == [0, 2, 5, 9]
    assert list(v.items()) == [(0, 0.4), (2, 0.2), (5, 0.3), (9, 0.1)]
    assert v.word_ids == [0, 2, 5, 9]
    assert v.weights == [0.4, 0.2, 0.3, 0.1]


def test_keys_are_unique():
    v = BowVector({3: 0.5})
    v[3] = 0.25

    assert len(v) == 1
    assert v[3] == 0.25


def test_lookup_and_delete():
    v = BowVector({1: 0.5, 4: 0.5})

    assert 4 in v
    assert 2 not in v
    assert "4" not in v
    assert v.get(2, 0.0) == 0.0
    with pytest.raises(KeyError):
        v[2]

    del v[1]
    assert list(v) == [4]
    with pytest.raises(KeyError):
        del v[1]


@pytest.mark.parametrize(
    "word_id, start, expected",
    [
        (0, 0, 0),
        (2, 0, 0),
        (3, 0, 1),
        (5, 0, 1),
        (6, 0, 2),
        (9, 0, 3),
        (3, 2, 2),
    ],
)
def test_lower_bound(word_id, start, expected):
    v = BowVector({2: 1.0, 5: 1.0, 8: 1.0})
    assert v.lower_bound(word_id, start) == expected


def test_stored_zero_is_allowed():
    v = BowVector({1: 0.0})
    assert v[1] == 0.0
    assert len(v) == 1


@pytest.mark.parametrize(
    "word_id, weight, error",
    [
        (-1, 0.5, ValueError),
        (1, -0.5, ValueError),
        (1, float("nan"), ValueError),
        (1.5, 0.5, TypeError),
        ("a", 0.5, TypeError),
        (True, 0.5, TypeError),
        (1, "0.5", TypeError),
    ],
)
def test_invalid_entries(word_id, weight, error):
    v = BowVector()
    with pytest.raises(error):
        v[word_id] = weight


def test_numpy_scalars_are_accepted():
    v = BowVector({np.int64(3): np.float32(0.5)})
    assert v.word_ids == [3]
    assert isinstance(v.word_ids[0], int)
    assert isinstance(v.weights[0], float)


def test_add_weight_accumulates():
    v = BowVector()
    v.add_weight(4, 0.25)
    v.add_weight(4, 0.5)
    v.add_weight(1, 1.0)

    assert list(v.items()) == [(1, 1.0), (4, 0.75)]


def test_add_if_not_exist_keeps_existing():
    v = BowVector({4: 0.25})
    v.add_if_not_exist(4, 0.9)
    v.add_if_not_exist(2, 0.9)

    assert list(v.items()) == [(2, 0.9), (4, 0.25)]


def test_normalize_l1():
    v = BowVector({1: 1.0, 2: 3.0})
    v.normalize(LNorm.L1)

    assert v.weights == pytest.approx([0.25, 0.75])
    assert v.total_weight() == pytest.approx(1.0)


def test_normalize_l2():
    v = BowVector({1: 3.0, 2: 4.0})
    v.normalize("l2")

    assert v.weights == pytest.approx([0.6, 0.8])


def test_normalize_zero_vector_is_noop():
    v = BowVector({1: 0.0, 2: 0.0})
    v.normalize()
    assert v.weights == [0.0, 0.0]

    empty = BowVector()
    empty.normalize(LNorm.L2)
    assert len(empty) == 0


def test_equality():
    assert BowVector({1: 0.5, 2: 0.5}) == BowVector([(2, 0.5), (1, 0.5)])
    assert BowVector({1: 0.5}) == {1: 0.5}
    assert BowVector({1: 0.5}) != BowVector({1: 0.25})


def test_str():
    v = BowVector({3: 0.5, 1: 0.25})
    assert str(v) == "<1, 0.25>, <3, 0.5>"


def test_sparse_roundtrip():
    row = csr_matrix(np.array([[0.0, 0.5, 0.0, 0.25, 0.0]]))
    v = BowVector.from_sparse(row)

    assert list(v.items()) == [(1, 0.5), (3, 0.25)]

    back = v.to_sparse(5)
    assert back.shape == (1, 5)
    assert np.array_equal(back.toarray(), row.toarray())


def test_to_sparse_defaults_to_largest_word():
    v = BowVector({7: 1.0})
    assert v.to_sparse().shape == (1, 8)


def test_sparse_errors():
    with pytest.raises(ValueError):
        BowVector.from_sparse(csr_matrix(np.ones((2, 3))))
    with pytest.raises(ValueError):
        BowVector({10: 1.0}).to_sparse(5)


def test_items_is_a_reusable_view():
    v = BowVector({3: 0.25, 1: 0.5})
    items = v.items()

    assert list(items) == [(1, 0.5), (3, 0.25)]
    assert list(items) == [(1, 0.5), (3, 0.25)]
    assert len(items) == 2
    assert (3, 0.25) in items
    assert (3, 0.5) not in items
    assert v.items() == v.items()
    assert v.items() == {1: 0.5, 3: 0.25}.items()

    v[2] = 0.125
    assert list(items) == [(1, 0.5), (2, 0.125), (3, 0.25)]


def test_equality_compares_stored_entries():
    assert BowVector({1: 0.5, 2: 0.0}) != BowVector({1: 0.5})
