import random

import pytest

from cdclsat.heuristics import RandomSource, VarOrderHeap, luby


def test_luby_sequence_base_two():
    expected = [1, 1, 2, 1, 1, 2, 4, 1, 1, 2, 1, 1, 2, 4, 8]
    assert [luby(2, i) for i in range(15)] == expected


def test_luby_base_one_is_constant():
    assert all(luby(1, i) == 1 for i in range(50))


def test_luby_negative_index_rejected():
    with pytest.raises(ValueError):
        luby(2, -1)


def test_random_source_zero_seed_rejected():
    with pytest.raises(ValueError):
        RandomSource(0)


def test_drand_in_unit_interval():
    rng = RandomSource(12345)
    values = [rng.drand() for _ in range(1000)]
    assert all(0 <= v < 1 for v in values)
    assert len(set(values)) > 900


def test_drand_deterministic():
    a, b = RandomSource(42), RandomSource(42)
    assert [a.drand() for _ in range(20)] == [b.drand() for _ in range(20)]


def test_drand_returns_seed_fraction():
    rng = RandomSource(7)
    value = rng.drand()
    assert value == rng.seed / 2147483647


def test_irand_in_range():
    rng = RandomSource(99)
    values = [rng.irand(5) for _ in range(500)]
    assert set(values) <= set(range(5))
    assert len(set(values)) == 5


def test_heap_orders_by_activity():
    activity = [0.5, 3.0, 1.0, 2.0]
    heap = VarOrderHeap(activity)
    for v in range(4):
        heap.insert(v)
    assert len(heap) == 4
    assert heap[0] == 1
    assert [heap.remove_min() for _ in range(4)] == [1, 3, 2, 0]
    assert len(heap) == 0


def test_heap_contains():
    heap = VarOrderHeap([1.0, 2.0, 3.0])
    heap.insert(2)
    assert 2 in heap
    assert 0 not in heap
    assert 17 not in heap
    heap.remove_min()
    assert 2 not in heap


def test_heap_insert_twice_rejected():
    heap = VarOrderHeap([1.0])
    heap.insert(0)
    with pytest.raises(ValueError):
        heap.insert(0)


def test_remove_min_empty_raises():
    with pytest.raises(IndexError):
        VarOrderHeap([]).remove_min()


def test_decrease_after_bump():
    activity = [0.0, 1.0, 2.0]
    heap = VarOrderHeap(activity)
    for v in range(3):
        heap.insert(v)
    activity[0] = 10.0
    heap.decrease(0)
    assert heap.remove_min() == 0
    assert heap.remove_min() == 2


def test_decrease_missing_raises():
    heap = VarOrderHeap([0.0, 1.0])
    heap.insert(1)
    with pytest.raises(KeyError):
        heap.decrease(0)


def test_build_replaces_contents():
    activity = [4.0, 1.0, 3.0, 2.0, 5.0]
    heap = VarOrderHeap(activity)
    heap.insert(4)
    heap.build([0, 1, 2, 3])
    assert 4 not in heap
    assert [heap.remove_min() for _ in range(4)] == [0, 2, 3, 1]


def test_build_duplicate_rejected():
    heap = VarOrderHeap([1.0, 2.0])
    with pytest.raises(ValueError):
        heap.build([0, 0])


def test_grow_negative_rejected():
    with pytest.raises(ValueError):
        VarOrderHeap([]).grow(-1)


def test_random_heap_pops_non_increasing():
    rnd = random.Random(3)
    activity = [rnd.random() for _ in range(200)]
    heap = VarOrderHeap(activity)
    for v in rnd.sample(range(200), 200):
        heap.insert(v)
    for _ in range(50):
        v = rnd.randrange(200)
        activity[v] += rnd.random()
        heap.decrease(v)
    popped = [heap.remove_min() for _ in range(200)]
    assert sorted(popped) == list(range(200))
    values = [activity[v] for v in popped]
    assert values == sorted(values, reverse=True)