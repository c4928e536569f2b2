import numpy as np
import pytest

from boids.sorting import BLOCK_SIZE, CountingSort


@pytest.mark.parametrize("num_items", [1, 7, 1000, 5000])
def test_partition_completeness(num_items, rng):
    """Every item lands exactly once and keys come out grouped in order."""
    num_keys = 300
    keys = rng.integers(0, num_keys, num_items).astype(np.int32)
    sorter = CountingSort(num_items, num_keys)

    order = sorter.sort(keys.copy())

    assert sorter.counts.sum() == num_items
    assert np.array_equal(np.sort(order), np.arange(num_items))
    assert np.all(np.diff(keys[order]) >= 0)


def test_prefix_sum_matches_counts(rng):
    """Exclusive offsets across many blocks, including a ragged last block."""
    num_keys = BLOCK_SIZE * 37 + 5
    num_items = 20000
    keys = rng.integers(0, num_keys, num_items).astype(np.int32)
    sorter = CountingSort(num_items, num_keys)

    sorter.sort(keys.copy())

    expected = np.bincount(keys, minlength=num_keys)
    assert np.array_equal(sorter.counts, expected)
    assert sorter.offsets[0] == 0
    assert sorter.offsets[-1] == num_items
    assert np.array_equal(np.diff(sorter.offsets), expected)


def test_prefix_sum_standalone():
    sorter = CountingSort(10, 600, block_size=4)
    counts = np.arange(600, dtype=np.int32) % 3
    offsets = np.zeros(601, dtype=np.int32)

    sorter.prefix_sum(counts, offsets)

    assert np.array_equal(offsets[1:], np.cumsum(counts))


@pytest.mark.parametrize("num_chunks", [1, 3, 8])
def test_parallel_matches_sequential(num_chunks, rng):
    """The staged parallel sort and the single pass produce the same permutation."""
    num_items, num_keys = 4000, 517
    keys = rng.integers(0, num_keys, num_items).astype(np.int32)

    par = CountingSort(num_items, num_keys, block_size=16, num_chunks=num_chunks)
    seq = CountingSort(num_items, num_keys, block_size=16, num_chunks=num_chunks)
    par_order = par.sort(keys.copy(), parallel=True).copy()
    seq_order = seq.sort(keys.copy(), parallel=False).copy()

    assert np.array_equal(par_order, seq_order)
    assert np.array_equal(par.offsets, seq.offsets)


@pytest.mark.parametrize("parallel", [True, False])
def test_rank_direction_within_key(parallel):
    """Items sharing a key are written from the key's end backwards by index."""
    num_items = 50
    keys = np.ones(num_items, dtype=np.int32)
    keys[::5] = 2
    sorter = CountingSort(num_items, 3, num_chunks=4)

    sorter.sort(keys.copy(), parallel=parallel)

    start, end = sorter.key_range(1)
    members = sorter.sorted_indices[start:end]
    expected = np.flatnonzero(keys == 1)[::-1]
    assert np.array_equal(members, expected)


def test_out_of_range_keys_are_clamped():
    keys = np.array([-5, 0, 3, 99], dtype=np.int32)
    sorter = CountingSort(4, 4)

    sorter.sort(keys)

    assert keys.tolist() == [0, 0, 3, 3]
    assert sorter.counts.tolist() == [2, 0, 0, 2]


@pytest.mark.parametrize("parallel", [True, False])
def test_live_key_range(parallel, rng):
    """Sorting over a prefix of the key space only touches that prefix."""
    keys = rng.integers(0, 10, 200).astype(np.int32)
    sorter = CountingSort(200, 1000)

    sorter.sort(keys.copy(), parallel=parallel, num_keys=10)

    assert sorter.offsets[10] == 200
    assert np.array_equal(sorter.count(keys.copy(), parallel, num_keys=10),
                          np.bincount(keys, minlength=10))
