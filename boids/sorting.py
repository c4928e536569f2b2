"""
Counting sort by integer key with a blocked parallel prefix sum.

Shared by the uniform grid (key = cell id), the quadtree (key = leaf node id)
and the level-of-detail aggregator (key = coarse cell and team).

Parallel pipeline (each stage is one prange dispatch):
1. scatter: boids are split into contiguous chunks, one per worker; each
   chunk counts into its own counter row and remembers every boid's local
   rank. A counter slot only ever has one writer.
2. combine: per key, turn the chunk rows into chunk bases and total counts.
3. block scan: inclusive prefix sum inside blocks of BLOCK_SIZE keys.
4. doubling scan: Hillis-Steele over the block totals, log2(blocks) passes
   ping-ponging two scratch buffers.
5. add bases: exclusive offset table of length num_keys + 1.
6. rearrange: boid i lands at offsets[key + 1] - 1 - rank.

The sequential variant does the same in one pass and yields the identical
permutation, since a boid's rank is always the number of lower-indexed boids
sharing its key.
"""

import numba
import numpy as np
from numba import njit, prange


BLOCK_SIZE = 256


# ============================================================================
# PARALLEL STAGES
# ============================================================================

@njit(parallel=True, cache=True)
def scatter_counts(keys: np.ndarray, num_keys: int, chunk_counts: np.ndarray,
                   local_ranks: np.ndarray, num_items: int):
    """Clamp keys in place and count them into per-chunk rows."""
    num_chunks = chunk_counts.shape[0]
    chunk_len = (num_items + num_chunks - 1) // num_chunks
    for c in prange(num_chunks):
        for k in range(num_keys):
            chunk_counts[c, k] = 0
        start = c * chunk_len
        end = min(num_items, start + chunk_len)
        for i in range(start, end):
            k = keys[i]
            if k < 0:
                k = 0
            elif k >= num_keys:
                k = num_keys - 1
            keys[i] = k
            local_ranks[i] = chunk_counts[c, k]
            chunk_counts[c, k] += 1


@njit(parallel=True, cache=True)
def combine_chunks(chunk_counts: np.ndarray, counts: np.ndarray, num_keys: int):
    """Replace chunk rows with per-chunk bases and write total counts per key."""
    num_chunks = chunk_counts.shape[0]
    for k in prange(num_keys):
        total = 0
        for c in range(num_chunks):
            cnt = chunk_counts[c, k]
            chunk_counts[c, k] = total
            total += cnt
        counts[k] = total


@njit(parallel=True, cache=True)
def block_scan(counts: np.ndarray, local_sums: np.ndarray, block_sums: np.ndarray,
               num_keys: int, block_size: int):
    """Inclusive prefix sum within each block; block totals go to block_sums."""
    num_blocks = (num_keys + block_size - 1) // block_size
    for b in prange(num_blocks):
        start = b * block_size
        end = min(num_keys, start + block_size)
        running = 0
        for k in range(start, end):
            running += counts[k]
            local_sums[k] = running
        block_sums[b] = running


@njit(parallel=True, cache=True)
def doubling_pass(src: np.ndarray, dst: np.ndarray, stride: int, num_blocks: int):
    """One Hillis-Steele step: dst[b] = src[b] + src[b - stride]."""
    for b in prange(num_blocks):
        if b >= stride:
            dst[b] = src[b] + src[b - stride]
        else:
            dst[b] = src[b]


@njit(parallel=True, cache=True)
def add_block_bases(local_sums: np.ndarray, scanned_blocks: np.ndarray, offsets: np.ndarray,
                    num_keys: int, block_size: int):
    """Combine block-local sums with scanned block totals into an exclusive table."""
    offsets[0] = 0
    for k in prange(num_keys):
        b = k // block_size
        base = 0
        if b > 0:
            base = scanned_blocks[b - 1]
        offsets[k + 1] = local_sums[k] + base


@njit(parallel=True, cache=True)
def rearrange(keys: np.ndarray, local_ranks: np.ndarray, chunk_counts: np.ndarray,
              offsets: np.ndarray, sorted_indices: np.ndarray, num_items: int):
    """Write every item index into its slot of the sorted array."""
    num_chunks = chunk_counts.shape[0]
    chunk_len = (num_items + num_chunks - 1) // num_chunks
    for i in prange(num_items):
        c = i // chunk_len
        k = keys[i]
        rank = chunk_counts[c, k] + local_ranks[i]
        sorted_indices[offsets[k + 1] - 1 - rank] = i


# ============================================================================
# SEQUENTIAL SINGLE PASS
# ============================================================================

@njit(cache=True)
def counting_sort_sequential(keys: np.ndarray, num_keys: int, counts: np.ndarray,
                             ranks: np.ndarray, offsets: np.ndarray,
                             sorted_indices: np.ndarray, num_items: int):
    """Clear, count with ranks, prefix sum and rearrange on one thread."""
    for k in range(num_keys):
        counts[k] = 0

    for i in range(num_items):
        k = keys[i]
        if k < 0:
            k = 0
        elif k >= num_keys:
            k = num_keys - 1
        keys[i] = k
        ranks[i] = counts[k]
        counts[k] += 1

    offsets[0] = 0
    for k in range(num_keys):
        offsets[k + 1] = offsets[k] + counts[k]

    for i in range(num_items):
        k = keys[i]
        sorted_indices[offsets[k + 1] - 1 - ranks[i]] = i


@njit(cache=True)
def count_keys_sequential(keys: np.ndarray, num_keys: int, counts: np.ndarray, num_items: int):
    for k in range(num_keys):
        counts[k] = 0
    for i in range(num_items):
        k = keys[i]
        if k < 0:
            k = 0
        elif k >= num_keys:
            k = num_keys - 1
        keys[i] = k
        counts[k] += 1


# ============================================================================
# COUNTING SORT
# ============================================================================

class CountingSort:
    """
    Reusable counting sort over a fixed item count and key range.

    All scratch buffers are owned by the instance and cleared at the start of
    every pass. Keys outside [0, num_keys) are clamped in place.
    """

    def __init__(self, num_items: int, num_keys: int, block_size: int = BLOCK_SIZE,
                 num_chunks: int = None):
        self.num_items = num_items
        self.num_keys = num_keys
        self.block_size = block_size
        if num_chunks is None:
            num_chunks = numba.get_num_threads()
        self.num_chunks = max(1, min(num_chunks, num_items))
        self.num_blocks = (num_keys + block_size - 1) // block_size

        self.counts = np.zeros(num_keys, dtype=np.int32)
        self.offsets = np.zeros(num_keys + 1, dtype=np.int32)
        self.sorted_indices = np.arange(num_items, dtype=np.int32)
        self.ranks = np.zeros(num_items, dtype=np.int32)

        self._chunk_counts = np.zeros((self.num_chunks, num_keys), dtype=np.int32)
        self._local_sums = np.zeros(num_keys, dtype=np.int32)
        self._scan_a = np.zeros(self.num_blocks, dtype=np.int32)
        self._scan_b = np.zeros(self.num_blocks, dtype=np.int32)

    def sort(self, keys: np.ndarray, parallel: bool = True, num_keys: int = None) -> np.ndarray:
        """
        Sort item indices by key.

        Args:
            keys: int32 key per item, clamped in place
            parallel: Use the staged parallel pipeline instead of the single pass
            num_keys: Live key range when smaller than the allocated one

        Returns:
            The sorted index array (owned by this instance)
        """
        k = self._live_keys(num_keys)
        if parallel:
            n = self.num_items
            scatter_counts(keys, k, self._chunk_counts, self.ranks, n)
            combine_chunks(self._chunk_counts, self.counts, k)
            self.prefix_sum(self.counts, self.offsets, k)
            rearrange(keys, self.ranks, self._chunk_counts, self.offsets, self.sorted_indices, n)
        else:
            counting_sort_sequential(
                keys, k, self.counts, self.ranks,
                self.offsets, self.sorted_indices, self.num_items
            )
        return self.sorted_indices

    def count(self, keys: np.ndarray, parallel: bool = True, num_keys: int = None) -> np.ndarray:
        """Histogram of keys without producing a permutation."""
        k = self._live_keys(num_keys)
        if parallel:
            scatter_counts(keys, k, self._chunk_counts, self.ranks, self.num_items)
            combine_chunks(self._chunk_counts, self.counts, k)
        else:
            count_keys_sequential(keys, k, self.counts, self.num_items)
        return self.counts[:k]

    def prefix_sum(self, counts: np.ndarray, offsets: np.ndarray, num_keys: int = None):
        """Blocked parallel exclusive scan of counts into offsets (len num_keys + 1)."""
        k = self._live_keys(num_keys)
        num_blocks = (k + self.block_size - 1) // self.block_size
        block_scan(counts, self._local_sums, self._scan_a, k, self.block_size)

        src, dst = self._scan_a, self._scan_b
        stride = 1
        while stride < num_blocks:
            doubling_pass(src, dst, stride, num_blocks)
            src, dst = dst, src
            stride *= 2

        add_block_bases(self._local_sums, src, offsets, k, self.block_size)

    def _live_keys(self, num_keys):
        if num_keys is None:
            return self.num_keys
        return max(1, min(num_keys, self.num_keys))

    def key_range(self, key: int):
        """Slice of the sorted array holding items with this key."""
        return self.offsets[key], self.offsets[key + 1]
