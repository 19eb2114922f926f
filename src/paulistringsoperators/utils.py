import os

import numpy as np
from jaxtyping import Bool, Int64, UInt64
from numba import config, njit, prange, set_num_threads

NUM_THREADS: int = max(
    1,
    min(int(os.environ.get("PAULISTRINGS_NUM_THREADS", config.NUMBA_NUM_THREADS)), config.NUMBA_NUM_THREADS),
)

set_num_threads(NUM_THREADS)


@njit(fastmath=True)  # type: ignore [misc]
def pack_bits(
    bits: Bool[np.ndarray, " n_operators n_bits"],
) -> UInt64[np.ndarray, " n_operators n_packed"]:
    n_operators, n_bits = bits.shape
    packed_bits: UInt64[np.ndarray, " n_operators n_packed"] = np.zeros(
        (n_operators, max(1, (n_bits + 63) // 64)), dtype=np.uint64
    )
    for i in range(n_operators):
        for j in range(n_bits):
            if bits[i, j]:
                packed_bits[i, j // 64] |= np.uint64(1) << np.uint64(j % 64)
    return packed_bits


@njit(fastmath=True)  # type: ignore [misc]
def count_set_bits(x: np.uint64) -> int:
    x = x - ((x >> np.uint64(1)) & np.uint64(0x5555555555555555))
    x = (x & np.uint64(0x3333333333333333)) + ((x >> np.uint64(2)) & np.uint64(0x3333333333333333))
    x = (x + (x >> np.uint64(4))) & np.uint64(0x0F0F0F0F0F0F0F0F)
    x = x + (x >> np.uint64(8))
    x = x + (x >> np.uint64(16))
    x = x + (x >> np.uint64(32))
    return np.int64(x & np.uint64(0x7F))


@njit(fastmath=True)  # type: ignore [misc]
def count_nonzero(
    words: UInt64[np.ndarray, " n_packed"],
) -> int:
    s: int = 0
    for i in range(len(words)):
        s += count_set_bits(words[i])
    return s


@njit(parallel=True, fastmath=True)  # type: ignore [misc]
def row_weights(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
) -> Int64[np.ndarray, " n_operators"]:
    n_operators, n_packed = xs.shape
    res = np.empty(n_operators, dtype=np.int64)
    for i in prange(n_operators):
        w = 0
        for k in range(n_packed):
            w += count_set_bits(xs[i, k] | zs[i, k])
        res[i] = w
    return res


@njit(parallel=True, fastmath=True)  # type: ignore [misc]
def compose_pairs(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
    other_xs: UInt64[np.ndarray, " n_other_operators n_packed"],
    other_zs: UInt64[np.ndarray, " n_other_operators n_packed"],
    left: Int64[np.ndarray, " n_pairs"],
    right: Int64[np.ndarray, " n_pairs"],
) -> tuple[
    UInt64[np.ndarray, " n_pairs n_packed"],
    UInt64[np.ndarray, " n_pairs n_packed"],
    Int64[np.ndarray, " n_pairs"],
]:
    n_pairs = left.shape[0]
    n_packed = xs.shape[1]
    res_x = np.empty((n_pairs, n_packed), dtype=np.uint64)
    res_z = np.empty((n_pairs, n_packed), dtype=np.uint64)
    res_e = np.empty(n_pairs, dtype=np.int64)
    for p in prange(n_pairs):
        i = left[p]
        j = right[p]
        e = 0
        for k in range(n_packed):
            x1 = xs[i, k]
            z1 = zs[i, k]
            x2 = other_xs[j, k]
            z2 = other_zs[j, k]
            x = x1 ^ x2
            z = z1 ^ z2
            res_x[p, k] = x
            res_z[p, k] = z
            e += (
                count_set_bits(x1 & z1)
                + count_set_bits(x2 & z2)
                + 2 * count_set_bits(z1 & x2)
                - count_set_bits(x & z)
            )
        res_e[p] = e & 3
    return res_x, res_z, res_e


@njit(parallel=True, fastmath=True)  # type: ignore [misc]
def commutator_mask(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
    other_xs: UInt64[np.ndarray, " n_other_operators n_packed"],
    other_zs: UInt64[np.ndarray, " n_other_operators n_packed"],
    maxlength: int,
) -> Bool[np.ndarray, " n_operators n_other_operators"]:
    n_operators, n_packed = xs.shape
    n_other_operators = other_xs.shape[0]
    res = np.zeros((n_operators, n_other_operators), dtype=np.bool_)
    for i in prange(n_operators):
        for j in range(n_other_operators):
            s = 0
            w = 0
            for k in range(n_packed):
                s += count_set_bits(xs[i, k] & other_zs[j, k]) + count_set_bits(zs[i, k] & other_xs[j, k])
                w += count_set_bits((xs[i, k] ^ other_xs[j, k]) | (zs[i, k] ^ other_zs[j, k]))
            res[i, j] = (s & 1) == 1 and w <= maxlength
    return res
