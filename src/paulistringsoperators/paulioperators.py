from collections.abc import Sequence

import numpy as np
from jaxtyping import Complex128, Int64, UInt64

from paulistringsoperators import symplectic
from paulistringsoperators.paulikey import PauliKey
from paulistringsoperators.utils import commutator_mask, compose_pairs, row_weights

PHASES: Complex128[np.ndarray, " 4"] = np.array(symplectic.PHASES, dtype=np.complex128)

WORD_BYTES = 8


def n_packed_words(n_qubits: int) -> int:
    return max(1, (n_qubits + 63) // 64)


def pack_keys(
    keys: Sequence[PauliKey],
    n_qubits: int,
) -> tuple[UInt64[np.ndarray, " n_operators n_packed"], UInt64[np.ndarray, " n_operators n_packed"]]:
    """Pack Pauli keys into little-endian ``uint64`` word arrays.

    Args:
        keys (Sequence[PauliKey]): The keys to pack.
        n_qubits (int): The number of qubits of the operator the keys belong to.

    Returns:
        (tuple[UInt64[np.ndarray, "n_operators n_packed"], UInt64[np.ndarray, "n_operators n_packed"]]):
            The X words and the Z words.

    """
    n_packed = n_packed_words(n_qubits)
    size = WORD_BYTES * n_packed
    xs = np.frombuffer(b"".join(key.x.to_bytes(size, "little") for key in keys), dtype="<u8")
    zs = np.frombuffer(b"".join(key.z.to_bytes(size, "little") for key in keys), dtype="<u8")
    return (
        xs.reshape(-1, n_packed).astype(np.uint64),
        zs.reshape(-1, n_packed).astype(np.uint64),
    )


def unpack_keys(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
) -> list[PauliKey]:
    n_operators, n_packed = xs.shape
    size = WORD_BYTES * n_packed
    x_bytes = np.ascontiguousarray(xs, dtype="<u8").tobytes()
    z_bytes = np.ascontiguousarray(zs, dtype="<u8").tobytes()
    return [
        PauliKey(
            int.from_bytes(x_bytes[i * size : (i + 1) * size], "little"),
            int.from_bytes(z_bytes[i * size : (i + 1) * size], "little"),
        )
        for i in range(n_operators)
    ]


def weights(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
) -> Int64[np.ndarray, " n_operators"]:
    result: Int64[np.ndarray, " n_operators"] = row_weights(xs, zs)
    return result


def all_pairs(n_operators: int, n_other_operators: int) -> tuple[Int64[np.ndarray, " n_pairs"], ...]:
    left = np.repeat(np.arange(n_operators, dtype=np.int64), n_other_operators)
    right = np.tile(np.arange(n_other_operators, dtype=np.int64), n_operators)
    return left, right


def anticommuting_pairs(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
    other_xs: UInt64[np.ndarray, " n_other_operators n_packed"],
    other_zs: UInt64[np.ndarray, " n_other_operators n_packed"],
    maxlength: int,
) -> tuple[Int64[np.ndarray, " n_pairs"], ...]:
    """Index pairs of anticommuting strings whose product has weight at most ``maxlength``."""
    left, right = np.nonzero(commutator_mask(xs, zs, other_xs, other_zs, maxlength))
    return left.astype(np.int64), right.astype(np.int64)


def compose_with(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
    coefficients: Complex128[np.ndarray, " n_operators"],
    other_xs: UInt64[np.ndarray, " n_other_operators n_packed"],
    other_zs: UInt64[np.ndarray, " n_other_operators n_packed"],
    other_coefficients: Complex128[np.ndarray, " n_other_operators"],
    left: Int64[np.ndarray, " n_pairs"],
    right: Int64[np.ndarray, " n_pairs"],
) -> tuple[
    UInt64[np.ndarray, " n_pairs n_packed"],
    UInt64[np.ndarray, " n_pairs n_packed"],
    Complex128[np.ndarray, " n_pairs"],
]:
    """Multiply the terms ``left[p]`` and ``right[p]`` of two packed operators for every pair ``p``.

    The returned rows are not merged; see `merge_terms`.
    """
    new_xs, new_zs, exponents = compose_pairs(xs, zs, other_xs, other_zs, left, right)
    new_coefficients = coefficients[left] * other_coefficients[right] * PHASES[exponents]
    return new_xs, new_zs, new_coefficients


def merge_terms(
    xs: UInt64[np.ndarray, " n_operators n_packed"],
    zs: UInt64[np.ndarray, " n_operators n_packed"],
    coefficients: Complex128[np.ndarray, " n_operators"],
) -> tuple[
    UInt64[np.ndarray, " n_unique n_packed"],
    UInt64[np.ndarray, " n_unique n_packed"],
    Complex128[np.ndarray, " n_unique"],
]:
    """Sum the coefficients of repeated rows."""
    n_packed = xs.shape[1]
    if xs.shape[0] == 0:
        return xs, zs, coefficients
    rows = np.hstack((xs, zs))
    unique_rows, inverse = np.unique(rows, axis=0, return_inverse=True)
    summed = np.zeros(unique_rows.shape[0], dtype=np.complex128)
    np.add.at(summed, inverse.reshape(-1), coefficients)
    return unique_rows[:, :n_packed], unique_rows[:, n_packed:], summed
