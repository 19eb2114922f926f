import math
from collections.abc import Iterable, Iterator, Mapping
from numbers import Number
from typing import Self

import numpy as np
from jaxtyping import Complex128, UInt64

from paulistringsoperators.exceptions import InvalidParameterError, QubitIndexError, SystemSizeError
from paulistringsoperators.paulikey import PauliKey
from paulistringsoperators.paulioperators import all_pairs, compose_with, merge_terms, pack_keys, unpack_keys

NEGLIGIBLE = 1e-20


class Operator:
    """Sparse operator on ``n_qubits`` qubits stored as a sum of Pauli strings.

    Terms live in a dictionary keyed by `PauliKey`, so inserting a string that is
    already present adds to its coefficient instead of creating a second entry.

    Args:
        n_qubits (int): The number of qubits.
        terms (Mapping[PauliKey, complex]): Optional initial terms.

    Examples:
        >>> o = Operator(4)
        >>> o.insert(PauliKey(x=0b0001, z=0), 1.0)  # X111
        >>> o.insert(PauliKey(x=0b0011, z=0b0110), 1.0)  # XYZ1
        >>> len(o)
        2

    """

    def __init__(self, n_qubits: int, terms: Mapping[PauliKey, complex] | None = None) -> None:
        if n_qubits < 0:
            raise InvalidParameterError("n_qubits", n_qubits)
        self.n_qubits: int = n_qubits
        self._terms: dict[PauliKey, complex] = {}
        if terms is not None:
            for key, coefficient in terms.items():
                self.insert(key, coefficient)

    def insert(self, key: PauliKey, coefficient: complex = 1.0) -> None:
        """Add ``coefficient`` times the string ``key`` to the operator in place."""
        if key.width() > self.n_qubits:
            raise QubitIndexError(key.width(), self.n_qubits)
        self._terms[key] = self._terms.get(key, 0j) + complex(coefficient)

    def coefficient(self, key: PauliKey) -> complex:
        return self._terms.get(key, 0j)

    def keys(self) -> list[PauliKey]:
        return list(self._terms)

    def coefficients(self) -> Complex128[np.ndarray, " n_terms"]:
        return np.fromiter(self._terms.values(), dtype=np.complex128, count=len(self._terms))

    def items(self) -> list[tuple[PauliKey, complex]]:
        return list(self._terms.items())

    def packed(
        self,
    ) -> tuple[
        UInt64[np.ndarray, " n_terms n_packed"],
        UInt64[np.ndarray, " n_terms n_packed"],
        Complex128[np.ndarray, " n_terms"],
    ]:
        """Keys as packed word arrays together with the coefficient array."""
        xs, zs = pack_keys(self.keys(), self.n_qubits)
        return xs, zs, self.coefficients()

    @classmethod
    def from_packed(
        cls,
        n_qubits: int,
        xs: UInt64[np.ndarray, " n_terms n_packed"],
        zs: UInt64[np.ndarray, " n_terms n_packed"],
        coefficients: Complex128[np.ndarray, " n_terms"],
    ) -> Self:
        o = cls(n_qubits)
        for key, c in zip(unpack_keys(xs, zs), coefficients.tolist(), strict=True):
            o.insert(key, c)
        return o

    def copy(self) -> Self:
        o = type(self)(self.n_qubits)
        o._terms = dict(self._terms)
        return o

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[tuple[PauliKey, complex]]:
        return iter(self._terms.items())

    def __contains__(self, key: object) -> bool:
        return key in self._terms

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Operator):
            return NotImplemented
        return self.n_qubits == other.n_qubits and self._terms == other._terms

    __hash__ = None  # type: ignore [assignment]

    def __repr__(self) -> str:
        return f"Operator(n_qubits={self.n_qubits}, n_terms={len(self)})"

    def __add__(self, other: object) -> "Operator":
        if isinstance(other, Operator):
            return add(self, other)
        if isinstance(other, Number):
            return add_scalar(self, other)
        return NotImplemented

    def __radd__(self, other: object) -> "Operator":
        if isinstance(other, Number):
            return add_scalar(self, other)
        return NotImplemented

    def __sub__(self, other: object) -> "Operator":
        if isinstance(other, Operator):
            return subtract(self, other)
        if isinstance(other, Number):
            return add_scalar(self, -other)
        return NotImplemented

    def __rsub__(self, other: object) -> "Operator":
        if isinstance(other, Number):
            return add_scalar(scalar_multiply(self, -1), other)
        return NotImplemented

    def __neg__(self) -> "Operator":
        return scalar_multiply(self, -1)

    def __mul__(self, other: object) -> "Operator":
        if isinstance(other, Operator):
            return multiply(self, other)
        if isinstance(other, Number):
            return scalar_multiply(self, other)
        return NotImplemented

    def __rmul__(self, other: object) -> "Operator":
        if isinstance(other, Number):
            return scalar_multiply(self, other)
        return NotImplemented

    def __truediv__(self, other: object) -> "Operator":
        if isinstance(other, Number):
            return scalar_multiply(self, 1 / other)
        return NotImplemented


def check_system_size(o1: Operator, o2: Operator) -> None:
    if o1.n_qubits != o2.n_qubits:
        raise SystemSizeError(o1.n_qubits, o2.n_qubits)


def eye(n_qubits: int) -> Operator:
    """Identity operator on ``n_qubits`` qubits."""
    return Operator(n_qubits, {PauliKey.identity(): 1.0})


def compress(o: Operator) -> Operator:
    """Drop the terms whose coefficient is smaller than `NEGLIGIBLE` in absolute value.

    Repeated strings are already merged on insertion, so this only removes
    negligible terms and is idempotent.
    """
    return Operator(o.n_qubits, {key: c for key, c in o if abs(c) >= NEGLIGIBLE})


def add(o1: Operator, o2: Operator) -> Operator:
    """Sum of two operators.

    Args:
        o1 (Operator): The first operator.
        o2 (Operator): The second operator, over the same number of qubits.

    Returns:
        (Operator): ``o1 + o2`` with repeated strings merged.

    """
    check_system_size(o1, o2)
    o = o1.copy()
    for key, c in o2:
        o.insert(key, c)
    return compress(o)


def subtract(o1: Operator, o2: Operator) -> Operator:
    check_system_size(o1, o2)
    o = o1.copy()
    for key, c in o2:
        o.insert(key, -c)
    return compress(o)


def add_scalar(o: Operator, a: complex) -> Operator:
    """Add ``a`` times the identity."""
    res = o.copy()
    res.insert(PauliKey.identity(), a)
    return compress(res)


def scalar_multiply(o: Operator, c: complex) -> Operator:
    if c == 0:
        return Operator(o.n_qubits)
    return compress(Operator(o.n_qubits, {key: c * v for key, v in o}))


def multiply(o1: Operator, o2: Operator) -> Operator:
    """Product of two operators.

    Every pair of terms is multiplied with the symplectic rule and the results are
    merged by key. The cost is ``len(o1) * len(o2)`` products, so the operands should
    be reduced beforehand when this is called in a loop.

    Args:
        o1 (Operator): The left factor.
        o2 (Operator): The right factor, over the same number of qubits.

    Returns:
        (Operator): ``o1 * o2``.

    """
    check_system_size(o1, o2)
    if len(o1) == 0 or len(o2) == 0:
        return Operator(o1.n_qubits)
    xs1, zs1, c1 = o1.packed()
    xs2, zs2, c2 = o2.packed()
    left, right = all_pairs(len(o1), len(o2))
    xs, zs, coefficients = merge_terms(*compose_with(xs1, zs1, c1, xs2, zs2, c2, left, right))
    return compress(Operator.from_packed(o1.n_qubits, xs, zs, coefficients))


def _power_of_two(exponent: float) -> float:
    """``2 ** exponent`` as a float, ``inf`` once it exceeds the float range."""
    try:
        return 2.0**exponent
    except OverflowError:
        return math.inf


def _scale(c: complex, s: float) -> complex:
    # zero components stay zero when s is infinite
    return complex(c.real * s if c.real else 0.0, c.imag * s if c.imag else 0.0)


def trace(o: Operator) -> complex:
    """Trace of an operator; only the identity string contributes.

    Beyond about 1024 qubits the dimension ``2^N`` no longer fits in a float and
    non-zero components of the result are infinite.
    """
    return _scale(o.coefficient(PauliKey.identity()), _power_of_two(o.n_qubits))


def trace_product(o1: Operator, o2: Operator) -> complex:
    """``trace(o1 * o2)`` computed from the strings the two operators share."""
    check_system_size(o1, o2)
    small, large = (o1, o2) if len(o1) <= len(o2) else (o2, o1)
    overlap = sum((c * large.coefficient(key) for key, c in small if key in large), 0j)
    return _scale(overlap, _power_of_two(o1.n_qubits))


def opnorm(o: Operator) -> float:
    """Frobenius norm ``sqrt(trace(dagger(o) * o))``."""
    norm = float(np.linalg.norm(o.coefficients()))
    return norm * _power_of_two(o.n_qubits / 2) if norm else 0.0


def dagger(o: Operator) -> Operator:
    """Conjugate transpose.

    Keys are Hermitian strings, so only the coefficients are conjugated.
    """
    return Operator(o.n_qubits, {key: c.conjugate() for key, c in o})


def partial_trace(o: Operator, keep: Iterable[int]) -> Operator:
    """Trace out every qubit that is not in ``keep``.

    The result is still an operator on ``n_qubits`` qubits; no qubit is removed or
    relabelled. Strings with no support on ``keep`` are dropped and their
    coefficient times ``2^(n_qubits - len(keep))`` is added to the identity string.

    Args:
        o (Operator): The operator.
        keep (Iterable[int]): The sites to keep, starting at 1.

    Returns:
        (Operator): The partially traced operator.

    """
    sites = set(keep)
    mask = 0
    for site in sites:
        if not 1 <= site <= o.n_qubits:
            raise QubitIndexError(site, o.n_qubits)
        mask |= 1 << (site - 1)
    scale = _power_of_two(o.n_qubits - len(sites))
    res = Operator(o.n_qubits)
    for key, c in o:
        if key.support() & mask:
            res.insert(key, c)
        else:
            res.insert(PauliKey.identity(), _scale(c, scale))
    return compress(res)


def allclose(o1: Operator, o2: Operator, atol: float = 1e-10) -> bool:
    """Whether every coefficient of ``o1 - o2`` is at most ``atol`` in absolute value."""
    if o1.n_qubits != o2.n_qubits:
        return False
    return all(abs(o1.coefficient(key) - o2.coefficient(key)) <= atol for key in set(o1.keys()) | set(o2.keys()))


def op_to_keys(o: Operator) -> tuple[Complex128[np.ndarray, " n_terms"], list[PauliKey]]:
    """Export an operator as ``(coefficients, keys)``; ``coefficients[i]`` multiplies ``keys[i]``."""
    return o.coefficients(), o.keys()
