"""Human readable Pauli strings.

Full strings are written over ``1`` (or ``I``/``_``), ``X``, ``Y`` and ``Z``, the
leftmost character acting on site 1. Local terms are given as ``(symbol, site)``
pairs with sites starting at 1 and symbols among ``X, Y, Z, Sx, Sy, Sz, S+, S-``,
where ``Sx = X / 2`` and ``S+ = (X + iY) / 2``.
"""

from collections.abc import Sequence

import numpy as np
import stim

from paulistringsoperators.exceptions import InvalidSymbolError, QubitIndexError, SystemSizeError
from paulistringsoperators.paulikey import PauliKey
from paulistringsoperators.paulioperator import Operator
from paulistringsoperators.symplectic import multiply
from paulistringsoperators.utils import pack_bits

PauliString = str

IDENTITY_CHARACTERS = "1I_"

_X = PauliKey(1, 0)
_Y = PauliKey(1, 1)
_Z = PauliKey(0, 1)

SITE_OPERATORS: dict[str, tuple[tuple[complex, PauliKey], ...]] = {
    "X": ((1.0, _X),),
    "Y": ((1.0, _Y),),
    "Z": ((1.0, _Z),),
    "Sx": ((0.5, _X),),
    "Sy": ((0.5, _Y),),
    "Sz": ((0.5, _Z),),
    "S+": ((0.5, _X), (0.5j, _Y)),
    "S-": ((0.5, _X), (-0.5j, _Y)),
}


def _words_to_int(words: np.ndarray) -> int:
    return int.from_bytes(np.ascontiguousarray(words, dtype="<u8").tobytes(), "little")


def key_from_string(paulistring: PauliString, n_qubits: int) -> PauliKey:
    """Encode a full Pauli string such as ``"XYZ1"``.

    Args:
        paulistring (PauliString): One character per site.
        n_qubits (int): The expected number of sites.

    Returns:
        (PauliKey): The encoded string.

    """
    if len(paulistring) != n_qubits:
        raise SystemSizeError(len(paulistring), n_qubits)
    for ch in paulistring:
        if ch not in "XYZ" + IDENTITY_CHARACTERS:
            raise InvalidSymbolError(ch)
    ps = stim.PauliString(paulistring.replace("1", "_"))
    xs, zs = ps.to_numpy()
    packed = pack_bits(np.vstack((xs, zs)).astype(np.bool_))
    return PauliKey(_words_to_int(packed[0]), _words_to_int(packed[1]))


def string_from_key(key: PauliKey, n_qubits: int) -> PauliString:
    if key.width() > n_qubits:
        raise QubitIndexError(key.width(), n_qubits)
    xs = np.array([(key.x >> i) & 1 for i in range(n_qubits)], dtype=np.bool_)
    zs = np.array([(key.z >> i) & 1 for i in range(n_qubits)], dtype=np.bool_)
    ps = stim.PauliString.from_numpy(xs=xs, zs=zs)
    return str(ps)[1:].replace("_", "1")


def add_string(o: Operator, paulistring: PauliString, coefficient: complex = 1.0) -> Operator:
    """Add ``coefficient`` times a full string to ``o`` in place and return ``o``."""
    o.insert(key_from_string(paulistring, o.n_qubits), coefficient)
    return o


def add_sites(
    o: Operator,
    sites: Sequence[tuple[str, int]],
    coefficient: complex = 1.0,
) -> Operator:
    """Add a local term given as ``(symbol, site)`` pairs to ``o`` in place and return ``o``.

    Args:
        o (Operator): The operator to add to.
        sites (Sequence[tuple[str, int]]): The site operators, multiplied left to right.
        coefficient (complex): The coefficient of the term.

    Returns:
        (Operator): ``o``.

    Examples:
        >>> o = Operator(4)
        >>> add_sites(o, [("X", 1), ("Y", 2)], 2.0)  # 2 XY11
        >>> add_sites(o, [("S+", 3)])  # 0.5 11X1 + 0.5i 11Y1

    """
    terms: list[tuple[complex, PauliKey]] = [(complex(coefficient), PauliKey.identity())]
    for symbol, site in sites:
        if symbol not in SITE_OPERATORS:
            raise InvalidSymbolError(symbol)
        if not 1 <= site <= o.n_qubits:
            raise QubitIndexError(site, o.n_qubits)
        shift = site - 1
        expanded: list[tuple[complex, PauliKey]] = []
        for c, key in terms:
            for c_site, local in SITE_OPERATORS[symbol]:
                product, phase = multiply(key, PauliKey(local.x << shift, local.z << shift))
                expanded.append((c * c_site * phase, product))
        terms = expanded
    for c, key in terms:
        o.insert(key, c)
    return o


def operator_from_strings(
    n_qubits: int,
    paulistrings: list[PauliString],
    coefficients: list[complex] | list[float] | None = None,
) -> Operator:
    if coefficients is None:
        coefficients = [1.0 + 0.0j] * len(paulistrings)
    if len(coefficients) != len(paulistrings):
        raise SystemSizeError(len(coefficients), len(paulistrings))
    o = Operator(n_qubits)
    for ps, c in zip(paulistrings, coefficients, strict=True):
        add_string(o, ps, c)
    return o


def op_to_strings(o: Operator) -> tuple[list[complex], list[PauliString]]:
    """Export an operator as ``(coefficients, strings)`` where ``coefficients[i]`` multiplies ``strings[i]``."""
    coefficients: list[complex] = []
    strings: list[PauliString] = []
    for key, c in o:
        coefficients.append(c)
        strings.append(string_from_key(key, o.n_qubits))
    return coefficients, strings


def format_operator(o: Operator) -> str:
    """One ``(coefficient) string`` line per term."""
    lines = []
    for c, ps in zip(*op_to_strings(o), strict=True):
        sign = "-" if c.imag < 0 else "+"
        lines.append(f"({c.real} {sign} {abs(c.imag)}j) {ps}")
    return "\n".join(lines)
