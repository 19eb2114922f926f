import math

import numpy as np
import pytest

from paulistringsoperators import (
    Operator,
    PauliKey,
    QubitIndexError,
    SystemSizeError,
    add,
    add_sites,
    add_string,
    allclose,
    compress,
    dagger,
    eye,
    multiply,
    op_to_keys,
    operator_from_strings,
    opnorm,
    partial_trace,
    scalar_multiply,
    subtract,
    trace,
    trace_product,
)
from paulistringsoperators.strings import key_from_string


def test_operator_init(xyz_operator: Operator) -> None:
    assert len(xyz_operator) == 2
    assert xyz_operator.n_qubits == 4
    assert trace(xyz_operator) == 0
    assert math.isclose(opnorm(xyz_operator), math.sqrt(32))


def test_insert_merges_repeated_strings() -> None:
    o = Operator(4)
    add_string(o, "X111")
    add_sites(o, [("X", 1)], 2.0)
    add_sites(o, [("Y", 4)])
    assert len(o) == 2
    assert o.coefficient(key_from_string("X111", 4)) == 3.0


def test_insert_rejects_keys_wider_than_operator() -> None:
    o = Operator(2)
    with pytest.raises(QubitIndexError):
        o.insert(PauliKey(0b100, 0), 1.0)


def test_trace() -> None:
    o = operator_from_strings(4, ["1111", "XYZ1"], [2, 3])
    assert trace(o) == 32


def test_opnorm() -> None:
    o = Operator(4)
    add_sites(o, [("X", 2)], 2)
    add_sites(o, [("Z", 1), ("Z", 3)], 1)
    assert math.isclose(opnorm(o), 8.94427190999916)


def test_multiply() -> None:
    a = operator_from_strings(4, ["XYZ1", "111Y"])
    b = operator_from_strings(4, ["1Y1Y", "11Z1"], [2, 1])
    expected = operator_from_strings(4, ["X1ZY", "11ZY", "1Y11", "XY11"], [2, 1, 2, 1])
    assert allclose(multiply(a, b), expected)
    assert allclose(a * b, expected)


def test_scalar_arithmetic() -> None:
    a = operator_from_strings(4, ["XYZ1", "111Y"])
    five = a + 5
    assert five.coefficient(PauliKey.identity()) == 5
    assert len(five) == 3
    assert allclose(5 * a, scalar_multiply(a, 5))
    assert allclose(a * 5, a / 0.2)
    assert allclose(-a, scalar_multiply(a, -1))
    assert allclose(2 - a, add(scalar_multiply(a, -1), scalar_multiply(eye(4), 2)))
    assert len(scalar_multiply(a, 0)) == 0
    assert len(a - a) == 0


def test_dagger() -> None:
    o = Operator(3)
    add_sites(o, [("X", 2)], 1j)
    add_sites(o, [("Z", 1), ("Z", 3)], 1)
    d = dagger(o)
    assert d.coefficient(key_from_string("1X1", 3)) == -1j
    assert d.coefficient(key_from_string("Z1Z", 3)) == 1


def test_dagger_of_raising_operator_is_lowering() -> None:
    plus = add_sites(Operator(2), [("S+", 1)])
    minus = add_sites(Operator(2), [("S-", 1)])
    assert allclose(dagger(plus), minus)


def test_partial_trace() -> None:
    o = operator_from_strings(5, ["XY1XZ", "XY11Z"])
    traced = partial_trace(o, [3, 4])
    assert allclose(traced, operator_from_strings(5, ["XY1XZ", "11111"], [1, 8]))
    assert traced.n_qubits == 5
    assert allclose(partial_trace(o, [1, 5]), o)
    with pytest.raises(QubitIndexError):
        partial_trace(o, [6])


def test_system_size_mismatch() -> None:
    a = eye(3)
    b = eye(4)
    with pytest.raises(SystemSizeError):
        add(a, b)
    with pytest.raises(SystemSizeError):
        multiply(a, b)
    with pytest.raises(SystemSizeError):
        subtract(a, b)


def test_trace_is_linear_and_cyclic(random_operators: list[Operator]) -> None:
    a, b, _ = random_operators
    assert np.isclose(trace(a + b), trace(a) + trace(b))
    assert np.isclose(trace(a * b), trace(b * a))
    assert np.isclose(trace_product(a, b), trace(a * b))


def test_dagger_is_an_involution(random_operators: list[Operator]) -> None:
    for a in random_operators:
        assert dagger(dagger(a)) == a


def test_opnorm_matches_trace(random_operators: list[Operator]) -> None:
    for a in random_operators:
        assert np.isclose(opnorm(a) ** 2, trace(dagger(a) * a).real)


def test_compress_is_idempotent() -> None:
    o = operator_from_strings(2, ["XX", "ZZ", "YY"], [1.0, 1e-25, 0.0])
    once = compress(o)
    assert len(once) == 1
    assert compress(once) == once


def test_multiply_distributes_over_add(random_operators: list[Operator]) -> None:
    a, b, c = random_operators
    assert allclose(a * (b + c), a * b + a * c)


def test_op_to_keys(xyz_operator: Operator) -> None:
    coefficients, keys = op_to_keys(xyz_operator)
    assert len(coefficients) == len(keys) == 2
    assert set(keys) == {key_from_string("X111", 4), key_from_string("XYZ1", 4)}


def test_large_systems_scale_without_overflow() -> None:
    o = add_sites(Operator(1100), [("X", 1)], 3.0)
    assert math.isclose(opnorm(o), 3.0 * 2.0**550)
    assert opnorm(Operator(1100)) == 0
    assert trace(o) == 0
    assert trace(eye(1100)) == complex(math.inf, 0.0)
    assert trace_product(o, o) == complex(math.inf, 0.0)
    assert partial_trace(o, [2]).coefficient(PauliKey.identity()) == complex(math.inf, 0.0)
