import math

import jax
import numpy as np
import pytest

from paulistringsoperators import (
    InvalidParameterError,
    Operator,
    SystemSizeError,
    add_sites,
    allclose,
    commutator,
    evolution,
    evolve,
    lanczos,
    operator_from_strings,
    rand_local2,
    rk4,
    trace_product,
)
from paulistringsoperators.reduction import trim


def chain_hamiltonian(n: int) -> Operator:
    """Mixed field Ising chain."""
    h = Operator(n)
    for i in range(1, n):
        add_sites(h, [("Z", i), ("Z", i + 1)])
    for i in range(1, n + 1):
        add_sites(h, [("X", i)], 1.05)
        add_sites(h, [("Z", i)], 0.5)
    return h


def test_commutator() -> None:
    a = operator_from_strings(4, ["X111"])
    b = operator_from_strings(4, ["Z111", "XYZ1"])
    assert allclose(commutator(a, b), operator_from_strings(4, ["Y111"], [-2j]))
    assert len(commutator(a, operator_from_strings(4, ["XYZ1"]))) == 0


def test_commutator_matches_products(random_operators: list[Operator]) -> None:
    a, b, _ = random_operators
    assert allclose(commutator(a, b), a * b - b * a)


def test_commutator_filters(prng_key: jax.Array) -> None:
    a = rand_local2(5, prng_key)
    b = rand_local2(5, jax.random.fold_in(prng_key, 1))
    short = commutator(a, b, maxlength=2)
    assert all(key.weight() <= 2 for key in short.keys())
    assert len(short) < len(commutator(a, b))
    assert np.all(np.abs(commutator(a, b, epsilon=0.5).coefficients()) >= 0.5)


def test_commutator_errors() -> None:
    with pytest.raises(SystemSizeError):
        commutator(Operator(2), Operator(3))
    with pytest.raises(InvalidParameterError):
        commutator(Operator(2), Operator(2), epsilon=-1.0)


@pytest.mark.parametrize(("heisenberg", "sign"), [(True, -1.0), (False, 1.0)])
def test_rk4_single_qubit_precession(*, heisenberg: bool, sign: float) -> None:
    h = operator_from_strings(1, ["Z"])
    o = operator_from_strings(1, ["X"])
    dt = 0.05
    for _ in range(10):
        o = rk4(h, o, dt, heisenberg=heisenberg)
    t = 10 * dt
    expected = operator_from_strings(1, ["X", "Y"], [math.cos(2 * t), sign * math.sin(2 * t)])
    assert allclose(o, expected, atol=1e-5)


def test_rk4_is_deterministic() -> None:
    h = chain_hamiltonian(4)
    o = operator_from_strings(4, ["Z111"])
    assert rk4(h, o, 0.05, heisenberg=True) == rk4(h, o, 0.05, heisenberg=True)


def test_rk4_time_dependent_hamiltonian() -> None:
    h = operator_from_strings(2, ["ZZ", "X1"])
    o = operator_from_strings(2, ["Z1"])
    times: list[float] = []

    def hamiltonian(t: float) -> Operator:
        times.append(t)
        return h

    assert allclose(rk4(hamiltonian, o, 0.1, 1.0), rk4(h, o, 0.1))
    assert times == pytest.approx([1.0, 1.05, 1.1])


def test_rk4_trims_stages() -> None:
    h = chain_hamiltonian(4)
    o = operator_from_strings(4, ["Z111"])
    assert len(rk4(h, o, 0.1, M=1)) <= len(rk4(h, o, 0.1))


def spy_on_trim(monkeypatch: pytest.MonkeyPatch) -> list[tuple[Operator, Operator]]:
    """Record every ``(input, output)`` pair of the trims done during evolution."""
    calls: list[tuple[Operator, Operator]] = []

    def spy(o: Operator, n_terms: int, **kwargs: object) -> Operator:
        res = trim(o, n_terms, **kwargs)  # type: ignore [arg-type]
        calls.append((o, res))
        return res

    monkeypatch.setattr(evolution, "trim", spy)
    return calls


def test_rk4_stage_derivatives_respect_budget(monkeypatch: pytest.MonkeyPatch) -> None:
    h = chain_hamiltonian(4)
    o = operator_from_strings(4, ["1Z11"])
    keep = operator_from_strings(4, ["ZX11"])
    untrimmed = rk4(h, o, 0.1, heisenberg=True)
    calls = spy_on_trim(monkeypatch)
    trimmed = rk4(h, o, 0.1, heisenberg=True, M=2, keep=keep)
    assert len(calls) == 4
    assert any(len(before) > 2 + len(keep) for before, _ in calls)
    assert any(key in before for before, _ in calls for key in keep.keys())
    for before, after in calls:
        assert len(after) <= 2 + len(keep)
        for key in keep.keys():
            if key in before:
                assert key in after
    assert not allclose(trimmed, untrimmed)


def test_lanczos_trims_every_step(monkeypatch: pytest.MonkeyPatch) -> None:
    h = chain_hamiltonian(6)
    o = operator_from_strings(6, ["1Z1111"])
    full = lanczos(h, o, steps=6, nterms=2**12)
    calls = spy_on_trim(monkeypatch)
    bs = lanczos(h, o, steps=6, nterms=3)
    assert len(calls) == len(bs)
    assert all(len(after) <= 3 for _, after in calls)
    assert any(len(before) > 3 for before, _ in calls)
    n = min(len(bs), len(full))
    assert np.allclose(bs[:3], full[:3])
    assert not np.allclose(bs[:n], full[:n])


def test_lanczos_terminates_when_krylov_space_closes() -> None:
    h = operator_from_strings(1, ["X"])
    o = operator_from_strings(1, ["Z"])
    bs = lanczos(h, o, steps=5, nterms=10)
    assert len(bs) == 1
    assert np.isclose(bs[0], 2.0)
    assert lanczos(operator_from_strings(1, ["Z"]), o, steps=5, nterms=10) == []


def test_lanczos_chain() -> None:
    h = chain_hamiltonian(6)
    o = operator_from_strings(6, ["1Z1111"])
    bs = lanczos(h, o, steps=6, nterms=2**12)
    assert len(bs) == 6
    assert all(b > 0 for b in bs)
    assert np.isclose(bs[0], 2.1)


def test_lanczos_invalid_parameters() -> None:
    h = chain_hamiltonian(3)
    o = operator_from_strings(3, ["Z11"])
    with pytest.raises(InvalidParameterError):
        lanczos(h, o, steps=-1, nterms=10)
    with pytest.raises(InvalidParameterError):
        lanczos(h, o, steps=3, nterms=-10)


def test_evolve() -> None:
    h = operator_from_strings(1, ["Z"])
    o = operator_from_strings(1, ["X"])
    r = evolve(h, o, nsteps=10, dt=0.05, M=10, process_every=5)
    assert r.shape == (3,)
    assert np.allclose(np.array(r), [2 * math.cos(2 * t) for t in (0.0, 0.25, 0.5)], atol=1e-5)


def test_evolve_with_noise_decays() -> None:
    h = chain_hamiltonian(4)
    o = operator_from_strings(4, ["1Z11"])
    clean = evolve(h, o, nsteps=4, dt=0.05, M=64)
    noisy = evolve(
        h,
        o,
        nsteps=4,
        dt=0.05,
        M=64,
        noise=1.0,
        process=lambda op: trace_product(op, op),
    )
    assert len(clean) == len(noisy) == 5
    assert np.real(noisy[-1]) < np.real(noisy[0])
