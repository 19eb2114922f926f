import logging
from collections.abc import Callable

import jax.numpy as jnp
import numpy as np

from paulistringsoperators.exceptions import InvalidParameterError
from paulistringsoperators.paulioperator import (
    Operator,
    add,
    check_system_size,
    compress,
    scalar_multiply,
    subtract,
    trace_product,
)
from paulistringsoperators.paulioperators import anticommuting_pairs, compose_with, merge_terms
from paulistringsoperators.reduction import add_noise, trim

logger = logging.getLogger(__name__)

DEFAULT_MAXLENGTH = 1000
DEFAULT_MAX_TERMS = 2**20
LANCZOS_TOLERANCE = 1e-12

Hamiltonian = Operator | Callable[[float], Operator]


def commutator(
    o1: Operator,
    o2: Operator,
    epsilon: float = 0.0,
    maxlength: int = DEFAULT_MAXLENGTH,
) -> Operator:
    r"""Commutator ``o1 * o2 - o2 * o1``.

    Commuting strings cancel, and anticommuting ones give twice their product, so

    $$
        [o_1, o_2] = \sum_{P_1 P_2 = -P_2 P_1} 2 c_1 c_2 P_1 P_2.
    $$

    Only anticommuting pairs whose product acts on at most ``maxlength`` qubits are
    multiplied, which is much faster than forming both products.

    Args:
        o1 (Operator): The left operator.
        o2 (Operator): The right operator.
        epsilon (float): Terms smaller than ``epsilon`` are dropped after merging.
        maxlength (int): Products longer than ``maxlength`` are skipped.

    Returns:
        (Operator): The commutator.

    Examples:
        >>> # [X111, Z111] = -2i Y111
        >>> c = commutator(x1, z1)

    """
    check_system_size(o1, o2)
    if epsilon < 0:
        raise InvalidParameterError("epsilon", epsilon)
    if maxlength < 0:
        raise InvalidParameterError("maxlength", maxlength)
    if len(o1) == 0 or len(o2) == 0:
        return Operator(o1.n_qubits)

    xs1, zs1, c1 = o1.packed()
    xs2, zs2, c2 = o2.packed()
    left, right = anticommuting_pairs(xs1, zs1, xs2, zs2, maxlength)
    if len(left) == 0:
        return Operator(o1.n_qubits)
    xs, zs, coefficients = merge_terms(*compose_with(xs1, zs1, 2 * c1, xs2, zs2, c2, left, right))
    keep = np.abs(coefficients) >= epsilon
    return compress(Operator.from_packed(o1.n_qubits, xs[keep], zs[keep], coefficients[keep]))


def _hamiltonian_at(H: Hamiltonian, t: float) -> Operator:
    return H if isinstance(H, Operator) else H(t)


def rk4(
    H: Hamiltonian,
    O: Operator,  # noqa: E741
    dt: float,
    t: float = 0.0,
    *,
    hbar: float = 1.0,
    heisenberg: bool = False,
    M: int = DEFAULT_MAX_TERMS,
    keep: Operator | None = None,
) -> Operator:
    r"""Single step of 4th order Runge-Kutta for the Liouville or Heisenberg equation.

    With ``heisenberg=False`` ``O`` is a density matrix and
    $\dot{O} = -\frac{i}{\hbar}[H, O]$; with ``heisenberg=True`` ``O`` is an observable and
    $\dot{O} = \frac{i}{\hbar}[H, O]$.

    Args:
        H (Operator | Callable[[float], Operator]):
            The Hamiltonian, or a function returning the Hamiltonian at a given time.
            A function is evaluated at ``t``, ``t + dt / 2`` and ``t + dt``.
        O (Operator): The operator at time ``t``.
        dt (float): The time step.
        t (float): The current time, only used when ``H`` is a function.
        hbar (float): The reduced Planck constant.
        heisenberg (bool): Evolve an observable in the Heisenberg picture.
        M (int): Every stage derivative is trimmed to ``M`` terms.
        keep (Operator): Strings that are never trimmed away.

    Returns:
        (Operator): The operator at time ``t + dt``. It is not trimmed.

    """
    s = 1j / hbar if heisenberg else -1j / hbar

    def f(h: Operator, o: Operator) -> Operator:
        return trim(scalar_multiply(commutator(h, o), s), M, keep=keep)

    h0 = _hamiltonian_at(H, t)
    h_half = _hamiltonian_at(H, t + dt / 2)
    h1 = _hamiltonian_at(H, t + dt)

    k1 = f(h0, O)
    k2 = f(h_half, add(O, scalar_multiply(k1, dt / 2)))
    k3 = f(h_half, add(O, scalar_multiply(k2, dt / 2)))
    k4 = f(h1, add(O, scalar_multiply(k3, dt)))
    increment = add(add(k1, scalar_multiply(k2, 2)), add(scalar_multiply(k3, 2), k4))
    return add(O, scalar_multiply(increment, dt / 6))


def _lanczos_norm(o: Operator) -> float:
    return float(np.linalg.norm(o.coefficients()))


def lanczos(
    H: Operator,
    O: Operator,  # noqa: E741
    steps: int,
    nterms: int,
    *,
    keepnorm: bool = True,
    maxlength: int = DEFAULT_MAXLENGTH,
) -> list[float]:
    r"""Lanczos coefficients of ``O`` under the Liouvillian ``[H, .]``.

    $$
        O_{n+1} = [H, O_n] - b_n O_{n-1}, \quad b_{n+1} = \|O_{n+1}\|,
    $$

    with every $O_n$ normalised and trimmed to ``nterms`` strings. The norm used is the
    Frobenius norm divided by $\sqrt{2^N}$; the coefficients do not depend on that
    scale.

    If an operator of the sequence vanishes the recursion cannot continue, and the
    coefficients computed so far are returned.

    Args:
        H (Operator): The Hamiltonian.
        O (Operator): The initial operator.
        steps (int): The number of coefficients to compute.
        nterms (int): The maximum number of strings kept at every step.
        keepnorm (bool): Passed to `trim`.
        maxlength (int): Passed to `commutator`.

    Returns:
        (list[float]): ``[b_1, ..., b_steps]``, shorter if the recursion stopped early.

    """
    check_system_size(H, O)
    if steps < 0:
        raise InvalidParameterError("steps", steps)
    if nterms < 0:
        raise InvalidParameterError("nterms", nterms)

    bs: list[float] = []
    norm = _lanczos_norm(O)
    if norm < LANCZOS_TOLERANCE:
        logger.warning("Lanczos recursion started from a vanishing operator")
        return bs
    previous = Operator(O.n_qubits)
    current = scalar_multiply(O, 1 / norm)
    b = 0.0
    for n in range(steps):
        nxt = subtract(commutator(H, current, maxlength=maxlength), scalar_multiply(previous, b))
        b = _lanczos_norm(nxt)
        if b < LANCZOS_TOLERANCE:
            logger.warning("Lanczos recursion terminated after %d of %d steps", n, steps)
            break
        nxt = trim(scalar_multiply(nxt, 1 / b), nterms, keepnorm=keepnorm)
        bs.append(b)
        previous, current = current, nxt
        logger.debug("lanczos step %d: b=%g, %d terms", n + 1, b, len(current))
    return bs


def evolve(
    H: Hamiltonian,
    O: Operator,  # noqa: E741
    nsteps: int,
    dt: float,
    *,
    t0: float = 0.0,
    hbar: float = 1.0,
    heisenberg: bool = True,
    M: int = DEFAULT_MAX_TERMS,
    noise: float = 0.0,
    keep: Operator | None = None,
    process: Callable[[Operator], complex] | None = None,
    process_every: int = 1,
) -> jnp.ndarray:
    """Time evolve ``O`` with `rk4`, depolarizing noise and trimming at every step.

    Each step is ``rk4 -> add_noise(noise * dt) -> trim(M)``.

    Args:
        H (Operator | Callable[[float], Operator]): The Hamiltonian.
        O (Operator): The initial operator.
        nsteps (int): The number of time steps.
        dt (float): The time step.
        t0 (float): The initial time.
        hbar (float): The reduced Planck constant.
        heisenberg (bool): Evolve an observable in the Heisenberg picture.
        M (int): The number of strings kept after each step.
        noise (float): The depolarizing noise amplitude per unit time.
        keep (Operator): Strings that are never trimmed away.
        process (Callable[[Operator], complex]):
            Recorded before the first step and every ``process_every`` steps.
            Defaults to ``trace_product(O(t), O(0))``.
        process_every (int): The recording period.

    Returns:
        (jnp.ndarray): The recorded values.

    """
    if nsteps < 0:
        raise InvalidParameterError("nsteps", nsteps)
    if process_every < 1:
        raise InvalidParameterError("process_every", process_every, "a positive integer")
    if process is None:
        initial = O.copy()

        def process(o: Operator) -> complex:  # noqa: F811
            return trace_product(o, initial)

    r = [process(O)]
    for step in range(nsteps):
        t = t0 + step * dt
        O = rk4(H, O, dt, t, hbar=hbar, heisenberg=heisenberg, M=M, keep=keep)  # noqa: E741
        if noise:
            O = add_noise(O, noise * dt)  # noqa: E741
        O = trim(O, M, keep=keep)  # noqa: E741
        logger.debug("step %d/%d: t=%g, %d terms", step + 1, nsteps, t + dt, len(O))
        if (step + 1) % process_every == 0:
            r.append(process(O))
    return jnp.array(r)

