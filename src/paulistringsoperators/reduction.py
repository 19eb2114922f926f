"""Reductions that bound the number of strings of an operator.

Every function returns a new `Operator` and leaves its input untouched. With
``keepnorm=True`` the kept coefficients are rescaled so that the Frobenius norm
equals that of the input.
"""

import jax
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Bool, Complex128, Float64, Int64

from paulistringsoperators.exceptions import InvalidParameterError
from paulistringsoperators.paulioperator import Operator
from paulistringsoperators.paulioperators import weights


@jax.jit
def coefs_ge_threshold(
    coefs: Complex128[Array, " n_terms"],
    threshold: float,
) -> Bool[Array, " n_terms"]:
    return jnp.abs(coefs) >= threshold


@jax.jit
def keep_probabilities(
    coefs: Complex128[Array, " n_terms"],
    alpha: float,
) -> Float64[Array, " n_terms"]:
    return 1.0 - jnp.exp(-alpha * jnp.abs(coefs))


@jax.jit
def decay_coefs(
    coefs: Complex128[Array, " n_terms"],
    weights: Int64[Array, " n_terms"],
    g: float,
) -> Complex128[Array, " n_terms"]:
    return coefs * jnp.exp(-g * weights)


@jax.jit
def rescale_to_norm(
    coefs: Complex128[Array, " n_terms"],
    norm_squared: float,
) -> Complex128[Array, " n_terms"]:
    post = jnp.sum(jnp.abs(coefs) ** 2)
    scale = jnp.where(post > 0, jnp.sqrt(norm_squared / jnp.where(post > 0, post, 1.0)), 1.0)
    return coefs * scale


def string_weights(o: Operator) -> Int64[np.ndarray, " n_terms"]:
    """Weights of the strings of ``o`` in enumeration order."""
    xs, zs, _ = o.packed()
    return weights(xs, zs)


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise InvalidParameterError(name, value)


def _select(
    o: Operator,
    mask: Bool[np.ndarray, " n_terms"],
    *,
    keepnorm: bool,
) -> Operator:
    keys = o.keys()
    coefs = o.coefficients()
    kept = np.flatnonzero(np.asarray(mask))
    new_coefs = coefs[kept]
    if keepnorm and len(kept):
        new_coefs = np.asarray(rescale_to_norm(jnp.asarray(new_coefs), float(np.sum(np.abs(coefs) ** 2))))
    return Operator(o.n_qubits, {keys[i]: c for i, c in zip(kept.tolist(), new_coefs.tolist(), strict=True)})


def truncate(o: Operator, max_length: int, *, keepnorm: bool = False) -> Operator:
    """Remove the strings longer than ``max_length``.

    Args:
        o (Operator): The operator.
        max_length (int): The largest weight that is kept.
        keepnorm (bool): Rescale the result to the norm of ``o``.

    Returns:
        (Operator): The terms of ``o`` acting on at most ``max_length`` qubits.

    Examples:
        >>> # ZZ1Z + XX11 -> XX11
        >>> short = truncate(o, 2)

    """
    _check_non_negative("max_length", max_length)
    if len(o) == 0:
        return Operator(o.n_qubits)
    mask = string_weights(o) <= max_length
    return _select(o, mask, keepnorm=keepnorm)


def cutoff(o: Operator, epsilon: float, *, keepnorm: bool = False) -> Operator:
    """Remove the terms with a coefficient smaller than ``epsilon`` in absolute value."""
    _check_non_negative("epsilon", epsilon)
    if len(o) == 0:
        return Operator(o.n_qubits)
    mask = coefs_ge_threshold(jnp.asarray(o.coefficients()), epsilon)
    return _select(o, mask, keepnorm=keepnorm)


def trim(
    o: Operator,
    n_terms: int,
    *,
    keepnorm: bool = False,
    keep: Operator | None = None,
) -> Operator:
    """Keep the ``n_terms`` terms with the largest coefficients.

    Terms whose string appears in ``keep`` are never removed and do not count
    towards ``n_terms``: at most ``n_terms`` of the other terms are kept in
    addition to them. Terms of equal magnitude keep their enumeration order.

    Args:
        o (Operator): The operator.
        n_terms (int): The number of ranked terms to keep.
        keepnorm (bool): Rescale the result to the norm of ``o``.
        keep (Operator): Strings that survive regardless of their coefficient.

    Returns:
        (Operator): The trimmed operator.

    """
    _check_non_negative("n_terms", n_terms)
    keys = o.keys()
    protected = np.fromiter(
        (keep is not None and key in keep for key in keys),
        dtype=np.bool_,
        count=len(keys),
    )
    mask = protected.copy()
    candidates = np.flatnonzero(~protected)
    if len(candidates) <= n_terms:
        mask[candidates] = True
    else:
        magnitudes = jnp.abs(jnp.asarray(o.coefficients()[candidates]))
        order = np.asarray(jnp.argsort(-magnitudes, stable=True))
        mask[candidates[order[:n_terms]]] = True
    return _select(o, mask, keepnorm=keepnorm)


def prune(
    o: Operator,
    alpha: float,
    key: Array,
    *,
    keepnorm: bool = False,
) -> Operator:
    """Keep every term independently with probability ``1 - exp(-alpha * |c|)``.

    Args:
        o (Operator): The operator.
        alpha (float): Larger values keep more terms.
        key (Array): A `jax.random` key; the same key gives the same result.
        keepnorm (bool): Rescale the result to the norm of ``o``.

    Returns:
        (Operator): The pruned operator.

    """
    _check_non_negative("alpha", alpha)
    if len(o) == 0:
        return Operator(o.n_qubits)
    probabilities = keep_probabilities(jnp.asarray(o.coefficients()), alpha)
    draws = jax.random.uniform(key, shape=(len(o),), dtype=jnp.float64)
    return _select(o, draws < probabilities, keepnorm=keepnorm)


def add_noise(o: Operator, g: float) -> Operator:
    """Depolarizing noise: every coefficient decays like ``exp(-g * weight)``.

    Usually followed by `trim` to drop the strings that became small.
    """
    _check_non_negative("g", g)
    if len(o) == 0:
        return Operator(o.n_qubits)
    coefs = np.asarray(decay_coefs(jnp.asarray(o.coefficients()), jnp.asarray(string_weights(o)), g))
    return Operator(o.n_qubits, dict(zip(o.keys(), coefs.tolist(), strict=True)))
