import jax
import numpy as np
from jaxtyping import Array

from paulistringsoperators.exceptions import InvalidParameterError
from paulistringsoperators.paulikey import PauliKey
from paulistringsoperators.paulioperator import Operator, compress
from paulistringsoperators.strings import add_sites

SYMBOLS = ("X", "Y", "Z")


def rand_local1(n_qubits: int, key: Array) -> Operator:
    """Random 1-local operator: every single-site X, Y and Z with a uniform coefficient in [0, 1)."""
    coefs = np.asarray(jax.random.uniform(key, shape=(n_qubits, len(SYMBOLS))))
    o = Operator(n_qubits)
    for i in range(n_qubits):
        for k, symbol in enumerate(SYMBOLS):
            add_sites(o, [(symbol, i + 1)], float(coefs[i, k]))
    return compress(o)


def rand_local2(n_qubits: int, key: Array) -> Operator:
    """Random 2-local operator: every two-site product of X, Y and Z with a uniform coefficient in [0, 1)."""
    coefs = np.asarray(jax.random.uniform(key, shape=(n_qubits, n_qubits, len(SYMBOLS), len(SYMBOLS))))
    o = Operator(n_qubits)
    for i in range(n_qubits):
        for j in range(i + 1, n_qubits):
            for k, s1 in enumerate(SYMBOLS):
                for l, s2 in enumerate(SYMBOLS):  # noqa: E741
                    add_sites(o, [(s1, i + 1), (s2, j + 1)], float(coefs[i, j, k, l]))
    return compress(o)


def random_operator(n_qubits: int, n_terms: int, key: Array) -> Operator:
    """Random operator with up to ``n_terms`` strings and complex normal coefficients.

    Strings drawn more than once are merged, so the result can be shorter.
    """
    if n_terms < 0:
        raise InvalidParameterError("n_terms", n_terms)
    key_bits, key_re, key_im = jax.random.split(key, 3)
    bits = np.asarray(jax.random.bernoulli(key_bits, shape=(n_terms, 2, n_qubits)))
    coefs = np.asarray(jax.random.normal(key_re, shape=(n_terms,))) + 1j * np.asarray(
        jax.random.normal(key_im, shape=(n_terms,))
    )
    o = Operator(n_qubits)
    for t in range(n_terms):
        x = sum(1 << i for i in np.flatnonzero(bits[t, 0]).tolist())
        z = sum(1 << i for i in np.flatnonzero(bits[t, 1]).tolist())
        o.insert(PauliKey(x, z), complex(coefs[t]))
    return compress(o)
