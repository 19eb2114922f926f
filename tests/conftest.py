import jax
import pytest

from paulistringsoperators import Operator, add_string, random_operator


@pytest.fixture
def prng_key() -> jax.Array:
    return jax.random.PRNGKey(1234)


@pytest.fixture
def random_operators(prng_key: jax.Array) -> list[Operator]:
    keys = jax.random.split(prng_key, 3)
    return [random_operator(n_qubits=3, n_terms=12, key=k) for k in keys]


@pytest.fixture
def xyz_operator() -> Operator:
    """X111 + XYZ1 on 4 qubits."""
    o = Operator(4)
    add_string(o, "X111")
    add_string(o, "XYZ1")
    return o
