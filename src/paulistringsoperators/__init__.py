"""Many-body operators as sums of Pauli strings encoded as integers.

This package provides a sparse operator algebra over N-qubit Pauli strings, the
reductions that keep it tractable (truncate, cutoff, trim, prune, noise) and the
time evolution primitives built on top of it (commutator, RK4, Lanczos).
"""

import jax

jax.config.update("jax_enable_x64", True)  # noqa: FBT003

from paulistringsoperators.evolution import commutator, evolve, lanczos, rk4  # noqa: E402
from paulistringsoperators.exceptions import (  # noqa: E402
    InvalidParameterError,
    InvalidSymbolError,
    QubitIndexError,
    SystemSizeError,
)
from paulistringsoperators.paulikey import PauliKey  # noqa: E402
from paulistringsoperators.paulioperator import (  # noqa: E402
    NEGLIGIBLE,
    Operator,
    add,
    add_scalar,
    allclose,
    compress,
    dagger,
    eye,
    multiply,
    op_to_keys,
    opnorm,
    partial_trace,
    scalar_multiply,
    subtract,
    trace,
    trace_product,
)
from paulistringsoperators.random_operators import rand_local1, rand_local2, random_operator  # noqa: E402
from paulistringsoperators.reduction import add_noise, cutoff, prune, trim, truncate  # noqa: E402
from paulistringsoperators.strings import (  # noqa: E402
    add_sites,
    add_string,
    format_operator,
    key_from_string,
    op_to_strings,
    operator_from_strings,
    string_from_key,
)

__version__ = "0.1.0"

__all__ = [
    "NEGLIGIBLE",
    "InvalidParameterError",
    "InvalidSymbolError",
    "Operator",
    "PauliKey",
    "QubitIndexError",
    "SystemSizeError",
    "add",
    "add_noise",
    "add_scalar",
    "add_sites",
    "add_string",
    "allclose",
    "commutator",
    "compress",
    "cutoff",
    "dagger",
    "evolve",
    "eye",
    "format_operator",
    "key_from_string",
    "lanczos",
    "multiply",
    "op_to_keys",
    "op_to_strings",
    "operator_from_strings",
    "opnorm",
    "partial_trace",
    "prune",
    "rand_local1",
    "rand_local2",
    "random_operator",
    "rk4",
    "scalar_multiply",
    "string_from_key",
    "subtract",
    "trace",
    "trace_product",
    "trim",
    "truncate",
]
