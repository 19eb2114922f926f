r"""Products and commutation of single Pauli keys.

Keys are Hermitian Pauli strings ``P(x, z) = i^{|x & z|} X^x Z^z``. Moving the
``X^{x2}`` of the right factor through ``Z^{z1}`` costs ``(-1)^{|z1 & x2|}``, so

$$
    P(x_1, z_1) P(x_2, z_2) = i^{e} P(x_1 \oplus x_2, z_1 \oplus z_2), \quad
    e = |x_1 z_1| + |x_2 z_2| + 2 |z_1 x_2| - |x_3 z_3| \pmod 4.
$$
"""

from paulistringsoperators.paulikey import PauliKey

PHASES: tuple[complex, ...] = (1 + 0j, 1j, -1 + 0j, -1j)


def phase_exponent(key: PauliKey, other: PauliKey) -> int:
    """Exponent ``e`` in ``key * other = i^e * (key xor other)``."""
    x = key.x ^ other.x
    z = key.z ^ other.z
    e = (
        (key.x & key.z).bit_count()
        + (other.x & other.z).bit_count()
        + 2 * (key.z & other.x).bit_count()
        - (x & z).bit_count()
    )
    return e & 3


def multiply(key: PauliKey, other: PauliKey) -> tuple[PauliKey, complex]:
    """Multiply two Pauli keys.

    Args:
        key (PauliKey): The left factor.
        other (PauliKey): The right factor.

    Returns:
        (tuple[PauliKey, complex]): The product key and its phase, one of ``1, i, -1, -i``.

    Examples:
        >>> key, phase = multiply(PauliKey(1, 0), PauliKey(0, 1))  # X Z = -i Y
        >>> key
        PauliKey(x=1, z=1)

    """
    product = PauliKey(key.x ^ other.x, key.z ^ other.z)
    return product, PHASES[phase_exponent(key, other)]


def anticommutes(key: PauliKey, other: PauliKey) -> bool:
    """Whether two strings anticommute, without forming their product."""
    return bool(((key.x & other.z).bit_count() + (key.z & other.x).bit_count()) & 1)


def commutes(key: PauliKey, other: PauliKey) -> bool:
    return not anticommutes(key, other)
