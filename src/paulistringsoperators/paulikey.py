from dataclasses import dataclass
from typing import Self

from paulistringsoperators.exceptions import InvalidParameterError


@dataclass(frozen=True, slots=True)
class PauliKey:
    """Symplectic encoding of an N-qubit Pauli string.

    Bit ``i - 1`` of ``x`` and ``z`` describes site ``i``:
    ``(0, 0)`` is the identity, ``(1, 0)`` is X, ``(0, 1)`` is Z and ``(1, 1)`` is Y.
    A key always stands for the Hermitian string, i.e. ``i^{|x & z|} X^x Z^z``.

    Args:
        x (int): The X-presence bitmask.
        z (int): The Z-presence bitmask.

    Examples:
        >>> key = PauliKey(x=0b011, z=0b110)  # X on site 1, Y on site 2, Z on site 3
        >>> key.weight()
        3

    """

    x: int
    z: int

    def __post_init__(self) -> None:
        if self.x < 0:
            raise InvalidParameterError("x", self.x, "a non-negative bit mask")
        if self.z < 0:
            raise InvalidParameterError("z", self.z, "a non-negative bit mask")

    @classmethod
    def identity(cls) -> Self:
        return cls(0, 0)

    def support(self) -> int:
        """Bitmask of the sites on which the string acts non-trivially."""
        return self.x | self.z

    def weight(self) -> int:
        """Number of non-identity sites."""
        return (self.x | self.z).bit_count()

    def n_y(self) -> int:
        """Number of Y factors in the string."""
        return (self.x & self.z).bit_count()

    def is_identity(self) -> bool:
        return not (self.x or self.z)

    def width(self) -> int:
        """Smallest number of qubits the key fits in."""
        return (self.x | self.z).bit_length()
