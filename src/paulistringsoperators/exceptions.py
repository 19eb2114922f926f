class QubitIndexError(IndexError):
    """Raised when a qubit index lies outside the system."""

    def __init__(self, site: int, n: int) -> None:
        super().__init__(f"Qubit index {site} is out of range [1, {n}]")


class SystemSizeError(ValueError):
    """Raised when operators or strings of different system sizes are combined."""

    def __init__(self, n1: int, n2: int) -> None:
        super().__init__(
            f"Mismatch between system size {n1} and {n2}.",
        )


class InvalidParameterError(ValueError):
    """Raised when a reduction or evolution parameter is invalid."""

    def __init__(self, name: str, value: object, expected: str = "a non-negative value") -> None:
        super().__init__(f"Invalid {name}={value!r}: expected {expected}")


class InvalidSymbolError(ValueError):
    """Raised when an unknown single-qubit symbol is used."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Invalid site operator: {symbol}")
