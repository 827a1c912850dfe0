from __future__ import annotations


class InvalidInputException(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)


def check_only_one_specified(**kwargs) -> None:
    """Check that exactly one of `kwargs` is not None. If not, raise an exception."""
    n_specified = sum((0 if x is None else 1) for x in kwargs.values())
    if n_specified != 1:
        names = ", ".join(kwargs.keys())
        raise InvalidInputException(f"Exactly one of {names} must be specified")


class ShapeMismatchException(InvalidInputException):
    def __init__(self, name: str, expected: tuple, got: tuple) -> None:
        super().__init__(f"Shape mismatch for {name}: expected {expected}, got {got}")


class AliasingException(InvalidInputException):
    def __init__(self, name: str, transform: str) -> None:
        super().__init__(
            f"Output may not share memory with {name} under transform '{transform}'"
        )
