from __future__ import annotations


class DimensionMismatch(ValueError):
    """A tensor handed to a layer does not have the shape the layer expects."""

    def __init__(self, name: str, expected, actual) -> None:
        self.name = name
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(f"{name}: expected shape {self.expected}, got {self.actual}")


class UnpreparedStateError(RuntimeError):
    """backward was called without a matching forward."""
