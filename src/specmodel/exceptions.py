"""Construction-time errors raised by the specification model."""


class SpecModelError(Exception):
    """Base class for errors raised while building model objects."""
    pass


class InvalidCardinalityError(SpecModelError, ValueError):
    """Raised when a cardinality range is malformed."""

    def __init__(self, min_value, max_value):
        self.min = min_value
        self.max = max_value
        super().__init__(f"Invalid cardinality {min_value}..{'*' if max_value is None else max_value}")


class UnknownPrimitiveError(SpecModelError, KeyError):
    """Raised when a primitive name is outside the closed primitive set."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown primitive '{name}'")

    def __str__(self) -> str:
        return self.args[0]


class BuilderError(SpecModelError):
    """Raised when a data element draft cannot be frozen."""
    pass
