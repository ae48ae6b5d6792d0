class ComparisonError(ValueError):
    """Base class for errors raised while comparing coefficients."""


class MissingCoefficientError(ComparisonError, KeyError):
    """Requested coefficient name is not present in the summary."""

    def __init__(self, name, available=None):
        self.name = name
        self.available = list(available) if available is not None else []
        message = f"Coefficient '{name}' not found in model summary"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)

    def __str__(self):
        # KeyError would otherwise repr() the message
        return self.args[0]


class IdenticalCoefficientsError(ComparisonError):
    """Base and comparison coefficient are the same."""


class InvalidStandardErrorError(ComparisonError):
    """A coefficient carries a negative or non-finite standard error."""
