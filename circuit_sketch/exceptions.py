class FilterConstructionError(ValueError):
    """A filter rejected its parameters and could not be built."""


class NormalizationFailure(RuntimeError):
    """The final pixel buffer of a normalization could not be produced."""
