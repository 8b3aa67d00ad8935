"""Errors raised at the edges of the matching pipeline."""


class CatalogLoadError(Exception):
    """The requirement catalog could not be loaded. Fatal at startup."""


class InvalidProfileError(ValueError):
    """A business profile failed boundary validation."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message
