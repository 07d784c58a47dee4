"""
Exceptions raised by the food delivery analytics pipeline.
"""

class AnalyticsError(Exception):
    """Base class for pipeline errors."""

class ConfigurationError(AnalyticsError, ValueError):
    """Raised for invalid report parameters or pipeline settings."""

class DataIntegrityError(AnalyticsError):
    """
    Raised (or collected) when records reference rows that do not exist.

    Carries the relationship that was broken, how many rows were skipped
    because of it and a few example values.
    """

    def __init__(self, relationship, skipped_rows, examples=None):
        self.relationship = relationship
        self.skipped_rows = skipped_rows
        self.examples = list(examples or [])
        super().__init__(
            f"{skipped_rows} rows skipped: {relationship} has no match "
            f"(examples: {self.examples})"
        )
