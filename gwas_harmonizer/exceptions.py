"""
Custom exceptions for the harmonization pipeline.
Every error is fatal for the run; none is recovered locally.
"""


class HarmonizerError(Exception):
    """Base exception for harmonization errors."""
    pass


class SchemaError(HarmonizerError):
    """Raised when a required column is absent from a table."""

    def __init__(self, column: str, stage: str | None = None) -> None:
        self.column = column
        self.stage = stage
        where = f" during {stage}" if stage else ""
        super().__init__(f"Required column '{column}' not found{where}")


class NumericParseError(HarmonizerError):
    """Raised when a field expected to be numeric is not."""
    pass


class ExternalToolError(HarmonizerError):
    """Raised when an external tool (samtools, liftOver) fails or cannot start."""
    pass


class DataShapeError(HarmonizerError):
    """Raised when row and column counts disagree after a structural edit."""
    pass


class LegendError(HarmonizerError):
    """Raised when the formatting legend is missing, ambiguous or incomplete."""
    pass


class ConfigurationError(HarmonizerError):
    """Raised when there are configuration issues (paths, env vars, etc.)."""
    pass
