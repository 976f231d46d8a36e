"""Statement extraction collaborator interface."""

from neobudget.services.extraction.interface import (
    ExtractionError,
    ExtractionFailure,
    StatementExtractor,
)

__all__ = [
    "ExtractionError",
    "ExtractionFailure",
    "StatementExtractor",
]
