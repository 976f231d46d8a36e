"""
Statement extraction collaborator.

The model call itself (prompting, transport, model selection) happens
behind this interface. What comes back is raw JSON-ish data; it is turned
into ledger drafts by `neobudget.ingestion.extraction`.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Sequence


class ExtractionFailure(str, Enum):
    UPSTREAM_FAILURE = "upstream_failure"
    UNPARSABLE_RESPONSE = "unparsable_response"
    FILE_TOO_LARGE = "file_too_large"


class ExtractionError(Exception):
    """Extraction of one file failed."""

    def __init__(self, reason: ExtractionFailure, message: str):
        self.reason = reason
        super().__init__(message)


class StatementExtractor(ABC):
    """Abstract interface for AI-assisted statement extraction."""

    @abstractmethod
    async def extract_transactions(
        self,
        file_bytes: bytes,
        mime_type: str,
        category_hints: Sequence[str],
        model_hint: Optional[str] = None,
    ) -> Any:
        """
        Extract transactions from one statement file.

        Returns:
            The extractor's raw output: an object with a `transactions`
            array, a bare array, or a JSON string of either

        Raises:
            ExtractionError: upstream failure or unusable response
        """
        pass
