"""Enrichment error types."""


class EnrichmentError(Exception):
    """Raised when the LLM endpoint cannot produce an analysis.

    Attributes:
        stage: Where the failure happened ("transport" or "empty_response").
    """

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"Enrichment failed at stage '{stage}': {message}")
