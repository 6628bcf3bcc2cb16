from __future__ import annotations


class CensusQuoteError(Exception):
    """Base class for failures raised while handling a census request."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def describe(self) -> str:
        if self.stage:
            return f"{self.stage} failed: {self.message}"
        return self.message


class ParseError(CensusQuoteError):
    """Raised when the census source is blank or malformed."""


class EmptyInputError(CensusQuoteError):
    """Raised when no rows reach the quote engine."""


class RecordStoreError(CensusQuoteError):
    """Raised when the record store rejects a create or commit."""


class CommitError(CensusQuoteError):
    """Raised when committing one batch of census lines fails."""

    def __init__(self, batch_index: int, cause: BaseException, *, stage: str | None = "committing") -> None:
        super().__init__(f"batch {batch_index} could not be committed: {cause}", stage=stage)
        self.batch_index = batch_index
        self.cause = cause


class AdapterError(CensusQuoteError):
    """Raised when rendering, uploading or messaging fails."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__, stage=stage)
        self.cause = cause
