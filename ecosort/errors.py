"""Exception taxonomy for source verification.

Transport failures and content findings are not exceptions: they are
recorded on SourceValidationResult. Only caller mistakes and storage
failures raise.
"""


class EcosortError(Exception):
    """Base class for package errors."""


class InvalidSourceRequest(EcosortError, ValueError):
    """Malformed input rejected at the orchestrator boundary."""


class StoreError(EcosortError):
    """A database operation in the source cache store failed."""
