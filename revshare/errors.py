from __future__ import annotations


class RevshareError(Exception):
    """Base class for pipeline errors. `status_code` is the HTTP status the API returns."""

    status_code = 500


class ValidationError(RevshareError):
    """Malformed or out-of-order input, rejected before any I/O."""

    status_code = 400


class NotFoundError(RevshareError):
    status_code = 404


class ConflictError(RevshareError):
    """Duplicate claim or a record that already left the expected state."""

    status_code = 409


class UpstreamError(RevshareError):
    """External fee API or Solana network failure. Safe to retry the whole stage."""

    status_code = 502


class CriticalInconsistency(RevshareError):
    """
    Funds moved (or may have moved) on-chain but the ledger could not record it.
    The payout is left in `processing` and must be reconciled by hand, never retried.
    """

    status_code = 500


class TransferNotSubmitted(UpstreamError):
    """The transfer failed before anything reached the network. The claim may be retried."""


class TransferOutcomeUnknown(RevshareError):
    """The transfer may have been submitted but its result was not observed."""

    def __init__(self, message: str, signature: str = "") -> None:
        super().__init__(message)
        self.signature = signature
