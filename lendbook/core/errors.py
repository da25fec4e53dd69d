"""Ledger error taxonomy.

Every failure path in the ledger raises one of these. The HTTP layer maps
them to status codes in ``lendbook.main``.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""


class ValidationFailure(LedgerError):
    """Malformed or missing input. No mutation was applied."""


class NotFound(LedgerError):
    """The referenced record does not exist."""


class Unauthorized(LedgerError):
    """The caller holds neither role required for the operation."""


class StoreUnavailable(LedgerError):
    """Transient persistence fault. Retrying the whole operation is safe."""


class WriteConflict(StoreUnavailable):
    """A record kept changing underneath a read-modify-write sequence."""
