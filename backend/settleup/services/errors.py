"""Errors raised by the ledger engine. Routers map them to HTTP responses."""


class LedgerError(Exception):
    """Base class for ledger failures."""


class InvalidInput(LedgerError):
    """Non-positive amount, self-payment, or a user outside the group."""


class ExceedsOutstandingDebt(LedgerError):
    def __init__(self, amount, outstanding):
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(f"Settlement amount {amount} exceeds outstanding debt {outstanding}")


class InternalComputationError(LedgerError):
    """An arithmetic invariant failed. Never expected with valid inputs."""
