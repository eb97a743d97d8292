class DomainError(ValueError):
    """Base for errors a caller can act on. Maps to a 4xx response."""

    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class AuthenticationError(DomainError):
    status_code = 401


class DuplicateAccountError(DomainError):
    status_code = 409


class InsufficientFundsError(DomainError):
    status_code = 400


class DepositPendingError(DomainError):
    status_code = 409


class OutOfStockError(DomainError):
    status_code = 409


class RefundNotAllowedError(DomainError):
    status_code = 400


class ConfirmationExpiredError(DomainError):
    status_code = 410


class PaymentVerificationError(DomainError):
    status_code = 400


class ProviderError(Exception):
    """An outbound provider call failed. Never treated as a confirmation."""
