# app/domain/errors.py


class ShopError(Exception):
    """Base for every error the services surface to their caller."""


class NotFoundError(ShopError):
    pass


class ConflictError(ShopError):
    """Concurrent conflicting mutation (lost optimistic check, held lock, unique clash)."""


class StorageError(ShopError):
    """Persistence or lock store failure, the transaction was rolled back."""


class InvalidTransitionError(ShopError):
    pass


class AlreadyTerminalError(ShopError):
    pass


class RefundFailedError(ShopError):
    """Payment reversal failed or timed out, order status left unchanged."""


class NotEligibleError(ShopError):
    pass
