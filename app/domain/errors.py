# app/domain/errors.py


class OrderingError(Exception):
    """Base class for cart and order errors surfaced to callers."""

    status_code = 500


class InvalidRequest(OrderingError):
    status_code = 400


class NotFound(OrderingError):
    status_code = 404


class EmptyCart(OrderingError):
    status_code = 400

    def __init__(self, owner_id: int) -> None:
        super().__init__(f"Cart for user {owner_id} is empty")
        self.owner_id = owner_id


class InvalidState(OrderingError):
    status_code = 409


class InvalidStatus(OrderingError):
    status_code = 400

    def __init__(self, status: object) -> None:
        super().__init__(f"Invalid order status: {status!r}")
        self.status = status


class PlacementFailed(OrderingError):
    """The order could not be written to the ledger; the cart is untouched."""

    status_code = 502


class StorageUnavailable(OrderingError):
    """A backing store is temporarily unreachable; the call may be retried."""

    status_code = 503
