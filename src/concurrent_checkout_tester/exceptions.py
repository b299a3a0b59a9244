"""Custom exceptions for the concurrent checkout tester.

This module defines the exception hierarchy used to signal the failure modes
of a concurrent checkout run and of test-order cleanup.

Per-request errors (NetworkError, RequestTimeoutError, ParseError) are raised
at the HTTP seam and captured into that request's outcome by the orchestrator.
They never escape a run. Administrative errors (PermissionDeniedError) abort a
single administrative call. PartialDeletionError is absorbed by the batch
delete and only lowers the reported count.

Examples:
    Translating a transport failure::

        from concurrent_checkout_tester.exceptions import NetworkError

        try:
            response = await client.send(request)
        except httpx.TransportError as e:
            raise NetworkError(f"Network error: {type(e).__name__}", cause=e) from e

    Handling an unauthorized administrative call::

        from concurrent_checkout_tester.exceptions import PermissionDeniedError

        try:
            ids = await manager.list_tagged(caller)
        except PermissionDeniedError as e:
            return {"success": False, "error": e.message}
"""


class CheckoutTesterError(Exception):
    """Base exception for all concurrent checkout tester errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class NetworkError(CheckoutTesterError):
    """The checkout endpoint was unreachable or the connection failed.

    Attributes:
        message: Human-readable error description.
        cause: The underlying transport exception, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RequestTimeoutError(CheckoutTesterError):
    """A single request exceeded its deadline.

    Only the request that timed out is affected. Sibling requests in the same
    run keep their own deadlines.

    Attributes:
        message: Human-readable error description.
        timeout_seconds: The deadline that was exceeded.
    """

    def __init__(self, message: str, timeout_seconds: float) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


class ParseError(CheckoutTesterError):
    """The response did not match any recognized shape.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code of the unrecognized response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermissionDeniedError(CheckoutTesterError):
    """An administrative call was made by a caller without operator rights.

    Raised before any state is read or mutated.

    Attributes:
        message: Human-readable error description.
        user_id: Identifier of the rejected caller.
    """

    def __init__(self, message: str, user_id: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id


class PartialDeletionError(CheckoutTesterError):
    """One test order among a batch could not be deleted.

    Attributes:
        message: Human-readable error description.
        order_id: The order that failed to delete.
    """

    def __init__(self, message: str, order_id: int) -> None:
        super().__init__(message)
        self.order_id = order_id


class StorageError(CheckoutTesterError):
    """The host order store failed an operation.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the storage error.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
