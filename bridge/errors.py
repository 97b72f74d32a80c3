"""
Error types raised by the function bridge.

The adapter turns MalformedInvocationError into a client-error reply and
everything else into a server-error reply.
"""


class BridgeError(Exception):
    """Base error for the function bridge."""
    pass


class MalformedInvocationError(BridgeError):
    """The platform handed over an invocation that cannot be translated."""
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class PayloadTooLargeError(MalformedInvocationError):
    """Request body exceeds the configured limit."""
    status_code = 413


class HandlerError(BridgeError):
    """The handler returned something the adapter cannot send back."""
    pass


class ResponseCompletedError(BridgeError):
    """Raised when a finalized response is mutated."""
    pass


class HandlerImportError(BridgeError):
    """The configured handler import string could not be resolved."""
    pass
