"""
Custom exception classes for connection handles.

The registry never raises these itself; they come from handle
implementations and are caught per handle during dispatch.
"""


class ConnectionHandleError(Exception):
    """
    Connection handle operation failed.

    Base class for failures raised by a handle's send or disconnect.
    """

    pass


class ConnectionNotReadyError(ConnectionHandleError):
    """
    Connection is not ready.

    Raised when a send is attempted on a handle that is not open
    (closed, closing or never accepted).
    """

    def __init__(self, key: str):
        super().__init__(f"Connection {key!r} is not ready")
        self.key = key
