"""
Exceptions raised inside the LSP transport.

None of these cross the public LSPClient interface: the client turns them
into log events and a session stop.
"""


class LSPLinkError(Exception):
    """Base exception for transport errors"""

    pass


class FramingError(LSPLinkError):
    """Raised when a message cannot be serialized for the wire"""

    pass


class ProcessStartError(LSPLinkError):
    """Raised when the server process cannot be spawned or does not start in time"""

    pass


class ProcessIOError(LSPLinkError):
    """Raised when writing to the server's stdin fails"""

    pass
