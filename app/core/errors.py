"""
Relay Errors - Domain exception hierarchy

Fatal errors (configuration, upstream fetch) abort a cycle and are rendered
by the global exception handlers. StoreError is always recovered locally.
"""

from typing import Optional


class MailRelayError(Exception):
    """Base class for relay errors that surface to the caller"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(MailRelayError):
    """Required configuration is missing (e.g. WORKER_URL)"""


class MailboxFetchError(MailRelayError):
    """Mailbox API returned a non-success response"""

    def __init__(self, status_code: int):
        super().__init__(f"Mail API returned {status_code}", status_code=status_code)


class StoreError(Exception):
    """Key-value store read or write failed"""
