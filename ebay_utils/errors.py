"""
ebay_utils/errors.py
--------------------
Exceptions raised while talking to eBay.

Only ConfigurationError is meant to escape the price lookup pipeline;
the rest are caught there and reported as "no data".
"""


class EbayError(Exception):
    """Base class for every eBay integration failure."""


class ConfigurationError(EbayError):
    """Required credentials are missing from the environment."""


class AuthExchangeError(EbayError):
    """The OAuth token endpoint did not hand out a usable token."""


class AuthRejected(EbayError):
    """The search endpoint refused our credentials (401/403)."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(message or f"eBay rejected credentials (HTTP {status})")


class TransportError(EbayError):
    """Network failure, timeout or unexpected HTTP status from eBay."""


class MalformedResponse(EbayError):
    """The response envelope is present but has the wrong shape."""
