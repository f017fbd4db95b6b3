"""
Jarvis - Error Types
=====================
Every failure raised by Jarvis code derives from ``JarvisError`` so the
HTTP layer can catch one family at its boundary.  The real cause is
always chained (``raise ... from exc``) and logged server-side; clients
only ever see a generic message.
"""


class JarvisError(Exception):
    """Base class for all Jarvis failures."""


class ValidationError(JarvisError):
    """The request body is missing, malformed, or has no usable message."""


class UpstreamError(JarvisError):
    """The embedding / completion provider failed or returned a bad payload."""


class StorageError(JarvisError):
    """A MongoDB connection, query, or write failed."""
