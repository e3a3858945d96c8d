"""Caller-visible service errors. Mapped to HTTP responses by the handlers in main.py."""


class ValidationFailed(Exception):
    """Missing or malformed input. Raised before any write happens."""

    status_code = 400


class NotFound(Exception):
    """A referenced log, category or (log, work center) pair does not exist."""

    status_code = 404
