"""
Error Taxonomy
==============

Every failure the use cases can surface maps to one of these classes.
The web layer translates them into HTTP status codes:

    ValidationError      -> 400
    NotFoundError        -> 404
    ExternalSourceError  -> 502
    NotConnectedError    -> 503

A failed send to a single prospect is NOT an error: it is recorded as
status "failed" and counted in the dispatch result.
"""


class OutreachError(Exception):
    """Base exception for all outreach desk errors."""
    pass


class ValidationError(OutreachError):
    """Malformed input: empty required field, unknown status value."""
    pass


class DuplicateKeyError(ValidationError):
    """Another prospect already holds this external key."""

    def __init__(self, external_key: str):
        super().__init__(f"External key already in use: {external_key}")
        self.external_key = external_key


class NotFoundError(OutreachError):
    """Referenced prospect id / external key / phone does not exist."""
    pass


class NotConnectedError(OutreachError):
    """Messaging provider is not ready to send."""
    pass


class ExternalSourceError(OutreachError):
    """Spreadsheet fetch failed; the reconciliation pass is aborted."""
    pass
