# Domain Layer
# ============
# Pure business objects with no external dependencies:
# - prospect: Prospect record, incoming ProspectRow, ProspectStatus
# - templater: outgoing message text derived from prospect fields
# - errors: error taxonomy shared by every layer

from .errors import (
    OutreachError,
    ValidationError,
    DuplicateKeyError,
    NotFoundError,
    NotConnectedError,
    ExternalSourceError,
)
from .prospect import Prospect, ProspectRow, ProspectStatus, BulkImportResult
from .templater import MESSAGE_TEMPLATE, render_message

__all__ = [
    "OutreachError",
    "ValidationError",
    "DuplicateKeyError",
    "NotFoundError",
    "NotConnectedError",
    "ExternalSourceError",
    "Prospect",
    "ProspectRow",
    "ProspectStatus",
    "BulkImportResult",
    "MESSAGE_TEMPLATE",
    "render_message",
]
