"""
Prospect Model
==============

A Prospect is one person on the outreach list. Identity across imports is
the external key only; the numeric id is a process-local surrogate.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional


class ProspectStatus(Enum):
    """Message delivery status for a prospect."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


@dataclass
class Prospect:
    """Prospect record held by the store."""
    id: int
    external_key: str
    name: str
    category: str
    phone_number: str
    message: str
    status: str = ProspectStatus.PENDING.value
    created_at: str = ""

    @property
    def is_pending(self) -> bool:
        return self.status == ProspectStatus.PENDING.value

    def content(self) -> tuple:
        """Fields that come from the external source."""
        return (self.name, self.category, self.phone_number)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProspectRow:
    """One row as delivered by a spreadsheet source or file upload."""
    name: str
    category: str
    phone_number: str
    external_key: Optional[str] = None

    def normalized(self) -> "ProspectRow":
        """Copy with surrounding whitespace removed and blank keys dropped."""
        key = (self.external_key or "").strip()
        return ProspectRow(
            name=(self.name or "").strip(),
            category=(self.category or "").strip(),
            phone_number=(self.phone_number or "").strip(),
            external_key=key or None,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.category and self.phone_number)

    def content(self) -> tuple:
        return (self.name, self.category, self.phone_number)


@dataclass
class BulkImportResult:
    """Outcome of a bulk import: nothing is aborted by a single bad row."""
    added: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
