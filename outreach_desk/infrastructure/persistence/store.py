"""
Prospect Store - Interface and In-Memory Implementation
========================================================

ProspectStore is the contract the use cases depend on. Two backends:

- InMemoryProspectStore: arena of records keyed by surrogate id, with a
  secondary unique index on external key. Lost on restart.
- SqliteProspectStore (database.py): same contract on a sqlite file.

Every store recomputes the message on create and content update, and
returns copies so callers never hold a live reference to stored state.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from ...domain import (
    BulkImportResult,
    DuplicateKeyError,
    NotFoundError,
    Prospect,
    ProspectRow,
    ProspectStatus,
    ValidationError,
    render_message,
)

logger = logging.getLogger(__name__)

Templater = Callable[[str, str], str]


def new_external_key() -> str:
    """Fresh globally-unique key for rows that arrive without one."""
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class ProspectStore(ABC):
    """
    Abstract prospect store.

    Usage:
        store = InMemoryProspectStore()
        p = store.create(name="Ann", category="Acne", phone_number="111")
        store.update_status(p.id, "sent")
    """

    def __init__(self, templater: Templater = render_message):
        self._templater = templater

    # ── Reads ──────────────────────────────────────────────────────

    @abstractmethod
    def get_all(self) -> List[Prospect]:
        """All prospects in creation order."""
        ...

    @abstractmethod
    def get(self, prospect_id: int) -> Optional[Prospect]:
        ...

    @abstractmethod
    def get_by_external_key(self, external_key: str) -> Optional[Prospect]:
        ...

    def get_by_phone_number(self, phone_number: str) -> Optional[Prospect]:
        """First prospect with this phone number. Not an identity lookup."""
        phone_number = (phone_number or "").strip()
        for prospect in self.get_all():
            if prospect.phone_number == phone_number:
                return prospect
        return None

    def get_pending(self) -> List[Prospect]:
        return [p for p in self.get_all() if p.is_pending]

    # ── Writes ─────────────────────────────────────────────────────

    @abstractmethod
    def create(
        self,
        name: str,
        category: str,
        phone_number: str,
        external_key: Optional[str] = None,
    ) -> Prospect:
        ...

    @abstractmethod
    def update_content(self, prospect_id: int, name: str, category: str, phone_number: str) -> Prospect:
        ...

    @abstractmethod
    def update_status(self, prospect_id: int, status: str) -> Prospect:
        ...

    @abstractmethod
    def delete(self, prospect_id: int) -> bool:
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove everything and restart the id sequence."""
        ...

    def create_many(self, rows: Iterable[ProspectRow]) -> BulkImportResult:
        """
        Create one prospect per row.

        Rows whose external key is already taken are skipped; rows that
        fail validation are reported in errors. No row aborts the batch.
        """
        result = BulkImportResult()

        for row in rows:
            row = row.normalized()
            try:
                self.create(row.name, row.category, row.phone_number, row.external_key)
                result.added += 1
            except DuplicateKeyError:
                result.skipped += 1
            except ValidationError as e:
                result.errors.append(f"{row.name or 'Unknown'}: {e}")

        logger.info(f"Bulk import: {result.added} added, {result.skipped} skipped, {len(result.errors)} errors")
        return result

    def get_stats(self) -> dict:
        """Counts for the dashboard cards."""
        prospects = self.get_all()
        sent = sum(1 for p in prospects if p.status == ProspectStatus.SENT.value)
        failed = sum(1 for p in prospects if p.status == ProspectStatus.FAILED.value)
        pending = sum(1 for p in prospects if p.status == ProspectStatus.PENDING.value)
        attempted = sent + failed

        return {
            "total": len(prospects),
            "sent": sent,
            "pending": pending,
            "failed": failed,
            "success_rate": round(sent / attempted * 100, 1) if attempted > 0 else 0,
        }

    # ── Helpers ────────────────────────────────────────────────────

    @staticmethod
    def _validate_content(name: str, phone_number: str) -> None:
        if not name or not name.strip():
            raise ValidationError("Prospect name is required")
        if not phone_number or not phone_number.strip():
            raise ValidationError("Prospect phone number is required")

    @staticmethod
    def _validate_status(status: str) -> str:
        if isinstance(status, ProspectStatus):
            return status.value
        if status not in ProspectStatus.values():
            raise ValidationError(
                f"Invalid status '{status}'. Use one of: {', '.join(ProspectStatus.values())}"
            )
        return status


class InMemoryProspectStore(ProspectStore):
    """Dict-backed store. Insertion order of the dict is creation order."""

    def __init__(self, templater: Templater = render_message):
        super().__init__(templater)
        self._records: Dict[int, Prospect] = {}
        self._by_key: Dict[str, int] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def get_all(self) -> List[Prospect]:
        with self._lock:
            return [replace(p) for p in self._records.values()]

    def get(self, prospect_id: int) -> Optional[Prospect]:
        with self._lock:
            prospect = self._records.get(prospect_id)
            return replace(prospect) if prospect else None

    def get_by_external_key(self, external_key: str) -> Optional[Prospect]:
        with self._lock:
            prospect_id = self._by_key.get(external_key)
            return self.get(prospect_id) if prospect_id is not None else None

    def create(self, name, category, phone_number, external_key=None) -> Prospect:
        self._validate_content(name, phone_number)
        category = category or ""

        with self._lock:
            key = external_key or new_external_key()
            if key in self._by_key:
                raise DuplicateKeyError(key)

            prospect = Prospect(
                id=self._next_id,
                external_key=key,
                name=name,
                category=category,
                phone_number=phone_number,
                message=self._templater(name, category),
                status=ProspectStatus.PENDING.value,
                created_at=_now(),
            )
            self._next_id += 1
            self._records[prospect.id] = prospect
            self._by_key[key] = prospect.id
            return replace(prospect)

    def update_content(self, prospect_id, name, category, phone_number) -> Prospect:
        with self._lock:
            existing = self._records.get(prospect_id)
            if existing is None:
                raise NotFoundError(f"Prospect {prospect_id} not found")

            self._validate_content(name, phone_number)
            category = category or ""

            updated = replace(
                existing,
                name=name,
                category=category,
                phone_number=phone_number,
                message=self._templater(name, category),
            )
            self._records[prospect_id] = updated
            return replace(updated)

    def update_status(self, prospect_id, status) -> Prospect:
        with self._lock:
            existing = self._records.get(prospect_id)
            if existing is None:
                raise NotFoundError(f"Prospect {prospect_id} not found")

            status = self._validate_status(status)

            updated = replace(existing, status=status)
            self._records[prospect_id] = updated
            return replace(updated)

    def delete(self, prospect_id) -> bool:
        with self._lock:
            prospect = self._records.pop(prospect_id, None)
            if prospect is None:
                return False
            self._by_key.pop(prospect.external_key, None)
            return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._by_key.clear()
            self._next_id = 1
