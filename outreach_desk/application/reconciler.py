"""
Reconciler - Keep the Prospect Store in Line with the Spreadsheet
==================================================================

One pass compares an incoming batch of rows against the store and
classifies each row as create / update / unchanged, then deletes every
stored prospect the batch no longer mentions.

RULES:
- Identity is the external key only. A keyless row is always a create,
  even if its phone or name matches an existing prospect.
- Messaging status is never touched. A content update keeps "sent" as "sent".
- The whole batch is classified before the first store write, so a bad
  batch or a failing source leaves the store as it was.
- Running the same batch twice changes nothing the second time.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..domain import Prospect, ProspectRow
from ..infrastructure.persistence import ProspectStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""
    prospects: List[Prospect] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    skipped: int = 0
    duplicates: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    def counts(self) -> dict:
        return {
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
        }


@dataclass
class _Plan:
    creates: List[ProspectRow] = field(default_factory=list)
    updates: List[Tuple[int, ProspectRow]] = field(default_factory=list)
    deletes: List[int] = field(default_factory=list)
    unchanged: int = 0
    skipped: int = 0
    duplicates: int = 0


class Reconciler:
    """
    Usage:
        reconciler = Reconciler(store)
        result = reconciler.sync(sheet_source)
        print(result.counts())
    """

    def __init__(self, store: ProspectStore):
        self.store = store

    def sync(self, source) -> ReconcileResult:
        """
        Fetch every row from the source, then reconcile.

        ExternalSourceError from the source propagates before any store
        write happens. No retry: the caller re-triggers.
        """
        rows = source.fetch_rows()
        logger.info(f"Fetched {len(rows)} rows from external source")
        return self.reconcile(rows)

    def reconcile(self, rows: Iterable[ProspectRow]) -> ReconcileResult:
        normalized, skipped = self._normalize(rows)

        if not normalized:
            # Empty batch never deletes.
            logger.warning("No valid prospects in batch; store left untouched")
            return ReconcileResult(prospects=self.store.get_all(), skipped=skipped)

        plan = self._plan(normalized)
        plan.skipped = skipped
        result = self._apply(plan)

        logger.info(
            f"Reconciled: {result.created} created, {result.updated} updated, "
            f"{result.unchanged} unchanged, {result.deleted} deleted, "
            f"{result.skipped} skipped, {result.duplicates} duplicates"
        )
        return result

    def _normalize(self, rows: Iterable[ProspectRow]) -> Tuple[List[ProspectRow], int]:
        """Trim fields and drop rows missing name, category or phone."""
        valid = []
        skipped = 0

        for index, row in enumerate(rows, start=1):
            row = row.normalized()
            if not row.is_complete:
                logger.info(f"Skipping row {index}: missing name, category or phone number")
                skipped += 1
                continue
            valid.append(row)

        return valid, skipped

    def _plan(self, rows: List[ProspectRow]) -> _Plan:
        existing: Dict[str, Prospect] = {p.external_key: p for p in self.store.get_all()}
        seen_ids: Set[int] = set()
        batch_keys: Set[str] = set()
        plan = _Plan()

        for row in rows:
            key: Optional[str] = row.external_key

            if key is not None:
                if key in batch_keys:
                    logger.warning(f"Duplicate external key in batch, skipping: {key} ({row.name})")
                    plan.duplicates += 1
                    continue
                batch_keys.add(key)

            match = existing.get(key) if key is not None else None
            if match is None:
                plan.creates.append(row)
                continue

            seen_ids.add(match.id)
            if match.content() != row.content():
                plan.updates.append((match.id, row))
            else:
                plan.unchanged += 1

        plan.deletes = [p.id for p in existing.values() if p.id not in seen_ids]
        return plan

    def _apply(self, plan: _Plan) -> ReconcileResult:
        result = ReconcileResult(
            unchanged=plan.unchanged,
            skipped=plan.skipped,
            duplicates=plan.duplicates,
        )

        for prospect_id, row in plan.updates:
            self.store.update_content(prospect_id, row.name, row.category, row.phone_number)
            result.updated += 1

        for prospect_id in plan.deletes:
            if self.store.delete(prospect_id):
                result.deleted += 1

        for row in plan.creates:
            self.store.create(row.name, row.category, row.phone_number, row.external_key)
            result.created += 1

        result.prospects = self.store.get_all()
        return result
