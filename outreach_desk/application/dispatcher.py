"""
Dispatcher - Paced WhatsApp Sending
====================================

Sends the templated message to every pending prospect, one at a time,
and records the outcome on each record.

- Not ready provider -> NotConnectedError before any record is touched
- Send returns False or raises -> status "failed", loop continues
- Fixed pause between consecutive sends, none after the last
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..domain import NotConnectedError, NotFoundError, Prospect, ProspectStatus
from ..infrastructure.persistence import ProspectStore
from ..infrastructure.whatsapp import MessagingProvider, to_address

logger = logging.getLogger(__name__)

DEFAULT_SEND_DELAY = 2.0


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return {"sent": self.sent, "failed": self.failed}


class Dispatcher:
    """
    Usage:
        dispatcher = Dispatcher(store, provider, delay_seconds=2)
        result = dispatcher.send_bulk()
        print(result.sent, result.failed)
    """

    def __init__(
        self,
        store: ProspectStore,
        provider: MessagingProvider,
        delay_seconds: float = DEFAULT_SEND_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.provider = provider
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def send_bulk(self) -> DispatchResult:
        """Send to every pending prospect, sequentially."""
        self._ensure_ready()

        pending = self.store.get_pending()
        result = DispatchResult()

        if not pending:
            logger.info("No pending prospects to send")
            return result

        logger.info(f"Bulk send started for {len(pending)} pending prospects")

        for index, prospect in enumerate(pending):
            if self._deliver(prospect, prospect.message):
                result.sent += 1
            else:
                result.failed += 1

            if index < len(pending) - 1 and self.delay_seconds > 0:
                self._sleep(self.delay_seconds)

        logger.info(f"Bulk send completed. Sent: {result.sent}, Failed: {result.failed}")
        return result

    def send_one(self, prospect_id: int, override_text: Optional[str] = None) -> Prospect:
        """
        Send to a single prospect.

        override_text, when not blank, is sent instead of the stored message
        and is not saved on the record.
        """
        self._ensure_ready()

        prospect = self.store.get(prospect_id)
        if prospect is None:
            raise NotFoundError(f"Prospect {prospect_id} not found")

        return self._send_single(prospect, override_text)

    def send_to_phone(self, phone_number: str, override_text: Optional[str] = None) -> Prospect:
        """Like send_one, but looks the prospect up by phone number."""
        self._ensure_ready()

        prospect = self.store.get_by_phone_number(phone_number)
        if prospect is None:
            raise NotFoundError(f"No prospect with phone number {phone_number}")

        return self._send_single(prospect, override_text)

    def _send_single(self, prospect: Prospect, override_text: Optional[str]) -> Prospect:
        text = override_text if override_text and override_text.strip() else prospect.message
        self._deliver(prospect, text)

        updated = self.store.get(prospect.id)
        if updated is None:
            raise NotFoundError(f"Prospect {prospect.id} was deleted during send")
        return updated

    def _ensure_ready(self) -> None:
        if not self.provider.is_ready():
            raise NotConnectedError("WhatsApp not connected. Please scan QR code first.")

    def _deliver(self, prospect: Prospect, text: str) -> bool:
        """Send one message and record the outcome. Never raises on send failure."""
        try:
            ok = bool(self.provider.send(to_address(prospect.phone_number), text))
        except Exception as e:
            logger.exception(f"Failed to send message to {prospect.name}: {e}")
            ok = False

        status = ProspectStatus.SENT if ok else ProspectStatus.FAILED
        try:
            self.store.update_status(prospect.id, status.value)
        except NotFoundError:
            logger.warning(f"Prospect {prospect.id} was deleted during send; status not recorded")

        if ok:
            logger.info(f"Message sent to {prospect.name} ({prospect.phone_number})")
        else:
            logger.warning(f"Message to {prospect.name} ({prospect.phone_number}) failed")
        return ok
