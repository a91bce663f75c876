"""
Campaign Runner - WhatsApp Outreach from the Console
=====================================================

Syncs prospects from Google Sheets, connects WhatsApp and sends the
templated message to every pending prospect.

Uses the messaging provider abstraction:
- WHATSAPP_PROVIDER=selenium: WhatsApp Web, scan the QR code when asked
- WHATSAPP_PROVIDER=cloud_api: WhatsApp Cloud API, credentials from env
"""

import sys
import logging

from outreach_desk.application import Dispatcher, Reconciler
from outreach_desk.domain import ExternalSourceError
from outreach_desk.infrastructure.config import get_settings
from outreach_desk.infrastructure.persistence import create_store
from outreach_desk.infrastructure.sheets import GoogleSheetSource
from outreach_desk.infrastructure.whatsapp import SeleniumProvider, create_provider

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def connect_provider(provider) -> bool:
    """Walk the provider through its login step."""
    if isinstance(provider, SeleniumProvider):
        print("Launching WhatsApp Web...")
        print("   Please scan QR code with your phone.\n")
        if not provider.connect():
            print("Failed to launch browser")
            return False

        print("=" * 60)
        print("SCAN THE QR CODE NOW")
        print("   Wait for chats to load, then press ENTER")
        print("=" * 60)

        try:
            input("\n>>> Press ENTER when WhatsApp is ready... <<<\n")
        except KeyboardInterrupt:
            print("\nCancelled")
            return False

        return provider.confirm_login(timeout=get_settings().whatsapp.login_timeout)

    return provider.connect()


def run_campaign() -> int:
    """Sync, connect, send. Returns a process exit code."""

    print("\n" + "=" * 60)
    print("   Outreach Desk - Campaign Runner")
    print("=" * 60 + "\n")

    settings = get_settings()
    for issue in settings.validate():
        print(issue)

    store = create_store(settings)

    if settings.sheets.is_configured:
        try:
            result = Reconciler(store).sync(GoogleSheetSource.from_settings(settings))
        except ExternalSourceError as e:
            print(f"Google Sheets sync failed: {e}")
            return 1
        counts = result.counts()
        print(f"Synced: {counts['created']} new, {counts['updated']} updated, {counts['deleted']} removed\n")

    pending = store.get_pending()
    if not pending:
        print("No pending prospects. All done!")
        return 0

    print(f"Found {len(pending)} pending prospects\n")

    provider = create_provider(settings)
    try:
        if not connect_provider(provider):
            print("WhatsApp didn't connect. Try again.")
            return 1

        print("\nWhatsApp ready! Starting campaign...\n")
        dispatcher = Dispatcher(store, provider, delay_seconds=settings.whatsapp.send_delay_seconds)
        result = dispatcher.send_bulk()
    finally:
        provider.close()

    stats = store.get_stats()
    print("\n" + "=" * 60)
    print("Campaign Complete!")
    print(f"   Sent: {result.sent} | Failed: {result.failed}")
    print(f"   Total: {stats['total']} | Pending: {stats['pending']} | Success rate: {stats['success_rate']}%")
    print("=" * 60 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(run_campaign())
