"""
Messaging Provider - Abstraction Layer for WhatsApp Messaging
==============================================================

Provides a unified interface for sending WhatsApp messages. The dispatcher
only needs is_ready() and send(); everything about getting connected lives
in the provider's own state machine:

    disconnected --connect()--> awaiting_credential --confirm_login()--> connected
         ^                                                                   |
         +------------------------ drop / close() ---------------------------+

USAGE:
    # Selenium (WhatsApp Web, QR code login)
    provider = SeleniumProvider()
    provider.connect()          # browser opens, scan the QR code
    provider.confirm_login()
    provider.send("923001234567", "Hello!")

    # WhatsApp Cloud API (token login)
    provider = CloudAPIProvider(api_key="EAAxxxx", phone_number_id="12345")
    provider.connect()
    provider.send("923001234567", "Hello!")
"""

import re
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional

import requests
from selenium.common.exceptions import WebDriverException

logger = logging.getLogger(__name__)


def to_address(phone_number: str) -> str:
    """WhatsApp address for a phone number: digits only."""
    return re.sub(r"\D", "", phone_number or "")


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    AWAITING_CREDENTIAL = "awaiting_credential"
    CONNECTED = "connected"


_ALLOWED_TRANSITIONS = {
    ConnectionState.DISCONNECTED: {ConnectionState.AWAITING_CREDENTIAL},
    ConnectionState.AWAITING_CREDENTIAL: {ConnectionState.CONNECTED, ConnectionState.DISCONNECTED},
    ConnectionState.CONNECTED: {ConnectionState.DISCONNECTED},
}


class MessagingProvider(ABC):
    """
    Abstract base class for WhatsApp messaging providers.
    Implement this interface to add new messaging backends.
    """

    name = "provider"

    def __init__(self):
        self._state = ConnectionState.DISCONNECTED
        self._account: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state == self._state:
            return
        if new_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid transition {self._state.value} -> {new_state.value}")
        logger.info(f"{self.name}: {self._state.value} -> {new_state.value}")
        self._state = new_state
        if new_state != ConnectionState.CONNECTED:
            self._account = None

    def is_ready(self) -> bool:
        """Point-in-time readiness check used before any send."""
        return self._state == ConnectionState.CONNECTED

    def status(self) -> dict:
        """Snapshot for the readiness endpoint."""
        return {
            "provider": self.name,
            "state": self._state.value,
            "connected": self.is_ready(),
            "qr_required": self._state == ConnectionState.AWAITING_CREDENTIAL,
            "account": self._account,
        }

    @abstractmethod
    def connect(self) -> bool:
        """Start connecting. Returns True if the provider moved forward."""
        ...

    @abstractmethod
    def confirm_login(self, timeout: int = 30) -> bool:
        """Complete the credential step. Returns True once connected."""
        ...

    @abstractmethod
    def send(self, address: str, text: str) -> bool:
        """Send a text message to a digits-only address. Returns True if sent."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


class SeleniumProvider(MessagingProvider):
    """
    Selenium-based WhatsApp Web automation.
    Wraps WhatsAppClient; the credential step is the QR code scan.
    """

    name = "selenium"

    def __init__(self, headless: bool = False, profile_dir: Optional[Path] = None, client_factory=None):
        super().__init__()
        self._headless = headless
        self._profile_dir = profile_dir
        self._client_factory = client_factory
        self._client = None

    def _new_client(self):
        if self._client_factory is not None:
            return self._client_factory()
        from .whatsapp_client import WhatsAppClient
        return WhatsAppClient(headless=self._headless, profile_dir=self._profile_dir)

    def connect(self) -> bool:
        """Launch browser and open WhatsApp Web."""
        if self._client is not None:
            self.close()

        try:
            self._client = self._new_client()
        except Exception as e:
            logger.exception(f"Failed to launch Selenium WhatsApp: {e}")
            return False

        self._transition(ConnectionState.AWAITING_CREDENTIAL)
        return True

    def confirm_login(self, timeout: int = 30) -> bool:
        """Wait for QR code scan and confirm login."""
        if self._state == ConnectionState.CONNECTED:
            return True
        if self._client is None or self._state != ConnectionState.AWAITING_CREDENTIAL:
            return False

        if self._client.wait_for_login(timeout=timeout):
            self._transition(ConnectionState.CONNECTED)
            return True
        return False

    def send(self, address: str, text: str) -> bool:
        """Open chat and send message via Selenium."""
        if not self.is_ready():
            return False

        try:
            return self._client.send_message(address, text)
        except WebDriverException as e:
            logger.exception(f"WhatsApp Web session failed while sending to {address}: {e}")
            if not self._client.is_alive():
                self._drop()
            return False

    def _drop(self) -> None:
        logger.warning("WhatsApp Web session lost; launch it again to reconnect")
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        self._transition(ConnectionState.DISCONNECTED)


class CloudAPIProvider(MessagingProvider):
    """
    WhatsApp Cloud API provider.

    The credential step is an access token plus phone number id, verified
    with a GET on the phone number resource. Without both the provider
    waits in awaiting_credential until set_credentials() is called.
    """

    name = "cloud_api"

    # Meta WhatsApp Cloud API base URL
    DEFAULT_API_URL = "https://graph.facebook.com/v18.0"

    def __init__(
        self,
        api_key: str = "",
        phone_number_id: str = "",
        api_url: str = "",
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        super().__init__()
        self._api_key = api_key
        self._phone_number_id = phone_number_id
        self._api_url = (api_url or self.DEFAULT_API_URL).rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def set_credentials(self, api_key: str, phone_number_id: str) -> bool:
        """Supply credentials and try to finish connecting."""
        self._api_key = api_key
        self._phone_number_id = phone_number_id
        if self._state == ConnectionState.CONNECTED:
            self._transition(ConnectionState.DISCONNECTED)
        return self.connect()

    def connect(self) -> bool:
        if self._state == ConnectionState.CONNECTED:
            return True
        self._transition(ConnectionState.AWAITING_CREDENTIAL)

        if not self._api_key or not self._phone_number_id:
            logger.warning("CloudAPIProvider: api_key and phone_number_id are required")
            return False

        return self.confirm_login()

    def confirm_login(self, timeout: int = 30) -> bool:
        """Verify API credentials are valid."""
        if self._state == ConnectionState.CONNECTED:
            return True
        if self._state != ConnectionState.AWAITING_CREDENTIAL:
            return False

        try:
            response = self._session.get(
                f"{self._api_url}/{self._phone_number_id}",
                headers=self._headers(),
                timeout=min(timeout, self._timeout),
            )
        except requests.RequestException as e:
            logger.error(f"CloudAPIProvider: credential check failed: {e}")
            self._transition(ConnectionState.DISCONNECTED)
            return False

        if not response.ok:
            logger.error(f"CloudAPIProvider: credentials rejected ({response.status_code})")
            self._transition(ConnectionState.DISCONNECTED)
            return False

        self._transition(ConnectionState.CONNECTED)
        self._account = response.json().get("display_phone_number") or self._phone_number_id
        return True

    def send(self, address: str, text: str) -> bool:
        """POST {api_url}/{phone_number_id}/messages with a text body."""
        if not self.is_ready():
            logger.error("CloudAPIProvider: not connected")
            return False

        try:
            response = self._session.post(
                f"{self._api_url}/{self._phone_number_id}/messages",
                headers=self._headers(),
                json={
                    "messaging_product": "whatsapp",
                    "to": address,
                    "type": "text",
                    "text": {"body": text},
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(f"CloudAPIProvider: send to {address} failed: {e}")
            return False

        if response.status_code == 401:
            logger.error("CloudAPIProvider: access token expired or revoked")
            self._transition(ConnectionState.DISCONNECTED)
            return False

        if not response.ok:
            logger.warning(f"CloudAPIProvider: send to {address} rejected ({response.status_code})")
            return False

        return True

    def close(self) -> None:
        self._transition(ConnectionState.DISCONNECTED)
        logger.info("CloudAPIProvider: closed")
