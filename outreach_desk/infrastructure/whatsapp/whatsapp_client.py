"""
WhatsApp Client - Selenium-Based WhatsApp Web Automation
=========================================================
"""

import logging
import time
import random
from pathlib import Path
from typing import Optional

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.common.exceptions import TimeoutException, WebDriverException
from webdriver_manager.chrome import ChromeDriverManager

logger = logging.getLogger(__name__)

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""
    pass


class WhatsAppBlockedError(WhatsAppClientError):
    """Raised when WhatsApp shows blocking/warning indicators."""
    pass


class WhatsAppClient:
    """
    Selenium-based WhatsApp Web client.

    Opening a chat goes through the click-to-chat URL, so the number does
    not need to be a saved contact.
    """

    SELECTORS = {
        "chat_list": 'div[contenteditable="true"][data-tab="3"]',
        "message_input": 'footer div[contenteditable="true"]',
        "invalid_number": 'div[data-animate-modal-popup="true"]',
    }

    BLOCK_INDICATORS = [
        "temporarily banned",
        "account is temporarily",
        "verify your phone",
        "unusual activity",
    ]

    def __init__(self, headless: bool = False, profile_dir: Optional[Path] = None):
        self.driver = self._create_driver(headless, profile_dir or Path("whatsapp_profile"))
        self.driver.get(WHATSAPP_WEB_URL)
        logger.info("Opened WhatsApp Web - please scan QR code if needed")

    def _create_driver(self, headless: bool, profile_dir: Path) -> webdriver.Chrome:
        """Create and configure Chrome WebDriver."""
        options = webdriver.ChromeOptions()

        if headless:
            options.add_argument("--headless=new")
            logger.warning("Running headless - QR code scanning won't work!")
        else:
            options.add_argument("--start-maximized")

        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")

        # Persistent profile keeps the WhatsApp session between launches
        options.add_argument(f"--user-data-dir={profile_dir.resolve()}")
        logger.info(f"Using Chrome profile at: {profile_dir}")

        service = ChromeService(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def _random_delay(self, min_s: float = 0.5, max_s: float = 2.0) -> None:
        """Add human-like random delay."""
        time.sleep(random.uniform(min_s, max_s))

    def _check_for_blocks(self) -> bool:
        """Check page for blocking/warning indicators."""
        page_text = self.driver.page_source.lower()
        for indicator in self.BLOCK_INDICATORS:
            if indicator in page_text:
                logger.error(f"Block indicator detected: {indicator}")
                return True
        return False

    def wait_for_login(self, timeout: int = 120) -> bool:
        """Wait for user to scan QR code and the chat list to load."""
        logger.info(f"Waiting up to {timeout}s for QR code scan...")

        try:
            WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located(
                    (By.CSS_SELECTOR, self.SELECTORS["chat_list"])
                )
            )
            logger.info("WhatsApp Web loaded successfully")
            return True
        except TimeoutException:
            logger.error("Timeout waiting for WhatsApp login")
            return False

    def open_chat(self, address: str, timeout: int = 30):
        """
        Open the chat for a digits-only address.
        Returns the message input element, or None if the chat did not open.
        """
        if self._check_for_blocks():
            raise WhatsAppBlockedError("WhatsApp blocking detected")

        self.driver.get(f"{WHATSAPP_WEB_URL}send?phone={address}")

        try:
            input_box = WebDriverWait(self.driver, timeout).until(
                EC.element_to_be_clickable(
                    (By.CSS_SELECTOR, self.SELECTORS["message_input"])
                )
            )
        except TimeoutException:
            if self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["invalid_number"]):
                logger.warning(f"Number is not on WhatsApp: {address}")
            else:
                logger.warning(f"Could not open chat for: {address}")
            return None

        logger.debug(f"Chat opened: {address}")
        return input_box

    def send_message(self, address: str, text: str) -> bool:
        """Open the chat for address and type + send text."""
        input_box = self.open_chat(address)
        if input_box is None:
            return False

        input_box.click()
        self._random_delay(0.3, 0.6)

        # Shift+Enter keeps multi-line messages in one bubble
        lines = text.split("\n")
        for i, line in enumerate(lines):
            input_box.send_keys(line)
            if i < len(lines) - 1:
                input_box.send_keys(Keys.SHIFT, Keys.ENTER)
            self._random_delay(0.1, 0.3)

        input_box.send_keys(Keys.ENTER)
        self._random_delay(1.0, 2.0)

        logger.info(f"Sent message to {address}: {text[:50]}...")
        return True

    def is_alive(self) -> bool:
        """True while the browser session still answers."""
        try:
            _ = self.driver.current_url
            return True
        except WebDriverException:
            return False

    def close(self) -> None:
        """Close browser and cleanup."""
        try:
            self.driver.quit()
            logger.info("Browser closed")
        except WebDriverException as e:
            logger.warning(f"Error closing browser: {e}")
