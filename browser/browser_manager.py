"""
Browser Manager - owns the Playwright browser for a fill session.

Modes:
1. FRESH - clean Chromium, no cookies (default; what the API server uses)
2. PERSISTENT - Playwright-managed profile, logins survive between runs
3. CDP - attach to an already running Chrome started with
   --remote-debugging-port, so its logins are available
"""

import logging
import os
import socket
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from playwright.sync_api import sync_playwright, Browser, BrowserContext, Page, Playwright
from playwright.sync_api import Error as PlaywrightError

from .config import BROWSER_ARGS, FIELD_SELECTOR, PAGE_LOAD_TIMEOUT, USER_AGENT
from utils.retry import wait_until

logger = logging.getLogger(__name__)


class BrowserMode(Enum):
    """Browser connection modes"""
    FRESH = "fresh"
    PERSISTENT = "persistent"
    CDP = "cdp"


@dataclass
class BrowserConfig:
    mode: BrowserMode = BrowserMode.FRESH
    cdp_url: str = "http://localhost:9222"
    profile_dir: Optional[str] = None
    headless: bool = True
    viewport_width: int = 1400
    viewport_height: int = 900
    slow_mo: int = 0  # ms between actions


class BrowserManager:
    """
    Usage:
        with BrowserManager(BrowserConfig(headless=False)) as browser:
            browser.goto("https://boards.greenhouse.io/...")
            AutofillEngine(browser.page).run(payload)
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def start(self) -> "BrowserManager":
        self.playwright = sync_playwright().start()
        mode = self.config.mode
        if mode == BrowserMode.CDP:
            self._start_cdp()
        elif mode == BrowserMode.PERSISTENT:
            self._start_persistent()
        else:
            self._start_fresh()
        return self

    def _viewport(self):
        return {"width": self.config.viewport_width, "height": self.config.viewport_height}

    def is_cdp_available(self) -> bool:
        """Check if Chrome is listening on the CDP port."""
        parsed = urlparse(self.config.cdp_url)
        try:
            with socket.create_connection((parsed.hostname or "localhost", parsed.port or 9222), timeout=1):
                return True
        except OSError:
            return False

    def _start_cdp(self):
        logger.info(f"Connecting to Chrome via CDP at {self.config.cdp_url}")
        if not self.is_cdp_available():
            raise RuntimeError(
                f"No Chrome listening at {self.config.cdp_url}; start it with --remote-debugging-port"
            )

        self.browser = self.playwright.chromium.connect_over_cdp(self.config.cdp_url)
        contexts = self.browser.contexts
        self.context = contexts[0] if contexts else self.browser.new_context(viewport=self._viewport())
        self.page = self.context.pages[0] if self.context.pages else self.context.new_page()
        logger.info(f"Connected to Chrome, current URL: {self.page.url}")

    def _start_persistent(self):
        profile_dir = self.config.profile_dir or os.path.expanduser("~/.autofill-browser")
        logger.info(f"Using persistent profile: {profile_dir}")

        self.context = self.playwright.chromium.launch_persistent_context(
            user_data_dir=profile_dir,
            headless=self.config.headless,
            viewport=self._viewport(),
            slow_mo=self.config.slow_mo,
            args=BROWSER_ARGS,
        )
        self.page = self.context.pages[0] if self.context.pages else self.context.new_page()

    def _start_fresh(self):
        self.browser = self.playwright.chromium.launch(
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
            args=BROWSER_ARGS,
        )
        self.context = self.browser.new_context(viewport=self._viewport(), user_agent=USER_AGENT)
        self.context.add_init_script("""
            Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
        """)
        self.page = self.context.new_page()
        logger.info("Browser started (fresh mode)")

    def close(self):
        """Close the browser. In CDP mode only disconnect; the user's Chrome stays open."""
        if self.config.mode != BrowserMode.CDP:
            if self.context:
                self.context.close()
            if self.browser:
                self.browser.close()
        if self.playwright:
            self.playwright.stop()
        self.playwright = self.browser = self.context = self.page = None

    # ─────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────

    def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: int = PAGE_LOAD_TIMEOUT * 1000) -> bool:
        logger.info(f"Opening: {url[:80]}")
        try:
            self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightError as e:
            logger.error(f"Navigation failed: {e}")
            return False
        self.wait_for_stable()
        return True

    def wait_for_stable(self, timeout: float = 2.0, interval: float = 0.3) -> bool:
        """Wait until the number of form controls stops changing."""
        counts = []

        def settled() -> bool:
            try:
                counts.append(len(self.page.query_selector_all(FIELD_SELECTOR)))
            except PlaywrightError:
                return False
            return len(counts) >= 2 and counts[-1] == counts[-2]

        return wait_until(settled, timeout=timeout, interval=interval, sleep=time.sleep)

    def screenshot(self, path: str, full_page: bool = False) -> str:
        self.page.screenshot(path=path, full_page=full_page)
        return path
