"""
Session Manager - owns the single persistent browser context shared by every batch
"""

import logging
from pathlib import Path
from typing import Optional

from playwright.sync_api import sync_playwright, BrowserContext, Page, Playwright

from .sites import SiteConfig

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--window-position=0,0",
    "--ignore-certificate-errors",
    "--ignore-certificate-errors-spki-list",
]


class SessionManager:
    """Lazily launches, probes and relaunches the shared persistent context.

    The sync Playwright API is bound to the thread that started it, so every
    call on one instance must come from the same thread.
    """

    def __init__(self, config):
        self.config = config
        self.user_data_dir: Path = config.get_user_data_dir()
        self.playwright: Optional[Playwright] = None
        self.context: Optional[BrowserContext] = None

    def _is_alive(self) -> bool:
        try:
            _ = self.context.pages
            self.context.cookies()
            return True
        except Exception:
            logger.debug("Browser context liveness probe failed", exc_info=True)
            return False

    def _on_close(self, *_args) -> None:
        logger.info("Browser context closed; next request will relaunch")
        self.context = None

    def _launch(self, headless: bool) -> BrowserContext:
        if self.playwright is None:
            self.playwright = sync_playwright().start()

        channel = self.config.get_browser_channel() or None
        executable_path = self.config.get_browser_executable_path() or None
        if executable_path and not Path(executable_path).exists():
            logger.warning("Browser executable not found: %s", executable_path)
            executable_path = None

        self.user_data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using persistent profile: {self.user_data_dir} (headless={headless})")
        context = self.playwright.chromium.launch_persistent_context(
            user_data_dir=str(self.user_data_dir),
            headless=headless,
            viewport={"width": 1280, "height": 800},
            user_agent=self.config.get_user_agent(),
            args=LAUNCH_ARGS,
            ignore_default_args=["--enable-automation"],
            channel=channel,
            executable_path=executable_path,
            timeout=self.config.get_launch_timeout(),
        )
        context.on("close", self._on_close)
        return context

    def acquire_context(self, headless: Optional[bool] = None) -> BrowserContext:
        """Return the live shared context, launching a new one if needed."""
        if headless is None:
            headless = self.config.is_headless()

        if self.context is not None and not self._is_alive():
            self.context = None

        if self.context is None:
            self.context = self._launch(headless)
            logger.info("Browser context started")
        return self.context

    def open_site(self, site: SiteConfig, headless: bool = False) -> Page:
        """Open the site's entry page in the shared context for manual use."""
        context = self.acquire_context(headless)
        page = context.new_page()
        page.goto(site.url)
        return page

    def close(self) -> None:
        """Clean up browser resources"""
        try:
            if self.context:
                self.context.close()
        except Exception:
            logger.debug("Browser context close failed", exc_info=True)
        self.context = None
        try:
            if self.playwright:
                self.playwright.stop()
        except Exception:
            logger.debug("Playwright stop failed", exc_info=True)
        self.playwright = None
        logger.info("Browser closed")
