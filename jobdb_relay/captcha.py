"""
Captcha hand-off helpers.

The automated login pauses on an image CAPTCHA, publishes the image to the
caller and waits for a human to post the answer into a single-slot mailbox.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

BROAD_CAPTCHA_IMAGE_JS = """
() => {
  const imgs = Array.from(document.querySelectorAll('img'));
  const captcha = imgs.find(img => (img.src || '').includes('captcha') ||
    (img.alt || '').includes('CAPTCHA'));
  return captcha ? captcha.src : null;
}
"""

SELECTOR_IMAGE_JS = """
(selector) => {
  const img = document.querySelector(selector);
  return img ? img.src : null;
}
"""


def find_captcha_image(page: Any, selector: Optional[str]) -> Optional[str]:
    """Return the src of a CAPTCHA image on the page, or None.

    The site's own locator is tried first, then any image whose src or alt
    mentions captcha.
    """
    if selector:
        src = page.evaluate(SELECTOR_IMAGE_JS, selector)
        if src:
            return src
    return page.evaluate(BROAD_CAPTCHA_IMAGE_JS) or None


class CaptchaMailbox:
    """Thread-safe single-slot mailbox for the pending challenge's answer."""

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        self._lock = threading.Lock()
        self._value: Optional[str] = None
        self._sleep = sleep

    def post(self, value: str) -> None:
        with self._lock:
            self._value = (value or "").strip()
        logger.info("Captcha answer received")

    def take(self) -> Optional[str]:
        """Read and clear the slot so an answer is never reused."""
        with self._lock:
            value, self._value = self._value, None
        return value

    def clear(self) -> None:
        with self._lock:
            self._value = None

    def wait_for_answer(self, max_polls: int = 60, interval: float = 1.0) -> str:
        """Poll for an answer; returns "" when the wait runs out."""
        for attempt in range(max_polls):
            value = self.take()
            if value:
                logger.info("Captcha answer consumed after %s polls", attempt + 1)
                return value
            self._sleep(interval)
        logger.warning("Captcha answer wait timed out after %s polls", max_polls)
        return ""
