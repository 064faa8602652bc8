"""
Auth Controller - best-effort per-source login with a human CAPTCHA hand-off
"""

import logging
from typing import Callable

from playwright.sync_api import Error as PlaywrightError

from .captcha import CaptchaMailbox, find_captcha_image
from .models import CaptchaRequiredEvent, Credentials, LogEvent
from .sites import SiteConfig

logger = logging.getLogger(__name__)

GATEWAY_JS = """
({ href, text, userSelector }) => {
  if (document.querySelector(userSelector)) return false;
  const btns = Array.from(document.querySelectorAll('a, button'));
  const btn = btns.find(b => {
    const h = b.getAttribute('href') || '';
    const t = b.innerText || '';
    return (href && h.includes(href)) || (text && t.includes(text));
  });
  if (!btn) return false;
  btn.click();
  return true;
}
"""


class AuthController:
    """Drives a site's login form. Never raises; outcomes are reported as log events."""

    def __init__(self, config, mailbox: CaptchaMailbox):
        self.config = config
        self.mailbox = mailbox

    def _clear_and_fill(self, page, selector: str, value: str) -> None:
        # Autofill ignores plain value assignment, so select-all + delete first
        page.click(selector)
        page.keyboard.press("Meta+A")
        page.keyboard.press("Control+A")
        page.keyboard.press("Backspace")
        page.fill(selector, value)

    def _pass_gateway(self, page, site: SiteConfig, emit: Callable) -> None:
        login = site.login
        if not (login.gateway_href or login.gateway_text):
            return
        clicked = page.evaluate(
            GATEWAY_JS,
            {"href": login.gateway_href, "text": login.gateway_text, "userSelector": login.user},
        )
        if clicked:
            emit(LogEvent(
                message=f"{site.key}: ゲートウェイボタンをクリックしました。リダイレクトを待機します...",
                level="info",
            ))
            page.wait_for_timeout(3000)

    def _solve_captcha(self, page, site: SiteConfig, emit: Callable) -> None:
        image = find_captcha_image(page, site.login.captcha_image)
        if not image:
            return

        emit(LogEvent(message=f"{site.key}: 画像認証（ひらがな4文字）を検出しました。", level="warning"))
        self.mailbox.clear()
        emit(CaptchaRequiredEvent(source=site.key, image=image))

        answer = self.mailbox.wait_for_answer(
            max_polls=self.config.get_captcha_max_polls(),
            interval=self.config.get_captcha_poll_interval(),
        )
        if not answer:
            emit(LogEvent(
                message=f"{site.key}: 画像認証の入力がタイムアウトしました。認証なしで送信します。",
                level="warning",
            ))
            return
        try:
            page.fill(site.login.captcha, answer)
        except PlaywrightError as exc:
            logger.debug("Captcha field fill failed: %s", exc)

    def login(self, page, site: SiteConfig, credentials: Credentials, emit: Callable) -> None:
        emit(LogEvent(message=f"{site.key}: 自動ログインを実行中...", level="info"))
        timeout = self.config.get_navigation_timeout()

        try:
            try:
                page.goto(site.login_url, wait_until="load", timeout=timeout)
            except PlaywrightError as exc:
                logger.debug("Login page navigation incomplete: %s", exc)

            self._pass_gateway(page, site, emit)

            if not page.is_visible(site.login.user):
                emit(LogEvent(
                    message=f"{site.key}: 既にログイン済み、またはフォームが見つかりませんのでログイン行程をスキップします。",
                    level="info",
                ))
                return

            self._clear_and_fill(page, site.login.user, credentials.user)
            self._clear_and_fill(page, site.login.password, credentials.password)
            self._solve_captcha(page, site, emit)

            try:
                with page.expect_navigation(wait_until="load", timeout=timeout):
                    page.click(site.login.button)
            except PlaywrightError as exc:
                logger.debug("Post-login navigation incomplete: %s", exc)

            current_url = page.url or ""
            if "signin" in current_url or "login" in current_url or page.is_visible(site.login.user):
                emit(LogEvent(
                    message=f"{site.key}: ログインに失敗しました。ID/PASSまたは画像認証が間違っている可能性があります。",
                    level="error",
                ))
            else:
                emit(LogEvent(message=f"{site.key}: ログイン成功。", level="success"))

        except Exception as exc:
            logger.warning("Login failed for %s: %s", site.key, exc)
            emit(LogEvent(message=f"{site.key} ログインエラー: {exc}", level="warning"))
