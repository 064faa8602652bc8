"""
Document Exporter - fetches a posting's printable document through the source's
own export control, falling back to rendering the page as PDF
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict

from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .boards import BoardAdapter
from .session import SessionManager

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


@dataclass
class ExportResult:
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE


def fallback_filename(title: str) -> str:
    stem = UNSAFE_FILENAME_CHARS.sub("_", (title or "").strip()).strip("_")
    return f"{stem or 'job'}.pdf"


class DocumentExporter:

    def __init__(self, config, session: SessionManager, boards: Dict[str, BoardAdapter]):
        self.config = config
        self.session = session
        self.boards = boards

    def export(self, source: str, url: str, title: str = "") -> ExportResult:
        """Raises KeyError for unknown sources; other failures propagate to the caller."""
        board = self.boards[source]
        context = self.session.acquire_context()
        page = context.new_page()
        try:
            download = None
            navigated = False
            try:
                with page.expect_download(timeout=self.config.get_download_timeout()) as download_info:
                    try:
                        page.goto(url, wait_until="load", timeout=self.config.get_export_navigation_timeout())
                    except PlaywrightTimeoutError:
                        raise
                    except PlaywrightError as exc:
                        # The URL itself is the document: goto aborts with "Download is starting"
                        if "Download is starting" not in str(exc):
                            raise
                        navigated = True
                    else:
                        navigated = True
                        page.wait_for_timeout(3000)
                        board.trigger_export(page)
                download = download_info.value
            except PlaywrightTimeoutError:
                if not navigated:
                    raise
                logger.info(f"{source}: no native download fired, rendering page instead")

            if download is not None:
                content = download.path().read_bytes()
                filename = download.suggested_filename or fallback_filename(title)
                logger.info(f"Exported {filename} from {source} ({len(content)} bytes)")
                return ExportResult(filename=filename, content=content)

            content = page.pdf(format="A4", print_background=True)
            return ExportResult(filename=fallback_filename(title), content=content)
        finally:
            try:
                page.close()
            except Exception:
                logger.debug("Export page close failed", exc_info=True)
