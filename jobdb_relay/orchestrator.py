"""
Batch Orchestrator - runs one collection batch across the requested sources
and streams its progress as events.

Sources are processed strictly in order on their own page of the shared
context. Failures are contained at three boundaries (listing, source, batch)
and the batch always ends with exactly one `complete` event.
"""

import logging
from typing import Callable, Dict, Optional

from .auth import AuthController
from .boards import BoardAdapter, build_boards
from .detail import DetailEnricher
from .listing import ListingExtractor
from .matcher import validate
from .models import BatchRequest, CompleteEvent, FilterCriteria, JobEvent, JobListing, LogEvent
from .run_metrics import BatchMetrics
from .session import SessionManager

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class BatchOrchestrator:
    """Sequences session, login, filters, extraction, enrichment and validation per source."""

    def __init__(
        self,
        config,
        session: SessionManager,
        auth: AuthController,
        extractor: Optional[ListingExtractor] = None,
        enricher: Optional[DetailEnricher] = None,
        boards: Optional[Dict[str, BoardAdapter]] = None,
    ):
        self.config = config
        self.session = session
        self.auth = auth
        self.extractor = extractor or ListingExtractor(config)
        self.enricher = enricher or DetailEnricher(config)
        self.boards = boards if boards is not None else build_boards(config)

    def _emitter(self, emit: Callable) -> Callable:
        """Wrap the sink so every log event is also written to the Python logger."""

        def _emit(event) -> None:
            if isinstance(event, LogEvent):
                logger.log(LOG_LEVELS.get(event.level, logging.INFO), event.message)
            emit(event)

        return _emit

    def run(self, request: BatchRequest, emit: Callable) -> BatchMetrics:
        """Run one batch. Never raises; always emits a single trailing `complete`."""
        metrics = BatchMetrics(sources=list(request.databases))
        send = self._emitter(emit)
        criteria = request.criteria()
        logger.info(f"Starting batch {metrics.batch_id}: {criteria} on {request.databases}")

        try:
            context = self.session.acquire_context()
        except Exception as exc:
            logger.exception("Browser context acquisition failed")
            metrics.inc("errors")
            metrics.record_event("context_error", error=str(exc))
            send(LogEvent(message=f"システムエラー: {exc}", level="error"))
        else:
            for key in request.databases:
                self._run_source(context, key, request, criteria, send, metrics)

        send(CompleteEvent())
        self._finish(metrics)
        return metrics

    def _run_source(self, context, key: str, request: BatchRequest, criteria: FilterCriteria,
                    send: Callable, metrics: BatchMetrics) -> None:
        board = self.boards.get(key)
        if board is None:
            send(LogEvent(message=f"未対応のデータベースです: {key}", level="warning"))
            metrics.inc("unknown_sources")
            metrics.record_event("source_skipped", source=key, reason="unknown")
            return

        metrics.inc("sources")
        metrics.record_event("source_start", source=key)
        page = context.new_page()
        try:
            credentials = request.credentials.get(key)
            if credentials is not None:
                self.auth.login(page, board.site, credentials, send)

            board.open_search(page, send)
            board.apply_filters(page, criteria, send)

            if "login" in (page.url or ""):
                send(LogEvent(message=f"{key}: ログインが必要です。", level="warning"))
                metrics.inc("login_required", source=key)
                metrics.record_event("source_skipped", source=key, reason="login_required")
                return

            send(LogEvent(message=f"{key} から求人を抽出しています...", level="info"))
            listings = self.extractor.extract(page, board)
            metrics.inc("listings", len(listings), source=key)

            if listings:
                limit = self.config.get_max_details_per_source()
                send(LogEvent(message=f"{key}: {len(listings)}件を解析中 (上位{limit}件)...", level="info"))
                for listing in listings[:limit]:
                    self._process_listing(context, page, board, listing, criteria, send, metrics)

            send(LogEvent(message=f"{key} の解析（{len(listings)}件）が完了しました。", level="success"))
            metrics.record_event("source_end", source=key, listings=len(listings))
        except Exception as exc:
            logger.exception(f"Source {key} failed")
            metrics.inc("errors", source=key)
            metrics.record_event("source_error", source=key, error=str(exc))
            send(LogEvent(message=f"{key} エラー: {exc}", level="error"))
        finally:
            try:
                page.close()
            except Exception:
                logger.debug("Page close failed", exc_info=True)

    def _process_listing(self, context, page, board: BoardAdapter, listing: JobListing,
                         criteria: FilterCriteria, send: Callable, metrics: BatchMetrics) -> None:
        try:
            job = self.enricher.enrich(context, page, board, listing, send)
            if job is None:
                metrics.inc("detail_unavailable", source=board.key)
                return
            metrics.inc("enriched", source=board.key)

            result = validate(job, criteria)
            if result.match:
                send(JobEvent(job=job))
                send(LogEvent(message=f"★条件に合致: {listing.title[:20]}...", level="success"))
                metrics.inc("matched", source=board.key)
            else:
                send(LogEvent(message=f"不一致によりスキップ: {listing.title[:15]}... ({result.reason})", level="info"))
                metrics.inc("rejected", source=board.key)
        except Exception as exc:
            logger.debug("Listing %s failed", listing.url, exc_info=True)
            metrics.inc("listing_errors", source=board.key)
            send(LogEvent(message=f"解析エラー ({listing.title[:15]}): {exc}", level="warning"))

    def _finish(self, metrics: BatchMetrics) -> None:
        metrics.finish()
        logger.info(f"Batch {metrics.batch_id} finished in {metrics.duration_seconds:.1f}s: {metrics.counters}")
        if self.config.is_metrics_enabled():
            try:
                path = metrics.write_json(template=self.config.get_metrics_template())
                logger.info(f"Batch metrics written: {path}")
            except OSError as exc:
                logger.warning(f"Failed to write batch metrics: {exc}")
