"""
jobdb-relay API - FastAPI front door for batches, CAPTCHA answers and exports.

Every browser call is funnelled through one dedicated worker thread because the
sync Playwright API is bound to the thread that started it. The event loop
stays free, so a CAPTCHA answer can arrive while a batch is blocked waiting
for it.
"""

import asyncio
import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import BaseModel

from .auth import AuthController
from .boards import build_boards
from .captcha import CaptchaMailbox
from .exporter import DocumentExporter
from .models import BatchRequest
from .orchestrator import BatchOrchestrator
from .session import SessionManager

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class CaptchaAnswer(BaseModel):
    value: str = ""


class ExportRequest(BaseModel):
    url: str
    source: str
    title: str = ""


class RelayRuntime:
    """Process-wide state: the shared session, the CAPTCHA mailbox and the browser worker."""

    def __init__(self, config, session: Optional[SessionManager] = None,
                 mailbox: Optional[CaptchaMailbox] = None):
        self.config = config
        self.session = session or SessionManager(config)
        self.mailbox = mailbox or CaptchaMailbox()
        self.boards = build_boards(config)
        self.auth = AuthController(config, self.mailbox)
        self.orchestrator = BatchOrchestrator(config, self.session, self.auth, boards=self.boards)
        self.exporter = DocumentExporter(config, self.session, self.boards)
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="browser")

    async def call(self, fn, *args):
        """Run a blocking browser call on the browser worker."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, fn, *args)

    def shutdown(self) -> None:
        self.executor.submit(self.session.close)
        self.executor.shutdown(wait=True)


def create_app(config, runtime: Optional[RelayRuntime] = None) -> FastAPI:
    runtime = runtime or RelayRuntime(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting jobdb-relay API...")
        yield
        logger.info("Shutting down jobdb-relay API...")
        runtime.shutdown()

    app = FastAPI(
        title="jobdb-relay",
        description="Collects postings from job databases and streams them as NDJSON",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/collect")
    async def collect(request: BatchRequest):
        """Run one batch and stream its events, one JSON object per line."""
        events: queue.Queue = queue.Queue()

        def run_batch() -> None:
            try:
                runtime.orchestrator.run(request, events.put)
            finally:
                events.put(None)

        runtime.executor.submit(run_batch)

        async def stream():
            while True:
                event = await asyncio.to_thread(events.get)
                if event is None:
                    break
                yield event.to_line()

        return StreamingResponse(stream(), media_type=NDJSON_MEDIA_TYPE)

    @app.post("/api/input")
    async def submit_captcha(answer: CaptchaAnswer):
        runtime.mailbox.post(answer.value)
        return {"success": True}

    @app.get("/api/open-browser", response_class=PlainTextResponse)
    async def open_browser(db: str = Query(default="")):
        board = runtime.boards.get(db)
        if board is None:
            return PlainTextResponse("Invalid DB", status_code=400)
        try:
            await runtime.call(runtime.session.open_site, board.site, False)
        except Exception as e:
            logger.error(f"Failed to open browser for {db}: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})
        return "Browser opened"

    @app.post("/api/download-pdf")
    async def download_pdf(body: ExportRequest):
        if body.source not in runtime.boards:
            return JSONResponse(status_code=400, content={"error": f"Invalid DB: {body.source}"})
        try:
            result = await runtime.call(runtime.exporter.export, body.source, body.url, body.title)
        except Exception as e:
            logger.error(f"PDF download error: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

        disposition = f"attachment; filename*=UTF-8''{quote(result.filename)}"
        return Response(
            content=result.content,
            media_type=result.media_type,
            headers={"Content-Disposition": disposition},
        )

    return app
