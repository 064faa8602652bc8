#!/usr/bin/env python3

"""
jobdb-relay - Main Entry Point
Serve the streaming API, prime a browser session, or run one batch from config
"""

import argparse
import logging
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

from .config_loader import load_config
from .models import BatchRequest, CaptchaRequiredEvent, Credentials

PROJECT_ROOT = Path.cwd()


def setup_logging(config) -> None:
    """Configure logging for the application"""
    log_file = config.get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, config.get_log_level(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file}")


def build_cli_request(config) -> BatchRequest:
    """Batch request from the `search:` and `credentials:` config sections"""
    sources = config.get_sources()
    credentials = {}
    for source in sources:
        creds = config.get_credentials(source)
        if creds:
            credentials[source] = Credentials(**creds)
    return BatchRequest(**config.get_search_criteria(), sources=sources, credentials=credentials)


def run_serve(config, args) -> int:
    import uvicorn

    from .api import create_app

    host = args.host or config.get_api_host()
    port = args.port or config.get_api_port()
    print(f"\n🚀 jobdb-relay API on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
    return 0


def run_open_browser(config, args) -> int:
    from .session import SessionManager
    from .sites import get_site

    try:
        site = get_site(args.source)
    except KeyError:
        print(f"❌ Unknown source: {args.source}")
        return 2

    session = SessionManager(config)
    try:
        session.open_site(site, headless=False)
        print(f"\n🌐 Opened {site.url}")
        print(f"   Profile: {session.user_data_dir}")
        input("\n✋ Log in / solve any captcha in the browser, then press Enter to save the session...")
    finally:
        session.close()
    print("✅ Session saved to the browser profile")
    return 0


def run_collect(config, args) -> int:
    from .auth import AuthController
    from .captcha import CaptchaMailbox
    from .orchestrator import BatchOrchestrator
    from .session import SessionManager

    logger = logging.getLogger(__name__)
    request = build_cli_request(config)
    if not request.databases:
        print("❌ No sources configured under search.sources", file=sys.stderr)
        return 2

    mailbox = CaptchaMailbox()
    session = SessionManager(config)
    orchestrator = BatchOrchestrator(config, session, AuthController(config, mailbox))

    def read_answer(source: str) -> None:
        try:
            answer = input(f"🔐 {source} の画像認証を入力してください: ")
        except EOFError:
            logger.warning("No captcha answer on stdin")
            return
        mailbox.post(answer.strip())

    def emit(event) -> None:
        sys.stdout.write(event.to_line())
        sys.stdout.flush()
        if isinstance(event, CaptchaRequiredEvent):
            threading.Thread(target=read_answer, args=(event.source,), daemon=True).start()

    try:
        metrics = orchestrator.run(request, emit)
    finally:
        session.close()

    matched = sum(v for k, v in metrics.counters.items() if k.endswith(".matched"))
    logger.info(f"Batch complete: {matched} matching jobs")
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="jobdb-relay - job database crawler")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config YAML (default: $JOBDB_RELAY_CONFIG or config/settings.yaml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the streaming HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    open_browser = sub.add_parser("open-browser", help="Open a source in the persistent profile for manual login")
    open_browser.add_argument("source", help="careerbank, jobmiru or jobins")

    sub.add_parser("collect", help="Run one batch from the search: config section, printing NDJSON")
    return parser.parse_args(argv)


COMMANDS = {
    "serve": run_serve,
    "open-browser": run_open_browser,
    "collect": run_collect,
}


def main(argv=None) -> int:
    """Main execution function"""
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env", override=False)
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        print("Make sure config/settings.yaml exists!", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging(config)
    return COMMANDS[args.command](config, args)


if __name__ == "__main__":
    sys.exit(main())
