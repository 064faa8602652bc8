"""

Configuration loader for jobdb-relay
Reads and validates settings.yaml
"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/settings.yaml"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


class ConfigValidationError(ValueError):
    """Raised when configuration fails invariant validation."""
    pass


def _validate_non_negative(value: Any, field: str) -> None:
    """Validate that a numeric value is non-negative."""
    if value is not None and float(value) < 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be non-negative, got {value}"
        )


def _validate_positive(value: Any, field: str) -> None:
    """Validate that a numeric value is positive (> 0)."""
    if value is not None and float(value) <= 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be positive (> 0), got {value}"
        )


class ConfigLoader:
    """Loads and validates configuration from YAML file"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load config from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"✓ Config loaded from {self.config_path}")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise

        self._validate_invariants()

    def _validate_invariants(self) -> None:
        """Validate configuration invariants. Raises ConfigValidationError on failure."""
        # Browser timeouts (must be positive)
        _validate_positive(self.get('browser.launch_timeout'), 'browser.launch_timeout')
        _validate_positive(self.get('browser.navigation_timeout'), 'browser.navigation_timeout')
        _validate_positive(self.get('browser.search_navigation_timeout'), 'browser.search_navigation_timeout')

        # Crawl limits and waits
        _validate_non_negative(self.get('crawl.max_details_per_source'), 'crawl.max_details_per_source')
        _validate_non_negative(self.get('crawl.scroll_cycles'), 'crawl.scroll_cycles')
        _validate_non_negative(self.get('crawl.scroll_target'), 'crawl.scroll_target')
        _validate_non_negative(self.get('crawl.results_settle_ms'), 'crawl.results_settle_ms')
        _validate_non_negative(self.get('crawl.detail_settle_ms'), 'crawl.detail_settle_ms')
        _validate_positive(self.get('crawl.results_timeout'), 'crawl.results_timeout')
        _validate_positive(self.get('crawl.search_box_timeout'), 'crawl.search_box_timeout')
        _validate_positive(self.get('crawl.search_box_retry_timeout'), 'crawl.search_box_retry_timeout')

        # Captcha hand-off
        _validate_non_negative(self.get('captcha.max_polls'), 'captcha.max_polls')
        _validate_positive(self.get('captcha.poll_interval'), 'captcha.poll_interval')

        # Export
        _validate_positive(self.get('export.download_timeout'), 'export.download_timeout')
        _validate_positive(self.get('export.navigation_timeout'), 'export.navigation_timeout')

        port = self.get('api.port')
        if port is not None and not (0 < int(port) < 65536):
            raise ConfigValidationError(f"Invalid config: 'api.port' out of range, got {port}")

        logger.debug("✓ Config invariants validated")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot notation (e.g., 'browser.headless')"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    # === Browser Config ===

    def is_headless(self) -> bool:
        """Check if browser should run in headless mode"""
        return bool(self.get('browser.headless', False))

    def get_user_data_dir(self) -> Path:
        """Get the persistent browser profile directory"""
        path = self.get('browser.user_data_dir') or str(Path.home() / ".jobdb-relay" / "browser-profile")
        return Path(path).expanduser()

    def get_user_agent(self) -> str:
        """Get the desktop user agent presented to the sites"""
        return self.get('browser.user_agent') or DEFAULT_USER_AGENT

    def get_browser_channel(self) -> str:
        """Get Playwright browser channel override"""
        return self.get('browser.channel', '') or ''

    def get_browser_executable_path(self) -> str:
        """Get browser executable path override"""
        return self.get('browser.executable_path', '') or ''

    def get_launch_timeout(self) -> int:
        """Get browser launch timeout in milliseconds"""
        return int(self.get('browser.launch_timeout', 60) * 1000)

    def get_navigation_timeout(self) -> int:
        """Get login/detail navigation timeout in milliseconds"""
        return int(self.get('browser.navigation_timeout', 30) * 1000)

    def get_search_navigation_timeout(self) -> int:
        """Get search page navigation timeout in milliseconds"""
        return int(self.get('browser.search_navigation_timeout', 60) * 1000)

    # === Crawl Config ===

    def get_max_details_per_source(self) -> int:
        """Get how many listings per source are opened for detail enrichment"""
        return int(self.get('crawl.max_details_per_source', 20))

    def get_scroll_cycles(self) -> int:
        return int(self.get('crawl.scroll_cycles', 3))

    def get_scroll_target(self) -> int:
        return int(self.get('crawl.scroll_target', 20))

    def get_results_settle_ms(self) -> int:
        return int(self.get('crawl.results_settle_ms', 10000))

    def get_results_timeout(self) -> int:
        """Get wait for a results container in milliseconds"""
        return int(self.get('crawl.results_timeout', 15) * 1000)

    def get_detail_settle_ms(self) -> int:
        return int(self.get('crawl.detail_settle_ms', 5000))

    def get_search_box_timeout(self) -> int:
        """Get first search box wait in milliseconds"""
        return int(self.get('crawl.search_box_timeout', 30) * 1000)

    def get_search_box_retry_timeout(self) -> int:
        """Get search box wait after reload in milliseconds"""
        return int(self.get('crawl.search_box_retry_timeout', 20) * 1000)

    # === Captcha Config ===

    def get_captcha_max_polls(self) -> int:
        return int(self.get('captcha.max_polls', 60))

    def get_captcha_poll_interval(self) -> float:
        """Get seconds between captcha answer polls"""
        return float(self.get('captcha.poll_interval', 1.0))

    # === Export Config ===

    def get_download_timeout(self) -> int:
        """Get native download wait in milliseconds"""
        return int(self.get('export.download_timeout', 45) * 1000)

    def get_export_navigation_timeout(self) -> int:
        return int(self.get('export.navigation_timeout', 60) * 1000)

    # === API Config ===

    def get_api_host(self) -> str:
        return self.get('api.host', '127.0.0.1')

    def get_api_port(self) -> int:
        return int(self.get('api.port', 3001))

    def get_cors_origins(self) -> List[str]:
        return list(self.get('api.cors_origins', ['*']) or [])

    # === Search Config (CLI collect) ===

    def get_search_criteria(self) -> Dict[str, Any]:
        """Get filter criteria for a CLI batch"""
        search = self.get('search', {}) or {}
        return {k: v for k, v in search.items() if k != 'sources' and v is not None}

    def get_sources(self) -> List[str]:
        """Get list of sources to crawl from the CLI"""
        return list(self.get('search.sources', []) or [])

    def get_credentials(self, source: str) -> Optional[Dict[str, str]]:
        """Get credentials for a source, falling back to JOBDB_<SOURCE>_USER/_PASSWORD"""
        creds = self.get(f'credentials.{source}', {}) or {}
        env_prefix = f"JOBDB_{source.upper()}"
        user = creds.get('user') or os.getenv(f"{env_prefix}_USER", "")
        password = creds.get('password') or os.getenv(f"{env_prefix}_PASSWORD", "")
        if not user and not password:
            return None
        return {"user": user, "password": password}

    # === Metrics Config ===

    def is_metrics_enabled(self) -> bool:
        return bool(self.get('metrics.enabled', False))

    def get_metrics_template(self) -> str:
        return self.get('metrics.output', 'output/batch_metrics_{timestamp}.json')

    # === Logging Config ===

    def get_log_level(self) -> str:
        """Get logging level"""
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Path:
        """Get log file path with timestamp"""
        template = self.get('logging.log_file', 'logs/jobdb_relay_{timestamp}.log')
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = template.replace('{timestamp}', timestamp)
        return Path(filename)

    def __repr__(self) -> str:
        return f"<Config: {self.config_path}, headless={self.is_headless()}>"


# Convenience function
def load_config(config_path: Optional[str] = None) -> ConfigLoader:
    """Load configuration from file"""
    return ConfigLoader(config_path or os.getenv("JOBDB_RELAY_CONFIG") or DEFAULT_CONFIG_PATH)
