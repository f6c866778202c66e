"""
Daemon configuration for miniwallet.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class Config:
    """Daemon configuration"""
    # Settings directory
    CONFIG_DIR = Path.home() / ".miniwallet"

    # Remote coin daemon
    DAEMON_HOST = "localhost"
    DAEMON_PORT = 8081
    NODE_TIMEOUT = 30              # seconds per HTTP request
    NODE_REFRESH_INTERVAL = 10     # seconds between /getinfo polls

    # Route node traffic through a SOCKS proxy, e.g. "socks5h://127.0.0.1:9050" for Tor
    NODE_PROXY = None

    # Wallet engine backend, "package.module:attribute"
    ENGINE_BACKEND = ""

    # ==========================================================================
    # POLLING LOOPS (seconds)
    # ==========================================================================

    STATUS_INTERVAL = 5
    TX_INTERVAL = 2
    RESET_IDLE_INTERVAL = 5
    RESET_COOLDOWN = 60
    SAVE_IDLE_INTERVAL = 5
    SAVE_COOLDOWN = 10
    ERROR_BACKOFF = 2
    TX_ERROR_BACKOFF = 1

    # Sentinel claim / delete retries
    CLAIM_RETRIES = 3
    CLAIM_BACKOFF = 1.0

    # Seconds to wait for each loop thread on shutdown
    STOP_TIMEOUT = 5

    # ==========================================================================
    # CURRENCY
    # ==========================================================================

    DECIMAL_POINT = 8
    MINIMUM_FEE = 1000000

    # ==========================================================================

    # Sync progress output
    PROGRESS_INTERVAL = 1.0
    HEIGHT_REFRESH_INTERVAL = 60.0

    LOG_LEVEL = "INFO"

    @classmethod
    def settings_path(cls) -> Path:
        return cls.CONFIG_DIR / "config.json"

    @classmethod
    def load_saved_settings(cls, path: Path = None) -> bool:
        """
        Override class attributes from a JSON settings file.
        Keys are attribute names, case-insensitive; unknown keys are ignored.
        Returns True if a file was applied.
        """
        config_path = Path(path) if path else cls.settings_path()
        if not config_path.exists():
            return False

        try:
            with open(config_path, 'r') as f:
                settings = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", config_path, e)
            return False

        if not isinstance(settings, dict):
            logger.warning("Ignoring settings file %s: expected a JSON object", config_path)
            return False

        for key, value in settings.items():
            attr = str(key).upper()
            if attr.startswith('_') or not hasattr(cls, attr) or callable(getattr(cls, attr)):
                logger.debug("Unknown setting %r ignored", key)
                continue
            setattr(cls, attr, value)
        return True
