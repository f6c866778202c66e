"""
Synchronization progress and incoming/outgoing transaction reporting.
"""

import time
import logging
from typing import Callable, Optional

from miniwallet.config import Config
from miniwallet.engine.interface import WalletObserver

logger = logging.getLogger(__name__)


class RefreshProgressReporter:
    """
    Rate-limited "Height h of H" output.

    H is the node's last known height, re-read at most every
    height_refresh_interval seconds unless the wallet overtakes it.
    """

    def __init__(self, node=None, interval: float = None, height_refresh_interval: float = None,
                 clock: Callable[[], float] = time.monotonic):
        self._node = node
        self._interval = Config.PROGRESS_INTERVAL if interval is None else interval
        self._height_refresh_interval = (Config.HEIGHT_REFRESH_INTERVAL
                                         if height_refresh_interval is None else height_refresh_interval)
        self._clock = clock
        self._blockchain_height = 0
        self._height_update_time: Optional[float] = None
        self._print_time: Optional[float] = None

    @property
    def blockchain_height(self) -> int:
        return self._blockchain_height

    def set_known_height(self, height: int):
        self._blockchain_height = max(self._blockchain_height, height)

    def _refresh_blockchain_height(self, now: float):
        if self._node is not None:
            try:
                self._blockchain_height = max(self._blockchain_height,
                                              self._node.get_last_known_block_height())
            except Exception as e:
                logger.debug("Could not read node height: %s", e)
        self._height_update_time = now

    def update(self, height: int, force: bool = False) -> bool:
        """Report height. Returns True if a line was emitted."""
        now = self._clock()
        stale = (self._height_update_time is None
                 or now - self._height_update_time > self._height_refresh_interval)
        if stale or self._blockchain_height <= height:
            self._refresh_blockchain_height(now)
            self._blockchain_height = max(self._blockchain_height, height)

        if not force and self._print_time is not None and now - self._print_time < self._interval:
            return False

        total = self._blockchain_height or height
        percent = (100.0 * height / total) if total else 100.0
        logger.info("Height %d of %d (%.1f%%)", height, total, min(percent, 100.0))
        self._print_time = now
        return True


class ProgressReporter(WalletObserver):
    """
    Engine and node observer for a wallet session.

    Logs every external transaction, forwards sync progress to the
    rate-limited reporter until the first full sync and then flags the
    session as synchronized.

    Callbacks run on engine/node threads and must not take the session lock.
    """

    def __init__(self, session, node=None, refresh: RefreshProgressReporter = None):
        self._session = session
        self._node = node
        self.refresh = refresh or RefreshProgressReporter(node)

    # Wallet callbacks

    def external_transaction_created(self, transaction_id: int):
        engine = self._session.engine
        tx = engine.get_transaction(transaction_id)
        if tx is None:
            return

        currency = self._session.currency
        if tx.is_confirmed:
            prefix = f"Height {tx.block_height},"
        else:
            prefix = "Unconfirmed"

        if tx.total_amount >= 0:
            logger.info("%s transaction %s, received %s",
                        prefix, tx.hash.hex(), currency.format_amount(tx.total_amount))
        else:
            logger.info("%s transaction %s, spent %s",
                        prefix, tx.hash.hex(), currency.format_amount(-tx.total_amount))

        if tx.is_confirmed:
            self.refresh.update(tx.block_height, True)
        elif self._node is not None:
            self.refresh.update(self._node.get_last_local_block_height(), True)

    def synchronization_progress_updated(self, current: int, total: int):
        if not self._session.synchronized:
            self.refresh.set_known_height(total)
            self.refresh.update(current, False)

    def synchronization_completed(self, error):
        if error:
            logger.warning("[SESSION] Synchronization finished with error: %s", error)
        self._session.mark_synchronized()

    # Node callbacks

    def last_known_block_height_updated(self, height: int):
        self.refresh.set_known_height(height)

    def connection_status_updated(self, connected: bool):
        if connected:
            logger.info("[NODE] Connected")
        else:
            logger.warning("[NODE] Connection lost")
