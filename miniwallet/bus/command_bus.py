"""
CommandBus - the four polling loops serving one wallet session.
"""

import logging
import threading
from typing import List

from miniwallet.bus.loops import PollingLoop, StatusLoop, TransactionLoop, ResetLoop, SaveLoop
from miniwallet.config import Config

logger = logging.getLogger(__name__)

LOOP_TYPES = (StatusLoop, TransactionLoop, ResetLoop, SaveLoop)


class CommandBus:
    """
    Runs the status, transaction, reset and save loops against a shared
    session. All loops share one stop event.

    Args:
        session: WalletSessionManager shared by every loop
        base: wallet base name the sentinel files are derived from
    """

    def __init__(self, session, base: str):
        self.session = session
        self.base = base
        self._stop_event = threading.Event()
        self.loops: List[PollingLoop] = [cls(session, base, self._stop_event) for cls in LOOP_TYPES]

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def start(self):
        self._stop_event.clear()
        for loop in self.loops:
            loop.start()
        logger.info("[BUS] Front-end helper started: %s", self.base)

    def stop(self, timeout: float = None):
        """Ask every loop to stop at its next checkpoint and wait for it"""
        timeout = Config.STOP_TIMEOUT if timeout is None else timeout
        self._stop_event.set()
        for loop in self.loops:
            loop.join(timeout)
            if loop.is_alive():
                logger.warning("[BUS] %s loop still busy, leaving it to finish", loop.name)
        logger.info("[BUS] Front-end helper stopped")

    def is_running(self) -> bool:
        return any(loop.is_alive() for loop in self.loops)
