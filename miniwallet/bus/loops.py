"""
Polling loops serving the sentinel-file channels.

Each loop runs on its own daemon thread and sleeps on a stop Event between
iterations, so a stop request is honoured at the next checkpoint. An
operation already running (a send waiting on the engine, say) is never
interrupted.
"""

import logging
import threading
from typing import Optional

from miniwallet.bus.channels import (
    SentinelChannel, remove_file, read_request_line,
    ADDRESS, STATUS, TXS, TXCAST, TXRESULT, RESET, SAVE,
)
from miniwallet.config import Config
from miniwallet.wallet.errors import TransferParseError
from miniwallet.wallet.transfer import parse_transfer_request

logger = logging.getLogger(__name__)


class PollingLoop:
    """
    Base polling loop. Subclasses implement run_once() and return the
    number of seconds to wait before the next iteration.
    """

    name = "loop"

    def __init__(self, session, base: str, stop_event: threading.Event = None):
        self.session = session
        self.base = base
        self.error_backoff = Config.ERROR_BACKOFF
        self._stop_event = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> float:
        raise NotImplementedError

    def start(self):
        if self._thread and self._thread.is_alive():
            return  # Already running
        self._thread = threading.Thread(target=self._run, name=f"miniwallet-{self.name}", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = None):
        self._stop_event.set()
        self.join(timeout)

    def join(self, timeout: float = None):
        if self._thread:
            self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self):
        logger.debug("[BUS] %s loop started", self.name)
        while not self._stop_event.is_set():
            try:
                delay = self.run_once()
            except Exception as e:
                logger.error("[BUS] %s loop error: %s", self.name, e, exc_info=True)
                delay = self.error_backoff
            self._stop_event.wait(delay)
        logger.debug("[BUS] %s loop stopped", self.name)


class StatusLoop(PollingLoop):
    """Exports address, balance and history; files are rewritten only on change"""

    name = "status"

    def __init__(self, session, base: str, stop_event: threading.Event = None):
        super().__init__(session, base, stop_event)
        self.interval = Config.STATUS_INTERVAL
        self.address = SentinelChannel(base, ADDRESS)
        self.status = SentinelChannel(base, STATUS)
        self.txs = SentinelChannel(base, TXS)
        self._last_balance = ""
        self._last_txs: Optional[str] = None

    def run_once(self) -> float:
        if not self.address.exists():
            self.address.write(self.session.address())

        balance = self.session.balance_string()
        if balance and balance != self._last_balance:
            self.status.write(balance)
            self._last_balance = balance

        txs = self.session.transactions_export()
        if txs != self._last_txs or not self.txs.exists():
            self.txs.write(txs)
            self._last_txs = txs

        return self.interval


class TransactionLoop(PollingLoop):
    """Turns "W.txcast" requests into transfers, answers in "W.txresult" """

    name = "transaction"

    def __init__(self, session, base: str, stop_event: threading.Event = None):
        super().__init__(session, base, stop_event)
        self.interval = Config.TX_INTERVAL
        self.error_backoff = Config.TX_ERROR_BACKOFF
        self.request = SentinelChannel(base, TXCAST)
        self.result = SentinelChannel(base, TXRESULT)

    def run_once(self) -> float:
        if not self.request.exists():
            return self.interval

        claimed = self.request.claim()
        if claimed is None:
            return self.interval

        try:
            line = read_request_line(claimed)
        except OSError as e:
            logger.error("[BUS] Cannot read transfer request %s: %s", claimed, e)
            self.result.write(f"Parse error: cannot read request: {e}")
            return self.interval
        finally:
            remove_file(claimed)

        self.result.write(self.process(line))
        return self.interval

    def process(self, line: Optional[str]) -> str:
        """Parse and submit one request line, returning the result text"""
        if line is None:
            return "Parse error: incomplete request"
        if not line:
            return "Parse error: empty request"

        try:
            request = parse_transfer_request(line, self.session.currency)
        except TransferParseError as e:
            logger.warning("[BUS] Rejected transfer request: %s", e)
            return f"Parse error: {e}"

        logger.info("[BUS] Sending %s to %d destination(s), mixin %d",
                    self.session.currency.format_amount(request.total_amount),
                    len(request.destinations), request.mixin)
        result = self.session.submit_transfer(request)
        if not result.ok:
            logger.warning("[BUS] Transfer failed: %s", result)
        return str(result)


class ResetLoop(PollingLoop):
    """Forces a full resynchronization when "W.reset" appears"""

    name = "reset"

    def __init__(self, session, base: str, stop_event: threading.Event = None):
        super().__init__(session, base, stop_event)
        self.interval = Config.RESET_IDLE_INTERVAL
        self.cooldown = Config.RESET_COOLDOWN
        self.request = SentinelChannel(base, RESET)

    def run_once(self) -> float:
        if not self.request.exists() or self.request.claim() is None:
            return self.interval

        logger.info("[BUS] Reset requested")
        self.session.reset_and_reload()
        return self.cooldown


class SaveLoop(PollingLoop):
    """Persists the wallet when "W.save" appears"""

    name = "save"

    def __init__(self, session, base: str, stop_event: threading.Event = None):
        super().__init__(session, base, stop_event)
        self.interval = Config.SAVE_IDLE_INTERVAL
        self.cooldown = Config.SAVE_COOLDOWN
        self.request = SentinelChannel(base, SAVE)

    def run_once(self) -> float:
        if not self.request.exists() or self.request.claim() is None:
            return self.interval

        logger.info("[BUS] Save requested")
        if not self.session.persist(require_synchronized=True):
            logger.info("[BUS] Save skipped, wallet is still synchronizing")
        return self.cooldown
