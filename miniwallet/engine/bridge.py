"""
Blocking adapters over the engine's observer callbacks.

An engine call such as save() returns at once and reports its outcome later
through save_completed() on an engine thread. AsyncCompletionBridge turns
that into a plain blocking call: it registers a one-shot observer, issues
the call, and waits on a single-assignment slot until the callback fills it.

The observer is always registered before the call is issued, otherwise a
fast engine could complete before anyone listens.

Example:
    bridge = AsyncCompletionBridge(engine)
    error = bridge.issue(SAVE, lambda: engine.save(buf, True, True))
    if error:
        raise error
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Optional, Tuple

from miniwallet.engine.constants import INVALID_TRANSACTION_ID, WALLET_ERR_TX_CANCELLED
from miniwallet.engine.errors import WalletError, OperationTimeout
from miniwallet.engine.interface import WalletObserver

logger = logging.getLogger(__name__)

# Operation kinds
INIT = "init"
SAVE = "save"
SEND = "send"


class PendingOperation:
    """Single-assignment result slot for one in-flight engine call"""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._result = None
        self._fulfilled = False

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def fulfill(self, result) -> bool:
        """Store the result. Only the first call counts; later ones are logged and dropped."""
        with self._lock:
            if self._fulfilled:
                logger.warning("[BRIDGE] Duplicate completion for %s ignored", self.name)
                return False
            self._result = result
            self._fulfilled = True
        self._done.set()
        return True

    def wait(self, timeout: Optional[float] = None):
        if not self._done.wait(timeout):
            raise OperationTimeout(f"{self.name} did not complete within {timeout}s")
        return self._result


class _CompletionObserver(WalletObserver):
    """One-shot observer feeding PendingOperation slots for a single kind"""

    def __init__(self, kind: str):
        self.kind = kind
        self._lock = threading.Lock()
        self._slot = PendingOperation(kind)
        self._sends: Dict[int, PendingOperation] = {}

    def send_slot(self, transaction_id: int) -> PendingOperation:
        # The completion may arrive before send_transaction() has returned the id
        with self._lock:
            slot = self._sends.get(transaction_id)
            if slot is None:
                slot = PendingOperation(f"send #{transaction_id}")
                self._sends[transaction_id] = slot
            return slot

    @property
    def slot(self) -> PendingOperation:
        return self._slot

    def init_completed(self, error):
        if self.kind == INIT:
            self._slot.fulfill(error)

    def save_completed(self, error):
        if self.kind == SAVE:
            self._slot.fulfill(error)

    def send_transaction_completed(self, transaction_id: int, error):
        if self.kind == SEND:
            self.send_slot(transaction_id).fulfill(error)


@contextmanager
def observer_guard(engine, observer: WalletObserver):
    """
    Keep observer attached to engine for the duration of the block.
    Removal happens on every exit path so no callback lands in a
    finished bridge.
    """
    engine.add_observer(observer)
    try:
        yield observer
    finally:
        try:
            engine.remove_observer(observer)
        except Exception as e:
            logger.warning("[BRIDGE] Failed to detach observer: %s", e)


class AsyncCompletionBridge:
    """
    Turns observer-based engine operations into blocking calls.

    Args:
        engine: WalletEngine to listen on
        timeout: Seconds to wait for a completion, None waits forever
    """

    def __init__(self, engine, timeout: Optional[float] = None):
        self._engine = engine
        self._timeout = timeout

    def issue(self, kind: str, trigger: Callable[[], object]) -> Optional[WalletError]:
        """
        Run trigger() with a one-shot INIT or SAVE observer attached and
        wait for its completion. Returns the engine's error, None on success.
        """
        if kind not in (INIT, SAVE):
            raise ValueError(f"issue() handles {INIT!r} and {SAVE!r}, got {kind!r}")

        with observer_guard(self._engine, _CompletionObserver(kind)) as observer:
            trigger()
            return observer.slot.wait(self._timeout)

    def issue_send(self, trigger: Callable[[], int]) -> Tuple[int, Optional[WalletError]]:
        """
        Run trigger() (which must return the transaction id) with a send
        observer attached and wait for that transaction's completion.

        Returns (transaction_id, error).
        """
        with observer_guard(self._engine, _CompletionObserver(SEND)) as observer:
            transaction_id = trigger()
            if transaction_id == INVALID_TRANSACTION_ID:
                return transaction_id, WalletError(WALLET_ERR_TX_CANCELLED, "Can't send money")
            return transaction_id, observer.send_slot(transaction_id).wait(self._timeout)
