"""
Wallet engine interface.

The engine (key storage, transaction building, chain synchronization) is
supplied by a backend. The daemon only relies on the methods below and on
the observer callbacks, which the engine delivers from its own threads.
"""

from typing import List, Optional

from miniwallet.engine.constants import UNCONFIRMED_TRANSACTION_HEIGHT

# Transaction states
TX_STATE_ACTIVE = "active"
TX_STATE_DELETED = "deleted"
TX_STATE_SENDING = "sending"
TX_STATE_CANCELLED = "cancelled"
TX_STATE_FAILED = "failed"


class Transfer:
    """One transaction destination"""

    def __init__(self, address: str, amount: int):
        self.address = address
        self.amount = amount

    def __eq__(self, other):
        if not isinstance(other, Transfer):
            return NotImplemented
        return self.address == other.address and self.amount == other.amount

    def __repr__(self):
        return f"Transfer({self.address!r}, {self.amount})"


class WalletTransaction:
    """Transaction record as reported by the engine"""

    def __init__(self, hash: bytes, total_amount: int, fee: int = 0,
                 block_height: int = UNCONFIRMED_TRANSACTION_HEIGHT,
                 unlock_time: int = 0, extra: bytes = b"",
                 state: str = TX_STATE_ACTIVE, timestamp: int = 0):
        self.hash = hash
        self.total_amount = total_amount
        self.fee = fee
        self.block_height = block_height
        self.unlock_time = unlock_time
        self.extra = extra
        self.state = state
        self.timestamp = timestamp

    @property
    def is_confirmed(self) -> bool:
        return self.block_height != UNCONFIRMED_TRANSACTION_HEIGHT


class WalletObserver:
    """
    Base class for engine observers. Every callback is a no-op so
    subclasses only override what they listen to.

    Callbacks run on an engine thread.
    """

    def init_completed(self, error):
        pass

    def save_completed(self, error):
        pass

    def send_transaction_completed(self, transaction_id: int, error):
        pass

    def external_transaction_created(self, transaction_id: int):
        pass

    def synchronization_progress_updated(self, current: int, total: int):
        pass

    def synchronization_completed(self, error):
        pass

    def actual_balance_updated(self, balance: int):
        pass

    def pending_balance_updated(self, balance: int):
        pass


class WalletEngine:
    """
    Contract of the wallet engine.

    init_and_load, init_and_generate, save and send_transaction return
    immediately; their outcome arrives through the matching observer
    callback (error is None on success, a WalletError otherwise).
    """

    def add_observer(self, observer: WalletObserver):
        raise NotImplementedError

    def remove_observer(self, observer: WalletObserver):
        raise NotImplementedError

    def init_and_load(self, stream, password: str):
        raise NotImplementedError

    def init_and_generate(self, password: str):
        raise NotImplementedError

    def save(self, stream, save_detailed: bool = True, save_cache: bool = True):
        raise NotImplementedError

    def shutdown(self):
        raise NotImplementedError

    def send_transaction(self, transfers: List[Transfer], fee: int, extra: bytes = b"",
                         mixin: int = 0, unlock_time: int = 0) -> int:
        raise NotImplementedError

    def get_address(self) -> str:
        raise NotImplementedError

    def get_transaction_count(self) -> int:
        raise NotImplementedError

    def get_transaction(self, transaction_id: int) -> Optional[WalletTransaction]:
        raise NotImplementedError

    def actual_balance(self) -> int:
        raise NotImplementedError

    def pending_balance(self) -> int:
        raise NotImplementedError
