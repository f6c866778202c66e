"""
miniwallet.engine - wallet engine contract and blocking adapters.

Re-exports the public API from submodules.
"""

# Constants
from miniwallet.engine.constants import (
    WALLET_OK,
    WALLET_ERR_INTERNAL,
    WALLET_ERR_WRONG_PASSWORD,
    WALLET_ERR_NOT_INITIALIZED,
    WALLET_ERR_ALREADY_INITIALIZED,
    WALLET_ERR_WRONG_STATE,
    WALLET_ERR_WRONG_AMOUNT,
    WALLET_ERR_MIXIN_COUNT_TOO_BIG,
    WALLET_ERR_FEE_TOO_SMALL,
    WALLET_ERR_TX_CANCELLED,
    WALLET_ERR_BAD_ADDRESS,
    WALLET_ERR_FORMAT,
    WALLET_ERR_INVALID_ARGUMENT,
    INVALID_TRANSACTION_ID,
    UNCONFIRMED_TRANSACTION_HEIGHT,
)

# Errors
from miniwallet.engine.errors import WalletError, OperationTimeout

# Interface
from miniwallet.engine.interface import (
    TX_STATE_ACTIVE,
    TX_STATE_DELETED,
    TX_STATE_SENDING,
    TX_STATE_CANCELLED,
    TX_STATE_FAILED,
    Transfer,
    WalletTransaction,
    WalletObserver,
    WalletEngine,
)

# Bridge
from miniwallet.engine.bridge import (
    INIT,
    SAVE,
    SEND,
    PendingOperation,
    AsyncCompletionBridge,
    observer_guard,
)

# Backend loading
from miniwallet.engine.loader import BackendError, load_backend

__all__ = [
    # Constants
    "WALLET_OK",
    "WALLET_ERR_INTERNAL",
    "WALLET_ERR_WRONG_PASSWORD",
    "WALLET_ERR_NOT_INITIALIZED",
    "WALLET_ERR_ALREADY_INITIALIZED",
    "WALLET_ERR_WRONG_STATE",
    "WALLET_ERR_WRONG_AMOUNT",
    "WALLET_ERR_MIXIN_COUNT_TOO_BIG",
    "WALLET_ERR_FEE_TOO_SMALL",
    "WALLET_ERR_TX_CANCELLED",
    "WALLET_ERR_BAD_ADDRESS",
    "WALLET_ERR_FORMAT",
    "WALLET_ERR_INVALID_ARGUMENT",
    "INVALID_TRANSACTION_ID",
    "UNCONFIRMED_TRANSACTION_HEIGHT",
    # Errors
    "WalletError",
    "OperationTimeout",
    # Interface
    "TX_STATE_ACTIVE",
    "TX_STATE_DELETED",
    "TX_STATE_SENDING",
    "TX_STATE_CANCELLED",
    "TX_STATE_FAILED",
    "Transfer",
    "WalletTransaction",
    "WalletObserver",
    "WalletEngine",
    # Bridge
    "INIT",
    "SAVE",
    "SEND",
    "PendingOperation",
    "AsyncCompletionBridge",
    "observer_guard",
    # Backend loading
    "BackendError",
    "load_backend",
]
