"""
Wallet engine constants.

Error codes, sentinel values and transaction markers shared between the
engine backend and the daemon.
"""

# Error codes reported through WalletError
WALLET_OK = 0
WALLET_ERR_INTERNAL = -1
WALLET_ERR_WRONG_PASSWORD = -2
WALLET_ERR_NOT_INITIALIZED = -3
WALLET_ERR_ALREADY_INITIALIZED = -4
WALLET_ERR_WRONG_STATE = -5
WALLET_ERR_WRONG_AMOUNT = -6
WALLET_ERR_MIXIN_COUNT_TOO_BIG = -7
WALLET_ERR_FEE_TOO_SMALL = -8
WALLET_ERR_TX_CANCELLED = -9
WALLET_ERR_BAD_ADDRESS = -10
WALLET_ERR_FORMAT = -11
WALLET_ERR_INVALID_ARGUMENT = -12

# Returned by send_transaction when the transfer was rejected up front
INVALID_TRANSACTION_ID = -1

# Block height reported for transactions still in the pool
UNCONFIRMED_TRANSACTION_HEIGHT = 0xFFFFFFFF

# Error messages
_ERROR_MESSAGES = {
    WALLET_OK: "Success",
    WALLET_ERR_INTERNAL: "Internal error",
    WALLET_ERR_WRONG_PASSWORD: "The password is wrong",
    WALLET_ERR_NOT_INITIALIZED: "Object was not initialized",
    WALLET_ERR_ALREADY_INITIALIZED: "The object is already initialized",
    WALLET_ERR_WRONG_STATE: "The wallet is in wrong state (maybe loading or saving), try again later",
    WALLET_ERR_WRONG_AMOUNT: "Wrong amount",
    WALLET_ERR_MIXIN_COUNT_TOO_BIG: "MixIn count is too big",
    WALLET_ERR_FEE_TOO_SMALL: "Transaction fee is too small",
    WALLET_ERR_TX_CANCELLED: "Transaction cancelled",
    WALLET_ERR_BAD_ADDRESS: "Bad address",
    WALLET_ERR_FORMAT: "Wallet file format is not supported",
    WALLET_ERR_INVALID_ARGUMENT: "Invalid argument",
}
