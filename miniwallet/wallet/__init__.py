"""
miniwallet.wallet - wallet session, files and transfer requests.

Re-exports the public API from submodules.
"""

from miniwallet.wallet.errors import SessionError, ConfigurationError, TransferParseError
from miniwallet.wallet.files import (
    prepare_file_names,
    address_file_name,
    write_atomic,
    write_address_file,
    backup_file,
)
from miniwallet.wallet.transfer import TransferRequest, parse_transfer_request, request_arguments
from miniwallet.wallet.progress import ProgressReporter, RefreshProgressReporter
from miniwallet.wallet.session import (
    UNINITIALIZED,
    OPENING,
    LOADED,
    GENERATED,
    FAILED,
    READY,
    CLOSED,
    TransferResult,
    WalletSessionManager,
)
from miniwallet.wallet.qr import generate_qr_ascii

__all__ = [
    "SessionError",
    "ConfigurationError",
    "TransferParseError",
    "prepare_file_names",
    "address_file_name",
    "write_atomic",
    "write_address_file",
    "backup_file",
    "TransferRequest",
    "parse_transfer_request",
    "request_arguments",
    "ProgressReporter",
    "RefreshProgressReporter",
    "UNINITIALIZED",
    "OPENING",
    "LOADED",
    "GENERATED",
    "FAILED",
    "READY",
    "CLOSED",
    "TransferResult",
    "WalletSessionManager",
    "generate_qr_ascii",
]
