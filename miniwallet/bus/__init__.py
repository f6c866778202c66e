"""
miniwallet.bus - sentinel-file channels and the polling loops serving them.

Re-exports the public API from submodules.
"""

from miniwallet.bus.channels import (
    ADDRESS,
    STATUS,
    TXS,
    TXCAST,
    TXRESULT,
    RESET,
    SAVE,
    CLAIMED_SUFFIX,
    SentinelChannel,
    remove_file,
    read_request_line,
)
from miniwallet.bus.loops import PollingLoop, StatusLoop, TransactionLoop, ResetLoop, SaveLoop
from miniwallet.bus.command_bus import CommandBus

__all__ = [
    "ADDRESS",
    "STATUS",
    "TXS",
    "TXCAST",
    "TXRESULT",
    "RESET",
    "SAVE",
    "CLAIMED_SUFFIX",
    "SentinelChannel",
    "remove_file",
    "read_request_line",
    "PollingLoop",
    "StatusLoop",
    "TransactionLoop",
    "ResetLoop",
    "SaveLoop",
    "CommandBus",
]
