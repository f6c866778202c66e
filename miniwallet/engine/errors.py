"""
Wallet engine error handling.
"""

from miniwallet.engine.constants import _ERROR_MESSAGES


class WalletError(Exception):
    """Error reported by the wallet engine through a completion callback"""
    def __init__(self, code: int, message: str = None):
        self.code = code
        self.message = message or _ERROR_MESSAGES.get(code, f"Unknown error ({code})")
        super().__init__(self.message)


class OperationTimeout(Exception):
    """Raised when a bridged engine operation did not complete in time"""
