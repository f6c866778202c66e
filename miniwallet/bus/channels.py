"""
Sentinel-file channels shared with the front-end.

For a wallet base name W the front-end and the daemon exchange:

    W.address   daemon -> front-end   wallet address, written once
    W.status    daemon -> front-end   available|locked
    W.txs       daemon -> front-end   transaction history
    W.txcast    front-end -> daemon   transfer request
    W.txresult  daemon -> front-end   transaction hash or error text
    W.reset     front-end -> daemon   presence-only trigger
    W.save      front-end -> daemon   presence-only trigger

A request is consumed by renaming it to "<name>_". Rename is atomic, so when
two claimers race exactly one of them gets the file.
"""

import os
import time
import logging
from typing import Callable, Optional

from miniwallet.config import Config
from miniwallet.wallet.files import write_atomic

logger = logging.getLogger(__name__)

ADDRESS = ".address"
STATUS = ".status"
TXS = ".txs"
TXCAST = ".txcast"
TXRESULT = ".txresult"
RESET = ".reset"
SAVE = ".save"

CLAIMED_SUFFIX = "_"


class SentinelChannel:
    """One sentinel file next to the wallet"""

    def __init__(self, base: str, suffix: str):
        self.suffix = suffix
        self.path = base + suffix

    @property
    def claimed_path(self) -> str:
        return self.path + CLAIMED_SUFFIX

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def claim(self, retries: int = None, backoff: float = None,
              sleep: Callable[[float], None] = time.sleep) -> Optional[str]:
        """
        Take ownership of the pending request by renaming it.
        Returns the claimed path, or None if there was nothing to claim or
        the file stayed busy for every attempt.
        """
        retries = Config.CLAIM_RETRIES if retries is None else retries
        backoff = Config.CLAIM_BACKOFF if backoff is None else backoff

        for attempt in range(retries + 1):
            try:
                os.replace(self.path, self.claimed_path)
                return self.claimed_path
            except FileNotFoundError:
                # Already consumed by someone else
                return None
            except OSError as e:
                if attempt < retries:
                    logger.debug("Claim of %s failed (%s), retrying", self.path, e)
                    sleep(backoff)
                else:
                    logger.warning("[BUS] Could not claim %s after %d attempts: %s",
                                   self.path, retries + 1, e)
        return None

    def write(self, content: str):
        write_atomic(self.path, content)

    def read(self) -> Optional[str]:
        try:
            with open(self.path, 'r') as f:
                return f.read()
        except FileNotFoundError:
            return None


def remove_file(path: str, retries: int = None, backoff: float = None,
                sleep: Callable[[float], None] = time.sleep) -> bool:
    """Delete path, retrying while the writing side still holds it"""
    retries = Config.CLAIM_RETRIES if retries is None else retries
    backoff = Config.CLAIM_BACKOFF if backoff is None else backoff

    for attempt in range(retries + 1):
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            if attempt < retries:
                sleep(backoff)
            else:
                logger.warning("[BUS] Could not remove %s: %s", path, e)
    return False


def read_request_line(path: str) -> Optional[str]:
    """
    Read the request held by a claimed file: the first non-empty line.
    Returns '' for an empty file and None when that line is not
    terminated by a newline (the front-end has not finished writing it).
    """
    with open(path, 'r', newline='') as f:
        for raw in f:
            line = raw.strip()
            if line:
                return line if raw.endswith(('\n', '\r')) else None
    return ""
