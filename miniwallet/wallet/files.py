"""
Wallet file naming and crash-safe writes.

A wallet named "W" lives in "W.wallet"; older installs kept keys only in
"W.keys". Files the daemon hands to the front-end are replaced atomically
so a reader sees either the old or the new content, never a partial file.
"""

import os
import tempfile
import logging
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)

WALLET_EXT = ".wallet"
KEYS_EXT = ".keys"
ADDRESS_EXT = ".address"
BACKUP_EXT = ".back"


def prepare_file_names(file_path: str) -> Tuple[str, str]:
    """
    Derive (keys_file, wallet_file) from a user supplied path.

        w.keys   -> (w.keys, w.wallet)
        w.wallet -> (w.keys, w.wallet)
        w        -> (w.keys, w.wallet)
        w.bin    -> (w.bin.keys, w.bin.wallet)
    """
    base, ext = os.path.splitext(file_path)
    if ext == KEYS_EXT:
        return file_path, base + WALLET_EXT
    if ext == WALLET_EXT:
        return base + KEYS_EXT, file_path
    return file_path + KEYS_EXT, file_path + WALLET_EXT


def address_file_name(wallet_base: str) -> str:
    return wallet_base + ADDRESS_EXT


def write_atomic(path: Union[str, Path], data: Union[bytes, str]):
    """
    Replace path with data. The content goes to a sibling temp file first
    and is renamed over path only once fully written and flushed.
    """
    path = str(path)
    if isinstance(data, str):
        data = data.encode()

    directory = os.path.dirname(os.path.abspath(path))
    fd, temp_path = tempfile.mkstemp(prefix=os.path.basename(path) + ".tmp.", dir=directory)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def write_address_file(path: str, address: str) -> bool:
    """Write the plain-text address export. Returns False on I/O failure."""
    try:
        write_atomic(path, address)
        return True
    except OSError as e:
        logger.warning("Couldn't write wallet address file %s: %s", path, e)
        return False


def backup_file(path: str) -> str:
    """Move path aside to path + '.back', returns the backup name"""
    backup = path + BACKUP_EXT
    os.replace(path, backup)
    return backup
