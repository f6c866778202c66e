"""
Wallet session lifecycle.

WalletSessionManager owns the engine handle and is the only object the
polling loops talk to. Every method that touches the engine runs under one
re-entrant lock, so a reset (which shuts the engine down and re-initializes
it in place) can never interleave with a save, a send or a status read.

States:
    uninitialized -> opening -> ready | failed -> closed

Whether a ready session was loaded from disk or generated is kept in
`origin` (LOADED or GENERATED); the state itself goes straight from
opening to ready under the lock.

Opening reconciles what is on disk for a wallet named W:
    W.wallet          current format, loaded directly
    W.keys            legacy keys, imported and re-saved as W.wallet
    W (bare file)     renamed to W.wallet and loaded
Originals touched by a legacy import are kept as *.back.
"""

import io
import os
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from miniwallet.currency import Currency, get_payment_id_from_tx_extra, NULL_HASH
from miniwallet.engine.bridge import AsyncCompletionBridge, INIT, SAVE
from miniwallet.engine.errors import WalletError
from miniwallet.engine.interface import TX_STATE_ACTIVE
from miniwallet.wallet.errors import SessionError, ConfigurationError
from miniwallet.wallet.files import (
    prepare_file_names, address_file_name, write_atomic, write_address_file, backup_file,
)
from miniwallet.wallet.progress import ProgressReporter
from miniwallet.wallet.qr import generate_qr_ascii

logger = logging.getLogger(__name__)

# Session states
UNINITIALIZED = "uninitialized"
OPENING = "opening"
FAILED = "failed"
READY = "ready"
CLOSED = "closed"

# Session origins
LOADED = "loaded"
GENERATED = "generated"

TX_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class TransferResult:
    """Outcome of a transfer: the transaction hash or an error message"""

    def __init__(self, transaction_hash: Optional[str] = None, error: Optional[str] = None):
        self.transaction_hash = transaction_hash
        self.error = error

    @property
    def ok(self) -> bool:
        return self.transaction_hash is not None

    def __str__(self):
        return self.transaction_hash if self.ok else (self.error or "unknown error")


class WalletSessionManager:
    """
    Shared wallet session.

    Args:
        engine: WalletEngine instance
        currency: Currency used for amounts in exports and logs
        import_legacy_keys: callable(keys_file, password, stream) writing a
            current-format wallet image into stream
        node: optional NodeRpcProxy, used for progress output
        timeout: optional per-operation wait limit for engine completions
    """

    def __init__(self, engine, currency: Currency,
                 import_legacy_keys: Callable = None, node=None, timeout: float = None):
        self.engine = engine
        self.currency = currency
        self._import_legacy_keys = import_legacy_keys
        self._node = node
        self._bridge = AsyncCompletionBridge(engine, timeout)
        self._lock = threading.RLock()
        self._synchronized = threading.Event()
        self._attached = False

        self.state = UNINITIALIZED
        self.origin: Optional[str] = None      # LOADED or GENERATED
        self.recovered = False                 # legacy keys were imported on open
        self.wallet_file: Optional[str] = None
        self.password: Optional[str] = None
        self.progress = ProgressReporter(self, node)

    # ------------------------------------------------------------------
    # Synchronization flag
    # ------------------------------------------------------------------

    @property
    def synchronized(self) -> bool:
        return self._synchronized.is_set()

    def mark_synchronized(self):
        if not self._synchronized.is_set():
            logger.info("[SESSION] Wallet synchronized")
        self._synchronized.set()

    def wait_synchronized(self, timeout: Optional[float] = None) -> bool:
        return self._synchronized.wait(timeout)

    # ------------------------------------------------------------------
    # Open / create
    # ------------------------------------------------------------------

    def open_or_recover(self, path: str, password: str) -> str:
        """
        Open the wallet stored at path, migrating legacy keys if needed.
        Returns the wallet file in use. Raises SessionError.
        """
        with self._lock:
            if self.state not in (UNINITIALIZED, FAILED, CLOSED):
                raise SessionError(f"cannot open a wallet while session is {self.state}")

            self.state = OPENING
            self.recovered = False
            # attached before loading so the first sync is seen
            self._attach()
            try:
                wallet_file = self._open_wallet_file(path, password)
            except SessionError:
                self._fail()
                raise
            except OSError as e:
                self._fail()
                raise SessionError(f"failed to load wallet: {e}") from e
            except Exception:
                self._fail()
                raise

            self.origin = LOADED
            self.wallet_file = wallet_file
            self.password = password
            self.state = READY
            logger.info("[SESSION] Opened wallet: %s", self.engine.get_address())
            return wallet_file

    def _open_wallet_file(self, path: str, password: str) -> str:
        keys_file, wallet_file = prepare_file_names(path)

        keys_exists = os.path.exists(keys_file)
        wallet_exists = os.path.exists(wallet_file)
        if not wallet_exists and not keys_exists and os.path.exists(path):
            try:
                os.rename(path, wallet_file)
            except OSError as e:
                raise SessionError(f"failed to rename file '{path}' to '{wallet_file}': {e}") from e
            wallet_exists = True

        if wallet_exists:
            logger.info("Loading wallet...")
            try:
                with open(wallet_file, 'rb') as f:
                    stream = io.BytesIO(f.read())
            except OSError as e:
                raise SessionError(f"error opening wallet file '{wallet_file}'") from e

            error = self._init_and_load(stream, password)
            if not error:
                return wallet_file

            # bad password, or legacy format
            if not keys_exists:
                raise SessionError(f"can't load wallet file '{wallet_file}', check password")

            logger.warning("[SESSION] %s did not load (%s), importing legacy keys", wallet_file, error)
            stream = self._import_keys(keys_file, password)
            backup_file(keys_file)
            backup_file(wallet_file)
            self._load_imported(stream, password, wallet_file)
            return wallet_file

        if keys_exists:
            stream = self._import_keys(keys_file, password)
            backup_file(keys_file)
            self._load_imported(stream, password, wallet_file)
            return wallet_file

        raise SessionError(f"wallet file '{wallet_file}' is not found")

    def _import_keys(self, keys_file: str, password: str) -> io.BytesIO:
        if self._import_legacy_keys is None:
            raise SessionError("legacy keys file found but no importer is available")
        stream = io.BytesIO()
        try:
            self._import_legacy_keys(keys_file, password, stream)
        except Exception as e:
            raise SessionError(f"failed to import legacy keys from '{keys_file}': {e}") from e
        stream.seek(0)
        return stream

    def _load_imported(self, stream: io.BytesIO, password: str, wallet_file: str):
        error = self._init_and_load(stream, password)
        if error:
            raise SessionError(f"failed to load wallet: {error}")

        logger.info("Storing wallet...")
        try:
            self._store(wallet_file)
        except SessionError as e:
            logger.error("Failed to store wallet: %s", e)
            raise SessionError(f"error saving wallet file '{wallet_file}'") from e
        logger.info("Stored ok")
        self.recovered = True

    def create_new(self, path: str, password: str) -> str:
        """
        Generate a new wallet at path and write its address file.
        Existing wallet or address files are never overwritten.
        """
        _, wallet_file = prepare_file_names(path)
        address_file = address_file_name(path)
        if os.path.exists(wallet_file):
            raise ConfigurationError(f"{wallet_file} already exists")
        if os.path.exists(address_file):
            raise ConfigurationError(f"Address file already exists: {address_file}")

        with self._lock:
            if self.state not in (UNINITIALIZED, FAILED, CLOSED):
                raise SessionError(f"cannot create a wallet while session is {self.state}")

            self.state = OPENING
            self._attach()
            try:
                error = self._bridge.issue(INIT, lambda: self.engine.init_and_generate(password))
                if error:
                    raise SessionError(f"failed to generate new wallet: {error}")
                try:
                    self._store(wallet_file)
                except SessionError as e:
                    raise SessionError(f"failed to save new wallet: {e}") from e
                address = self.engine.get_address()
            except Exception:
                self._fail()
                raise

            self.origin = GENERATED
            self.recovered = False
            self.wallet_file = wallet_file
            self.password = password

            logger.info("[SESSION] Generated new wallet: %s\n%s", address, generate_qr_ascii(address))
            write_address_file(address_file, address)
            self.state = READY
            return wallet_file

    # ------------------------------------------------------------------
    # Persist / reset
    # ------------------------------------------------------------------

    def persist(self, require_synchronized: bool = False) -> bool:
        """
        Save the wallet to its file. The file is only replaced after the
        engine reported a successful save.

        With require_synchronized, returns False without saving until the
        first sync completed.
        """
        if require_synchronized and not self.synchronized:
            logger.debug("[SESSION] Save skipped, wallet not synchronized")
            return False

        with self._lock:
            self._expect_ready()
            self._store(self.wallet_file)
        logger.info("[SESSION] Wallet saved to %s", self.wallet_file)
        return True

    def reset_and_reload(self) -> bool:
        """
        Reload the engine from an in-memory image of itself, which forces a
        full resynchronization without touching the wallet file.
        """
        with self._lock:
            self._expect_ready()

            image = io.BytesIO()
            error = self._bridge.issue(SAVE, lambda: self.engine.save(image, False, False))
            if error:
                logger.error("[SESSION] Reset aborted, in-memory save failed: %s", error)
                return False

            # engine is restarted from here on, a fresh sync must follow
            self._synchronized.clear()
            self.state = OPENING
            try:
                self.engine.shutdown()
                image.seek(0)
                error = self._init_and_load(image, self.password)
            except Exception as e:
                self._fail()
                logger.error("[SESSION] Reset failed, engine raised: %s", e, exc_info=True)
                return False
            if error:
                self._fail()
                logger.error("[SESSION] Reset failed, wallet could not be reloaded: %s", error)
                return False

            self.state = READY
        logger.info("[SESSION] Wallet reloaded, resynchronizing")
        return True

    def _init_and_load(self, stream, password: str) -> Optional[WalletError]:
        return self._bridge.issue(INIT, lambda: self.engine.init_and_load(stream, password))

    def _store(self, wallet_file: str):
        image = io.BytesIO()
        error = self._bridge.issue(SAVE, lambda: self.engine.save(image, True, True))
        if error:
            raise SessionError(f"error saving wallet file '{wallet_file}': {error}")
        try:
            write_atomic(wallet_file, image.getvalue())
        except OSError as e:
            raise SessionError(f"error writing wallet file '{wallet_file}': {e}") from e

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def submit_transfer(self, request) -> TransferResult:
        """
        Send request and wait for the engine to finish it. A sent
        transaction is persisted before the hash is returned.
        """
        with self._lock:
            try:
                self._expect_ready()
                transaction_id, error = self._bridge.issue_send(
                    lambda: self.engine.send_transaction(
                        request.destinations, request.fee, request.extra, request.mixin, 0))
                if error:
                    return TransferResult(error=str(error))

                tx = self.engine.get_transaction(transaction_id)
                tx_hash = tx.hash.hex() if tx is not None else None
                try:
                    self._store(self.wallet_file)
                except SessionError as e:
                    logger.error("[SESSION] Transaction %s sent but wallet not saved: %s",
                                 tx_hash or transaction_id, e)
                    return TransferResult(error=str(e))
                if tx_hash is None:
                    return TransferResult(error=f"transaction #{transaction_id} not found after send")
            except Exception as e:
                logger.error("[SESSION] Transfer failed: %s", e, exc_info=True)
                return TransferResult(error=str(e) or "unknown error")

        logger.info("[SESSION] Transaction sent: %s", tx_hash)
        return TransferResult(transaction_hash=tx_hash)

    # ------------------------------------------------------------------
    # Status export
    # ------------------------------------------------------------------

    def address(self) -> str:
        with self._lock:
            return self.engine.get_address()

    def balance_string(self) -> str:
        """available|locked, or '' until synchronized"""
        if not self.synchronized:
            return ""
        with self._lock:
            try:
                available = self.engine.actual_balance()
                locked = self.engine.pending_balance()
            except Exception as e:
                logger.debug("Balance unavailable: %s", e)
                return ""
        return f"{self.currency.format_amount(available)}|{self.currency.format_amount(locked)}"

    def transactions_export(self) -> str:
        """Confirmed, active transactions as time|hash|amount|fee|height|unlock[|paymentId] lines"""
        lines = []
        with self._lock:
            for index in range(self.engine.get_transaction_count()):
                tx = self.engine.get_transaction(index)
                if tx is None or tx.state != TX_STATE_ACTIVE or not tx.is_confirmed:
                    continue

                fields = [
                    datetime.fromtimestamp(tx.timestamp, tz=timezone.utc).strftime(TX_TIME_FORMAT),
                    tx.hash.hex(),
                    self.currency.format_amount(tx.total_amount),
                    self.currency.format_amount(tx.fee),
                    str(tx.block_height),
                    str(tx.unlock_time),
                ]
                payment_id = get_payment_id_from_tx_extra(tx.extra)
                if payment_id and payment_id != NULL_HASH:
                    fields.append(payment_id.hex())
                lines.append("|".join(fields) + "\n")
        return "".join(lines)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> bool:
        """Final save and engine shutdown. Returns False if the save failed."""
        with self._lock:
            if self.state != READY:
                return self.state in (UNINITIALIZED, CLOSED)

            ok = True
            try:
                self._store(self.wallet_file)
            except SessionError as e:
                logger.error("[SESSION] Failed to save wallet on close: %s", e)
                ok = False

            self._detach()
            self.engine.shutdown()
            self.state = CLOSED
        return ok

    # ------------------------------------------------------------------

    def _expect_ready(self):
        if self.state != READY:
            raise SessionError(f"wallet session is {self.state}")

    def _attach(self):
        if self._attached:
            return
        self.engine.add_observer(self.progress)
        if self._node is not None:
            self._node.add_observer(self.progress)
        self._attached = True

    def _detach(self):
        if not self._attached:
            return
        self.engine.remove_observer(self.progress)
        if self._node is not None:
            self._node.remove_observer(self.progress)
        self._attached = False

    def _fail(self):
        self._detach()
        self.state = FAILED
