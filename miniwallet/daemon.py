"""
Wallet daemon: wires the node proxy, the engine backend, the wallet session
and the command bus together and runs until a stop signal.
"""

import os
import signal
import logging
import threading
from typing import Optional

from miniwallet.bus import CommandBus
from miniwallet.config import Config
from miniwallet.currency import Currency
from miniwallet.engine.bridge import PendingOperation
from miniwallet.engine.loader import load_backend
from miniwallet.node import NodeRpcProxy, parse_url_address
from miniwallet.wallet import WalletSessionManager, ConfigurationError, prepare_file_names

logger = logging.getLogger(__name__)


class WalletDaemon:
    """
    One daemon run.

    Args:
        wallet_file: existing wallet to open (exclusive with generate_new_wallet)
        generate_new_wallet: path of a wallet to create
        password: wallet password
        daemon_address: "http://host:port" of the remote node
        daemon_host, daemon_port: node location, exclusive with daemon_address
        engine_backend: "module:attribute" naming the engine backend
        backend: already loaded backend object (skips engine_backend)
        node: already constructed node proxy
    """

    def __init__(self, wallet_file: str = None, generate_new_wallet: str = None, password: str = "",
                 daemon_address: str = None, daemon_host: str = None, daemon_port: int = None,
                 engine_backend: str = None, backend=None, node=None):
        self.wallet_file = wallet_file
        self.generate_new_wallet = generate_new_wallet
        self.password = password or ""
        self.daemon_address = daemon_address
        self.daemon_host = daemon_host
        self.daemon_port = daemon_port
        self.engine_backend = engine_backend or Config.ENGINE_BACKEND
        self.backend = backend
        self.node = node

        self.session: Optional[WalletSessionManager] = None
        self.bus: Optional[CommandBus] = None
        self.stop_event = threading.Event()

    @classmethod
    def from_args(cls, args, password: str = ""):
        return cls(
            wallet_file=args.wallet_file,
            generate_new_wallet=args.generate_new_wallet,
            password=password,
            daemon_address=args.daemon_address,
            daemon_host=args.daemon_host,
            daemon_port=args.daemon_port,
            engine_backend=args.engine,
        )

    @property
    def wallet_path(self) -> str:
        """Path as given by the user, also the base name of the sentinel files"""
        return self.generate_new_wallet or self.wallet_file

    def validate(self):
        """Check option combinations. Raises ConfigurationError."""
        if self.daemon_address and (self.daemon_host or self.daemon_port):
            raise ConfigurationError("you can't specify daemon host or port several times")

        if not self.generate_new_wallet and not self.wallet_file:
            raise ConfigurationError("you must specify --wallet-file or --generate-new-wallet")
        if self.generate_new_wallet and self.wallet_file:
            raise ConfigurationError("you can't specify --wallet-file and --generate-new-wallet together")

        if self.generate_new_wallet:
            _, wallet_file = prepare_file_names(self.generate_new_wallet)
            if os.path.exists(wallet_file):
                raise ConfigurationError(f"{wallet_file} already exists")

    def node_location(self):
        if self.daemon_address:
            try:
                return parse_url_address(self.daemon_address)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        return (self.daemon_host or Config.DAEMON_HOST,
                self.daemon_port or Config.DAEMON_PORT)

    # ------------------------------------------------------------------

    def connect_node(self):
        """Create the node proxy if needed and wait for its first /getinfo"""
        if self.node is None:
            host, port = self.node_location()
            self.node = NodeRpcProxy(host, port)

        pending = PendingOperation("node init")
        self.node.init(pending.fulfill)
        error = pending.wait(Config.NODE_TIMEOUT * 2)
        if error:
            raise error
        logger.info("[NODE] Initialized")

    def open_session(self) -> WalletSessionManager:
        if self.backend is None:
            self.backend = load_backend(self.engine_backend)

        currency = Currency()
        engine = self.backend.create_wallet(currency, self.node)
        self.session = WalletSessionManager(engine, currency,
                                            import_legacy_keys=self.backend.import_legacy_keys,
                                            node=self.node)
        if self.generate_new_wallet:
            self.session.create_new(self.generate_new_wallet, self.password)
        else:
            self.session.open_or_recover(self.wallet_file, self.password)
        return self.session

    def start(self):
        """Everything up to the running command bus. Raises on startup failure."""
        self.validate()
        self.connect_node()
        self.open_session()
        self.bus = CommandBus(self.session, self.wallet_path)
        self.bus.start()
        logger.info("[DAEMON] Serving %s", self.wallet_path)

    def stop(self):
        self.stop_event.set()

    def shutdown(self) -> bool:
        """Stop loops, save and release everything. Returns False if the final save failed."""
        ok = True
        if self.bus is not None:
            self.bus.stop()
        if self.session is not None:
            try:
                ok = self.session.close()
            except Exception as e:
                logger.error("[DAEMON] Error while closing wallet: %s", e, exc_info=True)
                ok = False
        if self.node is not None:
            try:
                self.node.shutdown()
            except Exception as e:
                logger.warning("[DAEMON] Error while stopping node proxy: %s", e)
        return ok

    def install_signal_handlers(self):
        def handler(signum, frame):
            logger.info("[DAEMON] Signal %d received, stopping", signum)
            self.stop()

        signal.signal(signal.SIGINT, handler)
        signal.signal(signal.SIGTERM, handler)

    def run(self) -> int:
        """Start, serve until stopped, shut down. Returns the process exit code."""
        try:
            self.start()
        except ConfigurationError as e:
            logger.error("%s", e)
            self.shutdown()
            return 1
        except Exception as e:
            logger.error("Failed to start wallet daemon: %s", e)
            logger.debug("Startup failure", exc_info=True)
            self.shutdown()
            return 1

        if threading.current_thread() is threading.main_thread():
            self.install_signal_handlers()

        while not self.stop_event.wait(1.0):
            pass

        if not self.shutdown():
            logger.warning("[DAEMON] Final save failed, wallet file left as last saved")
        logger.info("[DAEMON] Stopped")
        return 0
