"""
Remote coin daemon proxy.

Polls the daemon's /getinfo endpoint on a background thread and tells
observers about connection changes and chain height. Traffic can be routed
through a SOCKS proxy (Tor) via Config.NODE_PROXY.
"""

import logging
import threading
from typing import Callable, Optional

import requests

from miniwallet import __version__
from miniwallet.config import Config

logger = logging.getLogger(__name__)


class NodeError(Exception):
    """Raised when the remote daemon cannot be reached or answers garbage"""


class NodeObserver:
    """Base class for node observers, every callback is a no-op"""

    def connection_status_updated(self, connected: bool):
        pass

    def local_blockchain_updated(self, height: int):
        pass

    def last_known_block_height_updated(self, height: int):
        pass

    def blockchain_synchronized(self, top_height: int):
        pass


def parse_url_address(url: str):
    """
    Split a daemon address into (host, port).

        http://node.example:8081/  -> ("node.example", 8081)
        node.example               -> ("node.example", 80)
    """
    start = url.find("://")
    start = start + 3 if start != -1 else 0

    rest = url[start:]
    host_part = rest.split('/', 1)[0]
    if ':' in host_part:
        host, port_str = host_part.rsplit(':', 1)
        try:
            port = int(port_str)
        except ValueError:
            raise ValueError(f"invalid port in daemon address: {url}") from None
        if not 0 < port < 65536:
            raise ValueError(f"port out of range in daemon address: {url}")
    else:
        host, port = host_part, 80

    if not host:
        raise ValueError(f"missing host in daemon address: {url}")
    return host, port


class NodeRpcProxy:
    """
    HTTP client for the remote daemon.

    Args:
        host: daemon host
        port: daemon RPC port
        timeout: seconds per request
        proxy: SOCKS proxy URL, e.g. "socks5h://127.0.0.1:9050"
        refresh_interval: seconds between /getinfo polls
        session: requests.Session to use (tests pass a stub)
    """

    def __init__(self, host: str, port: int, timeout: float = None, proxy: str = None,
                 refresh_interval: float = None, session=None):
        self.base_url = f"http://{host}:{port}"
        self.timeout = Config.NODE_TIMEOUT if timeout is None else timeout
        self.refresh_interval = Config.NODE_REFRESH_INTERVAL if refresh_interval is None else refresh_interval

        self.session = session or requests.Session()
        self.session.headers['User-Agent'] = f'miniwallet/{__version__}'
        proxy = proxy if proxy is not None else Config.NODE_PROXY
        if proxy:
            self.session.proxies = {'http': proxy, 'https': proxy}

        self._observers = []
        self._observers_lock = threading.Lock()
        self._local_height = 0
        self._known_height = 0
        self._connected: Optional[bool] = None
        self._synchronized = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # Observers

    def add_observer(self, observer):
        with self._observers_lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def remove_observer(self, observer):
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _notify(self, method: str, *args):
        with self._observers_lock:
            observers = list(self._observers)
        for observer in observers:
            callback = getattr(observer, method, None)
            if not callable(callback):
                continue
            try:
                callback(*args)
            except Exception as e:
                logger.warning("[NODE] Observer %s.%s failed: %s", type(observer).__name__, method, e)

    # Heights

    def get_last_local_block_height(self) -> int:
        return self._local_height

    def get_last_known_block_height(self) -> int:
        return self._known_height

    # RPC

    def get_info(self) -> dict:
        """GET /getinfo. Raises NodeError."""
        try:
            resp = self.session.get(f"{self.base_url}/getinfo", timeout=self.timeout)
            resp.raise_for_status()
            info = resp.json()
        except requests.RequestException as e:
            raise NodeError(f"daemon at {self.base_url} unreachable: {e}") from e
        except ValueError as e:
            raise NodeError(f"daemon at {self.base_url} sent invalid JSON: {e}") from e

        if not isinstance(info, dict):
            raise NodeError(f"unexpected /getinfo response: {info!r}")
        status = info.get('status', 'OK')
        if status != 'OK':
            raise NodeError(f"daemon status: {status}")
        return info

    def refresh(self):
        """Poll the daemon once and notify observers. Raises NodeError."""
        try:
            info = self.get_info()
        except NodeError:
            self._set_connected(False)
            raise
        self._set_connected(True)

        local = int(info.get('height', 0))
        known = max(int(info.get('last_known_block_index', local)), local)

        if local != self._local_height:
            self._local_height = local
            self._notify('local_blockchain_updated', local)
        if known != self._known_height:
            self._known_height = known
            self._notify('last_known_block_height_updated', known)

        if local >= known and not self._synchronized:
            self._synchronized = True
            self._notify('blockchain_synchronized', known)
        elif local < known:
            self._synchronized = False

    def _set_connected(self, connected: bool):
        if connected != self._connected:
            self._connected = connected
            self._notify('connection_status_updated', connected)

    # Lifecycle

    def init(self, callback: Callable[[Optional[Exception]], None]):
        """
        Connect in the background. callback(None) is invoked once the first
        /getinfo succeeded, callback(NodeError) if it failed.
        """
        if self._thread and self._thread.is_alive():
            raise NodeError("node proxy already initialized")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, args=(callback,),
                                        name="miniwallet-node", daemon=True)
        self._thread.start()

    def _run(self, callback):
        try:
            self.refresh()
        except NodeError as e:
            callback(e)
            return
        logger.info("[NODE] Connected to %s, height %d", self.base_url, self._local_height)
        callback(None)

        while not self._stop_event.wait(self.refresh_interval):
            try:
                self.refresh()
            except NodeError as e:
                logger.warning("[NODE] %s", e)

    def shutdown(self):
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.timeout)
        self.session.close()
