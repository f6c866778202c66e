"""
Shared fixtures for the miniwallet tests.
"""

import pytest

from miniwallet.config import Config
from miniwallet.currency import Currency
from miniwallet.wallet import WalletSessionManager

from fakes import FakeWalletEngine, fake_import_legacy_keys, write_wallet


@pytest.fixture(autouse=True)
def restore_config():
    """Undo any Config changes a test makes; claim retries never sleep"""
    saved = {name: value for name, value in vars(Config).items() if name.isupper()}
    Config.CLAIM_BACKOFF = 0
    yield
    for name in [n for n in vars(Config) if n.isupper()]:
        if name not in saved:
            delattr(Config, name)
    for name, value in saved.items():
        setattr(Config, name, value)


@pytest.fixture
def currency():
    return Currency(decimal_point=8, minimum_fee=1000000)


@pytest.fixture
def engine():
    return FakeWalletEngine()


@pytest.fixture
def session(engine, currency):
    return WalletSessionManager(engine, currency, import_legacy_keys=fake_import_legacy_keys, timeout=5)


@pytest.fixture
def wallet_path(tmp_path):
    """Base name of a wallet inside tmp_path"""
    return str(tmp_path / "main")


@pytest.fixture
def ready_session(session, engine, wallet_path):
    """Session opened on a stored wallet holding 10 coins, first sync done"""
    write_wallet(wallet_path + ".wallet", password="pw", actual=1000000000, pending=50000000)
    session.open_or_recover(wallet_path, "pw")
    assert session.wait_synchronized(5)
    engine.drain()
    return session
