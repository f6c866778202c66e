import os
import threading

import pytest

from miniwallet.engine import WalletError, WalletTransaction, WALLET_ERR_TX_CANCELLED
from miniwallet.currency import create_tx_extra_with_payment_id
from miniwallet.wallet import (
    WalletSessionManager,
    SessionError,
    ConfigurationError,
    TransferRequest,
    OPENING,
    READY,
    FAILED,
    CLOSED,
    LOADED,
    GENERATED,
)

from fakes import (
    ADDRESS_A,
    ADDRESS_B,
    GENERATED_ADDRESS,
    SAVE_ERROR,
    FakeWalletEngine,
    fake_import_legacy_keys,
    make_image,
    tx_hash,
    write_legacy_keys,
    write_wallet,
)


def read(path, mode='rb'):
    with open(path, mode) as f:
        return f.read()


# ----------------------------------------------------------------------
# open_or_recover
# ----------------------------------------------------------------------

def test_open_existing_wallet(session, engine, wallet_path):
    write_wallet(wallet_path + ".wallet")
    assert session.open_or_recover(wallet_path, "pw") == wallet_path + ".wallet"
    assert session.state == READY
    assert session.origin == LOADED
    assert session.recovered is False
    assert session.address() == ADDRESS_A


def test_origin_is_not_a_session_state(session, engine, wallet_path, monkeypatch):
    states = []
    load, generate = engine.init_and_load, engine.init_and_generate

    def recording_load(stream, password):
        states.append(session.state)
        load(stream, password)

    def recording_generate(password):
        states.append(session.state)
        generate(password)

    monkeypatch.setattr(engine, "init_and_load", recording_load)
    monkeypatch.setattr(engine, "init_and_generate", recording_generate)

    write_wallet(wallet_path + ".wallet")
    session.open_or_recover(wallet_path, "pw")
    states.append(session.state)
    session.close()

    session.create_new(os.path.join(os.path.dirname(wallet_path), "other"), "pw")
    states.append(session.state)

    assert states == [OPENING, READY, OPENING, READY]
    assert LOADED not in states and GENERATED not in states


def test_open_accepts_wallet_extension(session, wallet_path):
    write_wallet(wallet_path + ".wallet")
    assert session.open_or_recover(wallet_path + ".wallet", "pw") == wallet_path + ".wallet"


def test_open_wrong_password_without_keys(session, wallet_path):
    write_wallet(wallet_path + ".wallet", password="secret")
    with pytest.raises(SessionError, match="check password"):
        session.open_or_recover(wallet_path, "pw")
    assert session.state == FAILED


def test_open_missing_wallet(session, wallet_path):
    with pytest.raises(SessionError, match="is not found"):
        session.open_or_recover(wallet_path, "pw")
    assert session.state == FAILED


def test_open_bare_file_is_renamed(session, wallet_path):
    write_wallet(wallet_path)
    session.open_or_recover(wallet_path, "pw")
    assert not os.path.exists(wallet_path)
    assert os.path.exists(wallet_path + ".wallet")
    assert session.state == READY


def test_legacy_wallet_recovered_from_keys(session, engine, wallet_path):
    # wallet file in an old format next to a keys file
    write_wallet(wallet_path + ".wallet", fmt="legacy")
    write_legacy_keys(wallet_path + ".keys", address=ADDRESS_B)

    session.open_or_recover(wallet_path, "pw")

    assert session.recovered is True
    assert session.address() == ADDRESS_B
    assert os.path.exists(wallet_path + ".keys.back")
    assert os.path.exists(wallet_path + ".wallet.back")
    assert not os.path.exists(wallet_path + ".keys")
    assert b'"format": "wallet"' in read(wallet_path + ".wallet")


def test_keys_only_wallet_recovered(session, wallet_path):
    write_legacy_keys(wallet_path + ".keys")
    session.open_or_recover(wallet_path + ".keys", "pw")
    assert session.recovered is True
    assert os.path.exists(wallet_path + ".wallet")
    assert os.path.exists(wallet_path + ".keys.back")


def test_recovery_is_idempotent(currency, wallet_path):
    write_wallet(wallet_path + ".wallet", fmt="legacy")
    write_legacy_keys(wallet_path + ".keys")

    first = WalletSessionManager(FakeWalletEngine(), currency, fake_import_legacy_keys, timeout=5)
    first.open_or_recover(wallet_path, "pw")
    assert first.recovered
    first.close()

    second = WalletSessionManager(FakeWalletEngine(), currency, fake_import_legacy_keys, timeout=5)
    second.open_or_recover(wallet_path, "pw")
    assert second.recovered is False
    assert second.address() == ADDRESS_A


def test_recovery_with_wrong_keys_password(session, wallet_path):
    write_wallet(wallet_path + ".wallet", fmt="legacy")
    write_legacy_keys(wallet_path + ".keys", password="other")
    with pytest.raises(SessionError, match="failed to import legacy keys"):
        session.open_or_recover(wallet_path, "pw")
    # nothing moved aside when the import itself failed
    assert os.path.exists(wallet_path + ".keys")
    assert os.path.exists(wallet_path + ".wallet")


def test_recovery_store_failure(session, engine, wallet_path):
    write_legacy_keys(wallet_path + ".keys")
    engine.fail_save = SAVE_ERROR
    with pytest.raises(SessionError, match="error saving wallet file"):
        session.open_or_recover(wallet_path, "pw")
    assert session.state == FAILED


def test_open_twice_rejected(ready_session, wallet_path):
    with pytest.raises(SessionError):
        ready_session.open_or_recover(wallet_path, "pw")


# ----------------------------------------------------------------------
# create_new
# ----------------------------------------------------------------------

def test_create_new(session, engine, wallet_path):
    assert session.create_new(wallet_path, "pw") == wallet_path + ".wallet"
    assert session.state == READY
    assert session.origin == GENERATED
    assert read(wallet_path + ".address", 'r') == GENERATED_ADDRESS
    assert os.path.exists(wallet_path + ".wallet")


def test_create_new_refuses_existing_wallet(session, wallet_path):
    write_wallet(wallet_path + ".wallet")
    before = read(wallet_path + ".wallet")
    with pytest.raises(ConfigurationError, match="already exists"):
        session.create_new(wallet_path, "pw")
    assert read(wallet_path + ".wallet") == before


def test_create_new_refuses_existing_address_file(session, wallet_path):
    with open(wallet_path + ".address", 'w') as f:
        f.write("someone else's address")
    with pytest.raises(ConfigurationError, match="Address file already exists"):
        session.create_new(wallet_path, "pw")
    assert read(wallet_path + ".address", 'r') == "someone else's address"
    assert not os.path.exists(wallet_path + ".wallet")


def test_create_new_generation_failure(session, engine, wallet_path):
    engine.fail_init = SAVE_ERROR
    with pytest.raises(SessionError, match="failed to generate new wallet"):
        session.create_new(wallet_path, "pw")
    assert session.state == FAILED


# ----------------------------------------------------------------------
# persist / reset
# ----------------------------------------------------------------------

def test_persist_writes_wallet(ready_session, engine, wallet_path):
    engine.actual = 42
    assert ready_session.persist() is True
    assert b'"actual": 42' in read(wallet_path + ".wallet")
    assert engine.saves[-1] == (True, True)


def test_persist_failure_leaves_file_unchanged(ready_session, engine, wallet_path):
    before = read(wallet_path + ".wallet")
    engine.actual = 42
    engine.fail_save = SAVE_ERROR
    with pytest.raises(SessionError):
        ready_session.persist()
    assert read(wallet_path + ".wallet") == before
    assert [n for n in os.listdir(os.path.dirname(wallet_path)) if ".tmp." in n] == []


def test_persist_waits_for_sync(currency, wallet_path):
    engine = FakeWalletEngine(auto_sync=False)
    session = WalletSessionManager(engine, currency, fake_import_legacy_keys, timeout=5)
    write_wallet(wallet_path + ".wallet")
    session.open_or_recover(wallet_path, "pw")
    saves = len(engine.saves)

    assert session.persist(require_synchronized=True) is False
    assert len(engine.saves) == saves
    assert session.persist() is True


def test_reset_and_reload(ready_session, engine, wallet_path):
    before = read(wallet_path + ".wallet")
    loads = engine.loads

    assert ready_session.reset_and_reload() is True

    assert engine.saves[-1] == (False, False)
    assert engine.shutdowns == 1
    assert engine.loads == loads + 1
    assert ready_session.state == READY
    assert ready_session.wait_synchronized(5)
    assert read(wallet_path + ".wallet") == before


def test_reset_aborted_when_image_save_fails(ready_session, engine):
    engine.fail_save = SAVE_ERROR
    assert ready_session.reset_and_reload() is False
    assert engine.shutdowns == 0
    assert ready_session.state == READY
    assert ready_session.synchronized


def _raise_engine_bug(*args):
    raise RuntimeError("engine bug")


def test_reset_engine_raising_marks_session_failed(ready_session, engine, monkeypatch):
    monkeypatch.setattr(engine, "init_and_load", _raise_engine_bug)
    assert ready_session.reset_and_reload() is False
    assert ready_session.state == FAILED
    assert not ready_session.synchronized
    assert engine.observer_count == 0


def test_open_engine_raising_marks_session_failed(session, engine, wallet_path, monkeypatch):
    write_wallet(wallet_path + ".wallet")
    monkeypatch.setattr(engine, "init_and_load", _raise_engine_bug)
    with pytest.raises(RuntimeError):
        session.open_or_recover(wallet_path, "pw")
    assert session.state == FAILED
    assert engine.observer_count == 0

    monkeypatch.undo()
    session.open_or_recover(wallet_path, "pw")
    assert session.state == READY


def test_create_engine_raising_marks_session_failed(session, engine, wallet_path, monkeypatch):
    monkeypatch.setattr(engine, "init_and_generate", _raise_engine_bug)
    with pytest.raises(RuntimeError):
        session.create_new(wallet_path, "pw")
    assert session.state == FAILED
    assert engine.observer_count == 0
    assert not os.path.exists(wallet_path + ".address")


def _start(target, *args):
    results = []
    thread = threading.Thread(target=lambda: results.append(target(*args)), daemon=True)
    thread.start()
    return thread, results


def test_reset_holds_off_transfers(ready_session, engine, currency):
    gate = engine.save_gate = threading.Event()
    engine.save_entered.clear()
    reset, reset_result = _start(ready_session.reset_and_reload)
    assert engine.save_entered.wait(5)

    transfer, transfer_result = _start(ready_session.submit_transfer, _request(currency))
    transfer.join(0.2)
    assert transfer.is_alive()
    assert "send_transaction" not in engine.calls

    gate.set()
    reset.join(5)
    transfer.join(5)
    assert reset_result == [True]
    assert transfer_result[0].ok
    assert engine.calls.index("send_transaction") > engine.calls.index("init_and_load")


def test_reset_holds_off_persist(ready_session, engine, wallet_path):
    gate = engine.save_gate = threading.Event()
    engine.save_entered.clear()
    del engine.calls[:]
    reset, reset_result = _start(ready_session.reset_and_reload)
    assert engine.save_entered.wait(5)

    persist, persist_result = _start(ready_session.persist)
    persist.join(0.2)
    assert persist.is_alive()
    assert engine.calls == ["save"]

    gate.set()
    reset.join(5)
    persist.join(5)
    assert reset_result == [True]
    assert persist_result == [True]
    assert engine.calls == ["save", "shutdown", "init_and_load", "save"]
    assert engine.saves[-1] == (True, True)


# ----------------------------------------------------------------------
# transfers
# ----------------------------------------------------------------------

def _request(currency, amount="1.5"):
    return TransferRequest.from_arguments(["0", ADDRESS_B, amount], currency)


def test_submit_transfer_persists_before_returning(ready_session, engine, currency, wallet_path):
    result = ready_session.submit_transfer(_request(currency))
    assert result.ok
    assert result.transaction_hash == tx_hash(0).hex()
    assert len(str(result)) == 64
    assert tx_hash(0).hex() in read(wallet_path + ".wallet").decode()


def test_submit_transfer_engine_error(ready_session, engine, currency, wallet_path):
    before = read(wallet_path + ".wallet")
    engine.send_error = WalletError(WALLET_ERR_TX_CANCELLED)
    result = ready_session.submit_transfer(_request(currency))
    assert not result.ok
    assert str(result) == "Transaction cancelled"
    assert read(wallet_path + ".wallet") == before


def test_submit_transfer_rejected_immediately(ready_session, engine, currency):
    engine.send_returns_invalid = True
    result = ready_session.submit_transfer(_request(currency))
    assert str(result) == "Can't send money"


def test_submit_transfer_save_failure(ready_session, engine, currency, wallet_path):
    before = read(wallet_path + ".wallet")
    engine.fail_save = SAVE_ERROR
    result = ready_session.submit_transfer(_request(currency))
    assert not result.ok
    assert "error saving wallet file" in str(result)
    assert read(wallet_path + ".wallet") == before


def test_submit_transfer_when_not_ready(session, currency):
    result = session.submit_transfer(_request(currency))
    assert not result.ok
    assert "uninitialized" in str(result)


# ----------------------------------------------------------------------
# status export
# ----------------------------------------------------------------------

def test_balance_string(ready_session):
    assert ready_session.balance_string() == "10.00000000|0.50000000"


def test_balance_empty_until_synchronized(currency, wallet_path):
    session = WalletSessionManager(FakeWalletEngine(auto_sync=False), currency, timeout=5)
    write_wallet(wallet_path + ".wallet", actual=5)
    session.open_or_recover(wallet_path, "pw")
    assert session.balance_string() == ""
    session.mark_synchronized()
    assert session.balance_string() == "0.00000005|0.00000000"


def test_transactions_export(currency, wallet_path):
    pid = "cd" * 32
    transactions = [
        WalletTransaction(tx_hash(0), 150000000, fee=0, block_height=10, timestamp=0),
        WalletTransaction(tx_hash(1), -200000000, fee=1000000, block_height=12, unlock_time=7,
                          extra=create_tx_extra_with_payment_id(pid), timestamp=86400),
        WalletTransaction(tx_hash(2), 5, block_height=13, state="deleted"),
        WalletTransaction(tx_hash(3), 5),  # unconfirmed
    ]
    session = WalletSessionManager(FakeWalletEngine(), currency, timeout=5)
    with open(wallet_path + ".wallet", 'wb') as f:
        f.write(make_image(transactions=transactions))
    session.open_or_recover(wallet_path, "pw")

    assert session.transactions_export() == (
        f"1970-01-01 00:00:00|{tx_hash(0).hex()}|1.50000000|0.00000000|10|0\n"
        f"1970-01-02 00:00:00|{tx_hash(1).hex()}|-2.00000000|0.01000000|12|7|{pid}\n"
    )


# ----------------------------------------------------------------------
# close
# ----------------------------------------------------------------------

def test_close_saves_and_shuts_down(ready_session, engine, wallet_path):
    engine.actual = 7
    assert ready_session.close() is True
    assert ready_session.state == CLOSED
    assert engine.shutdowns == 1
    assert engine.observer_count == 0
    assert b'"actual": 7' in read(wallet_path + ".wallet")


def test_close_save_failure_still_shuts_down(ready_session, engine):
    engine.fail_save = SAVE_ERROR
    assert ready_session.close() is False
    assert ready_session.state == CLOSED
    assert engine.shutdowns == 1


def test_close_unopened_session(session, engine):
    assert session.close() is True
    assert engine.shutdowns == 0
