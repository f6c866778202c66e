from miniwallet.engine import WalletError, WALLET_ERR_WRONG_PASSWORD, WALLET_ERR_FEE_TOO_SMALL
from miniwallet.wallet import ConfigurationError, SessionError, TransferParseError, TransferResult


def test_wallet_error_messages():
    assert str(WalletError(WALLET_ERR_WRONG_PASSWORD)) == "The password is wrong"
    assert WalletError(WALLET_ERR_FEE_TOO_SMALL).code == WALLET_ERR_FEE_TOO_SMALL
    assert str(WalletError(-999)) == "Unknown error (-999)"
    assert str(WalletError(WALLET_ERR_WRONG_PASSWORD, "custom")) == "custom"


def test_transfer_parse_error_is_value_error():
    assert issubclass(TransferParseError, ValueError)
    assert issubclass(ConfigurationError, SessionError)


def test_transfer_result_text():
    assert str(TransferResult(transaction_hash="ab" * 32)) == "ab" * 32
    assert str(TransferResult(error="Wrong amount")) == "Wrong amount"
    assert str(TransferResult()) == "unknown error"
    assert not TransferResult(error="x").ok
