"""
Amount parsing/formatting and address/payment-id rules for the wallet's coin.
"""

from typing import Optional

from miniwallet.config import Config

B58_ALPHABET = '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'

# tx extra field tags
TX_EXTRA_PADDING = 0x00
TX_EXTRA_PUBKEY = 0x01
TX_EXTRA_NONCE = 0x02
TX_EXTRA_NONCE_PAYMENT_ID = 0x00

PAYMENT_ID_SIZE = 32
NULL_HASH = bytes(32)


class Currency:
    """Coin parameters used to read and write human amounts"""

    def __init__(self, decimal_point: int = None, minimum_fee: int = None,
                 address_min_length: int = 95, address_max_length: int = 110):
        self.decimal_point = Config.DECIMAL_POINT if decimal_point is None else decimal_point
        self.minimum_fee = Config.MINIMUM_FEE if minimum_fee is None else minimum_fee
        self.address_min_length = address_min_length
        self.address_max_length = address_max_length

    def parse_amount(self, amount_str: str) -> Optional[int]:
        """
        Parse a decimal amount into atomic units.

        "1.5" -> 150000000 with 8 decimals. Extra trailing zeros past the
        decimal point are accepted, any other extra precision is not.
        Returns None on malformed input.
        """
        s = amount_str.strip()
        point = s.find('.')
        if point != -1:
            fraction_size = len(s) - point - 1
            while fraction_size > self.decimal_point and s.endswith('0'):
                s = s[:-1]
                fraction_size -= 1
            if fraction_size > self.decimal_point:
                return None
            s = s[:point] + s[point + 1:]
        else:
            fraction_size = 0

        if not s or not s.isdigit() or not s.isascii():
            return None

        s += '0' * (self.decimal_point - fraction_size)
        value = int(s)
        if value >= 2 ** 64:
            return None
        return value

    def format_amount(self, amount: int) -> str:
        """Format atomic units as a decimal string, negative amounts keep their sign"""
        sign = '-' if amount < 0 else ''
        digits = str(abs(amount))
        if self.decimal_point == 0:
            return sign + digits
        digits = digits.rjust(self.decimal_point + 1, '0')
        return f"{sign}{digits[:-self.decimal_point]}.{digits[-self.decimal_point:]}"

    def is_valid_address(self, address: str) -> bool:
        """Shape check: base58 characters within the coin's address length"""
        if not (self.address_min_length <= len(address) <= self.address_max_length):
            return False
        return all(c in B58_ALPHABET for c in address)


def parse_payment_id(payment_id: str) -> Optional[bytes]:
    """Parse a 64-character hex payment id, None if malformed"""
    if len(payment_id) != PAYMENT_ID_SIZE * 2:
        return None
    try:
        return bytes.fromhex(payment_id)
    except ValueError:
        return None


def create_tx_extra_with_payment_id(payment_id: str) -> Optional[bytes]:
    """Build the tx extra nonce carrying payment_id, None if the id is malformed"""
    raw = parse_payment_id(payment_id)
    if raw is None:
        return None
    nonce = bytes([TX_EXTRA_NONCE_PAYMENT_ID]) + raw
    return bytes([TX_EXTRA_NONCE, len(nonce)]) + nonce


def get_payment_id_from_tx_extra(extra: bytes) -> Optional[bytes]:
    """Extract the payment id from tx extra, None when absent or unparsable"""
    i = 0
    while i < len(extra):
        tag = extra[i]
        if tag == TX_EXTRA_PADDING:
            return None
        if tag == TX_EXTRA_PUBKEY:
            i += 1 + 32
            continue
        if tag == TX_EXTRA_NONCE:
            if i + 1 >= len(extra):
                return None
            size = extra[i + 1]
            nonce = extra[i + 2:i + 2 + size]
            if len(nonce) != size:
                return None
            if size == PAYMENT_ID_SIZE + 1 and nonce[0] == TX_EXTRA_NONCE_PAYMENT_ID:
                return nonce[1:]
            i += 2 + size
            continue
        # Unknown field, cannot skip safely
        return None
    return None
