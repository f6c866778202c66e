"""
Transfer request parsing.

The front-end writes one line into "W.txcast":

    mixin|address|amount[|paymentId][|fee]

Empty paymentId/fee fields mean "not provided". The same request can be
expressed as an argument list (mixin, address amount pairs, -p id, -f fee)
which is how multiple destinations are given.
"""

from typing import List, Optional

from miniwallet.currency import Currency, create_tx_extra_with_payment_id, parse_payment_id
from miniwallet.engine.interface import Transfer
from miniwallet.wallet.errors import TransferParseError

MAX_AMOUNT = 2 ** 64 - 1


class TransferRequest:
    """Validated transfer ready for submission"""

    def __init__(self, mixin: int, destinations: List[Transfer], fee: int,
                 payment_id: Optional[str] = None, extra: bytes = b""):
        self.mixin = mixin
        self.destinations = destinations
        self.fee = fee
        self.payment_id = payment_id
        self.extra = extra

    @property
    def total_amount(self) -> int:
        return sum(d.amount for d in self.destinations)

    @classmethod
    def from_arguments(cls, args: List[str], currency: Currency) -> "TransferRequest":
        """
        Parse [mixin, (address amount)..., -p payment_id, -f fee].
        Raises TransferParseError with a readable reason.
        """
        it = iter(args)

        def next_arg() -> str:
            try:
                return next(it)
            except StopIteration:
                raise TransferParseError("unexpected end of arguments") from None

        mixin_str = next_arg()
        if not mixin_str.isascii() or not mixin_str.isdigit():
            raise TransferParseError(f"mixin_count should be non-negative integer, got {mixin_str}")
        mixin = int(mixin_str)

        destinations = []
        fee = currency.minimum_fee
        payment_id = None
        extra = b""

        for arg in it:
            if arg.startswith('-'):
                value = next_arg()
                if arg == '-p':
                    extra = create_tx_extra_with_payment_id(value)
                    if extra is None:
                        raise TransferParseError(
                            f"payment ID has invalid format: \"{value}\", expected 64-character string")
                    payment_id = value.lower()
                elif arg == '-f':
                    parsed = currency.parse_amount(value)
                    if parsed is None:
                        raise TransferParseError(f"Fee value is invalid: {value}")
                    if parsed < currency.minimum_fee:
                        raise TransferParseError(
                            f"Fee value is less than minimum: {currency.format_amount(currency.minimum_fee)}")
                    fee = parsed
                else:
                    raise TransferParseError(f"Unknown option: {arg}")
                continue

            if not currency.is_valid_address(arg):
                if parse_payment_id(arg) is not None:
                    raise TransferParseError(
                        "Invalid payment ID usage. Please, use -p <payment_id>. See help for details.")
                raise TransferParseError(f"Wrong address: {arg}")

            value = next_arg()
            amount = currency.parse_amount(value)
            if not amount:
                raise TransferParseError(
                    f"amount is wrong: {arg} {value}, expected number from 0 to "
                    f"{currency.format_amount(MAX_AMOUNT)}")
            destinations.append(Transfer(arg, amount))

        if not destinations:
            raise TransferParseError("At least one destination address is required")

        return cls(mixin, destinations, fee, payment_id, extra)


def request_arguments(line: str) -> List[str]:
    """Convert a pipe-delimited request line into the argument list form"""
    tokens = line.strip().split('|')
    while tokens and not tokens[-1].strip():
        tokens.pop()

    if len(tokens) < 3:
        raise TransferParseError(f"expected mixin|address|amount[|paymentId][|fee], got {line.strip()!r}")
    if len(tokens) > 5:
        raise TransferParseError(f"too many fields in request ({len(tokens)})")

    tokens = [t.strip() for t in tokens]
    args = tokens[:3]
    if len(tokens) > 3 and tokens[3]:
        args += ['-p', tokens[3]]
    if len(tokens) > 4 and tokens[4]:
        args += ['-f', tokens[4]]
    return args


def parse_transfer_request(line: str, currency: Currency) -> TransferRequest:
    """Parse one "W.txcast" line"""
    return TransferRequest.from_arguments(request_arguments(line), currency)
