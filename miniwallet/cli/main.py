"""
CLI entry point for the miniwallet daemon.

Parses command-line arguments, configures logging and runs WalletDaemon.
"""

import os
import sys
import getpass
import logging
import argparse

from miniwallet import __version__
from miniwallet.config import Config
from miniwallet.daemon import WalletDaemon

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="miniwallet",
        description="Headless wallet daemon driven through files next to the wallet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --generate-new-wallet ~/w/main          Create main.wallet and main.address
  %(prog)s --wallet-file ~/w/main --password pw    Serve an existing wallet
  %(prog)s --wallet-file main --daemon-address http://10.0.0.5:8081

Requests (base name W):
  echo '0|<address>|1.5' > W.txcast              Send, result appears in W.txresult
  touch W.save                                   Save the wallet
  touch W.reset                                  Resynchronize from scratch
        """
    )

    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--wallet-file', type=str, help='Use wallet <arg>')
    parser.add_argument('--generate-new-wallet', type=str, help='Generate new wallet and save it to <arg>')
    parser.add_argument('--password', type=str, help='Wallet password (prompted if omitted)')
    parser.add_argument('--daemon-address', type=str, help='Use daemon instance at <host>:<port>')
    parser.add_argument('--daemon-host', type=str, help='Use daemon instance at host <arg> instead of localhost')
    parser.add_argument('--daemon-port', type=int, help='Use daemon instance at port <arg> instead of 8081')
    parser.add_argument('--engine', type=str, help='Wallet engine backend, module:attribute')
    parser.add_argument('--config', type=str, help='JSON settings file (default: ~/.miniwallet/config.json)')
    parser.add_argument('--log-level', type=str, help='Log level (default: INFO)')
    return parser


def log_file_name(program: str) -> str:
    """<program>.log, replacing any extension of the program name"""
    root, _ = os.path.splitext(program)
    return root + ".log"


def setup_logging(level: str, log_file: str = None):
    numeric = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    handlers = [logging.StreamHandler()]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            print(f"[!] Cannot open log file {log_file}: {e}", file=sys.stderr)

    logging.basicConfig(level=numeric, format=LOG_FORMAT, handlers=handlers, force=True)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    Config.load_saved_settings(args.config)

    setup_logging(args.log_level or Config.LOG_LEVEL, log_file_name(sys.argv[0]))

    password = args.password
    if password is None and (args.wallet_file or args.generate_new_wallet):
        try:
            password = getpass.getpass("password: ")
        except (EOFError, KeyboardInterrupt):
            print("")
            return 1

    daemon = WalletDaemon.from_args(args, password or "")
    return daemon.run()


if __name__ == '__main__':
    sys.exit(main())
