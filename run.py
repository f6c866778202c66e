#!/usr/bin/env python3
"""
miniwallet - Development Entry Point

Usage:
    python run.py --wallet-file ~/w/main                 # Serve an existing wallet
    python run.py --generate-new-wallet ~/w/main         # Create a new one
    python run.py --wallet-file main --log-level DEBUG   # Verbose
"""

import sys

from miniwallet.cli.main import main


if __name__ == '__main__':
    sys.exit(main())
