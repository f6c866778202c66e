"""
miniwallet - filesystem-driven wallet daemon.

Exposes a single wallet to a front-end process through sentinel files
next to the wallet file.
"""

__version__ = "1.0.0"
