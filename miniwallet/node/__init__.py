"""
miniwallet.node - remote coin daemon access.

Re-exports the public API from submodules.
"""

from miniwallet.node.rpc import NodeError, NodeObserver, NodeRpcProxy, parse_url_address

__all__ = [
    "NodeError",
    "NodeObserver",
    "NodeRpcProxy",
    "parse_url_address",
]
