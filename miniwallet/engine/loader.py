"""
Engine backend loading.

A backend is any importable object named "package.module:attribute" that
provides:

    create_wallet(currency, node) -> WalletEngine
    import_legacy_keys(keys_file, password, stream) -> None
"""

import importlib


class BackendError(Exception):
    """Raised when the engine backend cannot be loaded"""


def load_backend(target: str):
    """Import and return the backend named by target ("module:attribute" or "module")"""
    if not target:
        raise BackendError("No wallet engine backend configured (use --engine module:attribute)")

    module_name, _, attr = target.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise BackendError(f"Cannot import engine backend module '{module_name}': {e}") from e

    backend = getattr(module, attr, None) if attr else module
    if backend is None:
        raise BackendError(f"Engine backend module '{module_name}' has no attribute '{attr}'")

    for name in ("create_wallet", "import_legacy_keys"):
        if not callable(getattr(backend, name, None)):
            raise BackendError(f"Engine backend '{target}' has no callable {name}()")
    return backend
