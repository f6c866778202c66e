import pytest

from miniwallet.engine import BackendError, load_backend

import fakes


def test_load_backend_attribute():
    assert load_backend("fakes:backend") is fakes.backend


def test_load_backend_module_without_factory():
    with pytest.raises(BackendError, match="create_wallet"):
        load_backend("fakes")


def test_load_backend_not_configured():
    with pytest.raises(BackendError, match="No wallet engine backend configured"):
        load_backend("")


def test_load_backend_missing_module():
    with pytest.raises(BackendError, match="Cannot import"):
        load_backend("no_such_module_anywhere:backend")


def test_load_backend_missing_attribute():
    with pytest.raises(BackendError, match="has no attribute"):
        load_backend("fakes:nothing_here")
