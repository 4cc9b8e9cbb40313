"""Tests for the operation catalog."""

import pytest

from core.operations import (
    FSIO_OPERATIONS,
    NEVER_INTERCEPTED,
    binding_key,
    is_supported,
    is_supported_category,
)


def test_catalog_has_nineteen_operations():
    assert len(FSIO_OPERATIONS) == 19
    assert len(set(FSIO_OPERATIONS)) == 19


@pytest.mark.parametrize("name", ["write", "WRITE", "Close", "readdir"])
def test_supported_names(name):
    assert is_supported(name)


@pytest.mark.parametrize("name", list(NEVER_INTERCEPTED) + ["pread", "pwrite", "flock", "", None])
def test_unsupported_names(name):
    assert not is_supported(name)


def test_coupled_operations_share_binding():
    assert binding_key("pread") == "read"
    assert binding_key("pwrite") == "write"
    assert binding_key("PREAD") == "read"
    assert binding_key("unlink") == "unlink"


def test_only_filesystem_category():
    assert is_supported_category("filesystem")
    assert is_supported_category("FileSystem")
    assert not is_supported_category("network")
    assert not is_supported_category("disk")
