# tests/test_addr.py
import pytest

from pci_lib import (
    maybe_shorten_pci_addr,
    NonZeroDomain,
    shorten_pci_addr,
)


def test_shorten_pci_addr():
    assert shorten_pci_addr("0000:02:00.4") == "02:00.4"
    assert shorten_pci_addr("00000000:00:01.0") == "00:01.0"
    assert shorten_pci_addr("02:00.4") == "02:00.4"
    assert shorten_pci_addr("bogus") is None
    with pytest.raises(NonZeroDomain):
        shorten_pci_addr("0001:02:00.4")


def test_maybe_shorten_pci_addr():
    assert maybe_shorten_pci_addr("0000:02:00.4") == "02:00.4"
    assert maybe_shorten_pci_addr("0001:02:00.4") == "0001:02:00.4"
