# tests/conftest.py
import os

import pytest

MINIMAL_PCI_IDS = """\
#
#\tList of PCI ID's
#
# Syntax:
# vendor  vendor_name
#\tdevice  device_name\t\t\t\t<-- single tab
#\t\tsubvendor subdevice  subsystem_name\t<-- two tabs

1022  Advanced Micro Devices, Inc. [AMD]
\t1630  Renoir Root Complex
\t\t1043 87e1  ROG Zephyrus G14
\t1632  16 Core Fabric
\t1634  Renoir/Cezanne PCIe GPP Bridge
1043  ASUSTeK Computer Inc.
10ec  Realtek Semiconductor Co., Ltd.
\t8168  RTL8111/8168/8411 PCI Express Gigabit Ethernet Controller
\t\t1043 8677  PRIME B450M-A Motherboard
\t816d  RTL811x EP and GPIO
8086  Intel Corporation
\t1237  440FX - 82441FX PMC
C 02  Network controller
\t00  Ethernet controller
\t80  Network controller
C 06  Bridge
\t00  Host bridge
\t04  PCI bridge
\t\t00  Normal decode
C 08  Generic system peripheral
\t80  System peripheral
"""

# bus -> attributes; "parent" places the device behind a bridge the way
# /sys/devices/pci0000:00/0000:00:02.1/0000:03:00.0 does
FIXTURE_DEVICES = {
    "0000:00:00.0": dict(
        vendor=0x1022,
        device=0x1630,
        klass24=0x060000,
        subvendor=0x1043,
        subdevice=0x87E1,
    ),
    "0000:00:02.1": dict(
        vendor=0x1022,
        device=0x1634,
        klass24=0x060400,
        irq=27,
        driver="pcieport",
    ),
    "0000:02:00.4": dict(
        vendor=0x10EC,
        device=0x816D,
        klass24=0x088000,
        revision=0x1A,
        parent="0000:00:02.1",
    ),
    "0000:03:00.0": dict(
        vendor=0x10EC,
        device=0x8168,
        klass24=0x020000,
        revision=0x15,
        subvendor=0x1043,
        subdevice=0x8677,
        irq=35,
        driver="r8169",
        parent="0000:00:02.1",
    ),
    "0000:04:00.0": dict(
        vendor=0xABCD,
        device=0x0001,
        klass24=0xFF0000,
        parent="0000:00:02.1",
    ),
}


def write_hex_file(p, value, width=4):
    p.write_text("0x{:0{w}x}\n".format(value, w=width), encoding="ascii")


def make_device_dir(
    sysfs_root,
    bus,
    *,
    vendor,
    device,
    klass24,
    revision=0x00,
    subvendor=0x0000,
    subdevice=0x0000,
    irq=0,
    driver=None,
    parent=None,
):
    """
    Create the device directory under sys/devices/pci<domain:bus> and link it
    from sys/bus/pci/devices, like the kernel does.
    """
    real = sysfs_root / "devices" / "pci0000:00"
    if parent:
        real = real / parent
    d = real / bus
    d.mkdir(parents=True, exist_ok=True)

    write_hex_file(d / "vendor", vendor)
    write_hex_file(d / "device", device)
    write_hex_file(d / "class", klass24, width=6)
    write_hex_file(d / "revision", revision, width=2)
    write_hex_file(d / "subsystem_vendor", subvendor)
    write_hex_file(d / "subsystem_device", subdevice)
    (d / "irq").write_text("{}\n".format(irq), encoding="ascii")
    (d / "modalias").write_text(
        "pci:v{:08X}d{:08X}sv{:08X}sd{:08X}bc{:02X}sc{:02X}i{:02X}\n".format(
            vendor,
            device,
            subvendor,
            subdevice,
            klass24 >> 16,
            (klass24 >> 8) & 0xFF,
            klass24 & 0xFF,
        ),
        encoding="ascii",
    )
    uevent = []
    if driver:
        uevent.append("DRIVER={}".format(driver))
    uevent.append("PCI_CLASS={:X}".format(klass24))
    uevent.append("PCI_ID={:04X}:{:04X}".format(vendor, device))
    uevent.append("PCI_SLOT_NAME={}".format(bus))
    (d / "uevent").write_text("\n".join(uevent) + "\n", encoding="ascii")

    link = sysfs_root / "bus" / "pci" / "devices" / bus
    link.symlink_to(d, target_is_directory=True)
    return d


@pytest.fixture
def pci_ids_text(tmp_path):
    p = tmp_path / "pci.ids"
    p.write_text(MINIMAL_PCI_IDS, encoding="utf-8")
    return p


@pytest.fixture
def sysfs_root(tmp_path):
    root = tmp_path / "sys"
    (root / "bus" / "pci" / "devices").mkdir(parents=True)
    (root / "devices" / "pci0000:00").mkdir(parents=True)
    return root


@pytest.fixture
def make_device(sysfs_root):
    def _make(bus, **kwargs):
        return make_device_dir(sysfs_root, bus, **kwargs)

    return _make


@pytest.fixture
def fake_sysfs(sysfs_root, make_device):
    """
    sys/ tree holding every device in FIXTURE_DEVICES, parents first.
    """
    for bus in sorted(FIXTURE_DEVICES, key=lambda b: "parent" in FIXTURE_DEVICES[b]):
        make_device(bus, **FIXTURE_DEVICES[bus])
    return sysfs_root


@pytest.fixture
def devices_root(fake_sysfs):
    return str(fake_sysfs / "bus" / "pci" / "devices")


@pytest.fixture
def driver_root(fake_sysfs):
    return os.path.join(str(fake_sysfs), "devices", "pci")


PROC_INTERRUPTS = """\
           CPU0       CPU1       CPU2       CPU3
  0:         36          0          0          0   IO-APIC   2-edge      timer
  1:          0          0          0          9   IO-APIC   1-edge      i8042
  8:          0          0          0          0   IO-APIC   8-edge      rtc0
 35:       1200        300         50         25   PCI-MSI 1572864-edge      enp3s0
NMI:          5          3          2          1   Non-maskable interrupts
ERR:          0
"""


@pytest.fixture
def proc_interrupts(tmp_path):
    p = tmp_path / "interrupts"
    p.write_text(PROC_INTERRUPTS, encoding="ascii")
    return p
