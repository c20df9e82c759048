'''
Copyright (c) Facebook, Inc. and its affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
'''

from pci_lib.pci_lib import (  # noqa: F401
    DeviceAttributeError,
    DeviceWalkError,
    InvalidRange,
    NonZeroDomain,
    PCIDevice,
    PCIDeviceErrors,
    PCIIdDatabase,
    PCIIdsLookupError,
    PCIIdsNotFound,
    PCI_IDS_LOCATIONS,
    SYSFS_DEVICES_PCI,
    SYSFS_PCI_BUS_DEVICES,
    SYSFS_ROOT,
    enumerate_devices,
    find_pci_ids,
    lookup_kernel_driver,
    map_pci_device,
    maybe_shorten_pci_addr,
    parse_pci_devices,
    read_attribute,
    shorten_pci_addr,
)
