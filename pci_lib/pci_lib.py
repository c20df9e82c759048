'''
Copyright (c) Facebook, Inc. and its affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
'''

from collections import namedtuple
from contextlib import closing
import enum
import logging
import os
import re

log = logging.getLogger(__name__)

SYSFS_ROOT = "/sys"
SYSFS_PCI_BUS_DEVICES = "/sys/bus/pci/devices"
# Domain-prefixed tree, e.g. /sys/devices/pci0000:00/0000:00:1f.3
SYSFS_DEVICES_PCI = "/sys/devices/pci"

PCI_IDS_LOCATIONS = (
    "/usr/share/hwdata/pci.ids",
    "/usr/share/misc/pci.ids",
    "/usr/share/pci.ids",
    "/var/lib/pciutils/pci.ids",
)

NO_SUBSYSTEM_VENDOR = "0000"
DRIVER_MARKER = "DRIVER="

# (attribute file, start, end) in the order they are read for each device.
# Hex attributes look like "0x8086", so [2:6] drops the prefix.
DEVICE_ATTRIBUTES = (
    ("device", 2, 6),
    ("vendor", 2, 6),
    ("class", 2, 6),
    ("subsystem_device", 2, 6),
    ("subsystem_vendor", 2, 6),
    ("modalias", 0, 0),
    ("irq", 0, 0),
    ("revision", 2, 4),
)

LOOKUP_KINDS = ("vendor", "device", "class", "subsystem")


# Long PCI address format is as follows
# Domain(32bits):Bus(8bits):Device(5bits):Function(3bits)
# Domain is *not* always 0! (ARM systems have multiple ones)
LONG_PCI_ADDR_REGEX = re.compile(
    r'^([0-9a-fA-F]{2,8}):([0-9a-fA-F]{2}):([01][0-9a-fA-F])[:\.]0*([0-7])$')

# Short PCI address format is as follows
# Bus(8bits):Device(5bits).Function(3bits)
SHORT_PCI_ADDR_REGEX = re.compile(r'^([0-9a-fA-F]{2}):([01][0-9a-fA-F])\.([0-7])$')


class NonZeroDomain(Exception):
    """
    Cannot shorten PCI addrs with a non-zero Domain
    """
    pass


class InvalidRange(ValueError):
    """
    Requested byte range does not fit the extracted attribute token
    """
    pass


class DeviceWalkError(IOError):
    """
    The sysfs device root could not be walked
    """
    pass


class PCIIdsLookupError(IOError):
    """
    The PCI ID database could not be read. A lookup miss is not an error.
    """
    pass


class PCIIdsNotFound(PCIIdsLookupError):
    """
    No pci.ids file in any of the searched locations
    """
    pass


class DeviceAttributeError(Exception):
    """
    Reading one attribute of one device failed, the device was skipped
    """

    def __init__(self, bus, attribute, cause):
        super().__init__(bus, attribute, cause)
        self.bus = bus
        self.attribute = attribute
        self.cause = cause

    def __str__(self):
        return 'failed to read {} value from bus {}: {}'.format(
            self.attribute, self.bus, self.cause)


class PCIDeviceErrors(Exception):
    """
    Every per-device failure of one parse_pci_devices() run
    """

    def __init__(self, errors):
        super().__init__(errors)
        self.errors = list(errors)

    @property
    def buses(self):
        return [e.bus for e in self.errors]

    def __str__(self):
        return '\n'.join(str(e) for e in self.errors)


class PCIDevice(namedtuple('PCIDevice', ('bus', 'vendor_id', 'device_id',
                                         'class_id', 'subsystem_vendor',
                                         'subsystem_device', 'irq',
                                         'revision', 'vendor_name',
                                         'device_name', 'device_class',
                                         'subsystem', 'kernel_module_alias',
                                         'kernel_driver'))):

    def __repr__(self):
        return ('<PCIDevice bus={p.bus} vendor_id={p.vendor_id} '
                'device_id={p.device_id} class_id={p.class_id} '
                'revision={p.revision} driver={p.kernel_driver!r}>').format(
                    p=self)

    def __str__(self):
        return self.bus


def read_attribute(path, token_index=1, start=0, end=0):
    """
    Read a whitespace separated token from a sysfs attribute file.

    token_index is 1-based (0 means 1). When start and end are both 0 the
    whole token is returned, otherwise the [start:end] slice of it. Only the
    first line holding the token is looked at.

    Raises FileNotFoundError / PermissionError from open(), and InvalidRange
    when the bounds do not fit.
    """
    if start < 0 or end < 0 or start > end:
        raise InvalidRange('invalid start:end {}:{}'.format(start, end))
    if token_index == 0:
        token_index = 1

    value = ''
    with open(path) as f:
        for line in f:
            words = line.split()
            if len(words) < token_index:
                continue
            matched = [w for i, w in enumerate(words, 1) if i == token_index]
            value = ' '.join(matched)
            break

    if start == 0 and end == 0:
        return value
    if end > len(value):
        raise InvalidRange('invalid start:end {}:{} for {!r} in {}'.format(
            start, end, value, path))
    return value[start:end]


class _ScanState(enum.Enum):
    AWAITING_HEADER = 'awaiting-header'
    HEADER_MATCHED = 'header-matched'


def _indent(line):
    return len(line) - len(line.lstrip('\t'))


def _after(line, token):
    # Everything after the first occurrence of token, spacing removed
    return line[line.index(token) + len(token):].strip()


class PCIIdDatabase(object):
    """Line scanning lookups over a pci.ids file

    Nothing is cached: every lookup reopens the file and walks it from the
    top, so an instance can be shared freely.

    Usage:

    db = PCIIdDatabase.locate()
    db.lookup('device', vendor='8086', device='1237')
    """

    def __init__(self, path):
        self.path = path

    @classmethod
    def locate(cls, locations=PCI_IDS_LOCATIONS):
        return cls(find_pci_ids(locations))

    def _lines(self):
        try:
            with open(self.path, encoding='utf-8', errors='replace') as f:
                for raw in f:
                    yield raw.rstrip('\r\n')
        except OSError as e:
            raise PCIIdsLookupError(
                'failed to read {}: {}'.format(self.path, e)) from e

    def lookup(self, kind, vendor='', device='', class_code='', subclass=''):
        """
        Resolve codes to a name. Returns "Unknown <kind>" on a miss.

        kind is one of vendor, device, class, subsystem:
          vendor    -- vendor
          device    -- vendor + device
          class     -- class_code, 4 hex digits (base class + subclass)
          subsystem -- vendor + subclass (the subsystem device code)
        """
        if kind not in LOOKUP_KINDS:
            raise ValueError('unknown lookup kind {!r}'.format(kind))
        if kind == 'class' and len(class_code) < 4:
            raise ValueError(
                'class lookups need a 4 digit class code, got {!r}'.format(
                    class_code))
        vendor = vendor.lower()
        device = device.lower()
        class_code = class_code.lower()
        subclass = subclass.lower()

        with closing(self._lines()) as lines:
            return self._scan(lines, kind, vendor, device, class_code,
                              subclass)

    def _scan(self, lines, kind, vendor, device, class_code, subclass):
        state = _ScanState.AWAITING_HEADER
        for line in lines:
            if not line.strip() or line.startswith('#'):
                continue
            depth = _indent(line)

            if kind == 'vendor':
                if depth == 0 and vendor in line:
                    return _after(line, vendor)

            elif kind == 'device':
                if depth == 0:
                    if vendor in line:
                        state = _ScanState.HEADER_MATCHED
                    else:
                        state = _ScanState.AWAITING_HEADER
                elif (depth == 1 and state is _ScanState.HEADER_MATCHED and
                        line[1:].startswith(device)):
                    return line[1 + len(device):].strip()

            elif kind == 'class':
                if depth == 0:
                    if line.startswith('C ') and line[2:4] == class_code[0:2]:
                        state = _ScanState.HEADER_MATCHED
                    else:
                        state = _ScanState.AWAITING_HEADER
                elif (depth == 1 and state is _ScanState.HEADER_MATCHED and
                        line[1:].startswith(class_code[2:4])):
                    return line[3:].strip()

            elif kind == 'subsystem':
                pair = '{} {}'.format(vendor, subclass)
                if pair in line:
                    return _after(line, pair)

        return 'Unknown {}'.format(kind)

    def vendor_name(self, vendor):
        return self.lookup('vendor', vendor=vendor)

    def device_name(self, vendor, device):
        return self.lookup('device', vendor=vendor, device=device)

    def class_name(self, class_code):
        return self.lookup('class', class_code=class_code)

    def subsystem_name(self, subsystem_vendor, subsystem_device):
        return self.lookup('subsystem', vendor=subsystem_vendor,
                           subclass=subsystem_device)

    def __repr__(self):
        return 'PCIIdDatabase(\'{}\')'.format(self.path)


def find_pci_ids(locations=PCI_IDS_LOCATIONS):
    for loc in locations:
        if os.path.isfile(loc):
            log.debug('Using PCI ID database %s', loc)
            return loc
    raise PCIIdsNotFound(
        "No pci.ids file avail in %r" % (list(locations),)
    )


def enumerate_devices(devices_root=SYSFS_PCI_BUS_DEVICES):
    """
    Yield the bus address of every device under devices_root.

    Only the top level is listed: each entry, symlink or directory, is one
    device named by its bus address.
    """
    try:
        entries = os.listdir(devices_root)
    except OSError as e:
        raise DeviceWalkError(
            'failed to walk {}: {}'.format(devices_root, e)) from e
    for name in entries:
        yield name


def lookup_kernel_driver(bus, devices_root=SYSFS_PCI_BUS_DEVICES,
                         driver_root=SYSFS_DEVICES_PCI):
    """
    Name of the driver bound to bus, '' when none is bound.

    The uevent under the domain tree (driver_root + "0000:00") is only there
    for devices sitting directly on a root bus; anything behind a bridge is
    read through its devices_root link instead.
    """
    path = os.path.join(driver_root + bus[0:7], bus, 'uevent')
    if not os.path.exists(path):
        path = os.path.join(devices_root, bus, 'uevent')
    uevent = read_attribute(path)
    if DRIVER_MARKER in uevent:
        return uevent.split(DRIVER_MARKER, 1)[1]
    return ''


def _resolve_names(pci_db, ven, dev, class_id, sub_ven, sub_dev):
    if pci_db is None:
        return ('Unknown vendor', 'Unknown device', 'Unknown class', '')
    ven_name = pci_db.vendor_name(ven)
    dev_name = pci_db.device_name(ven, dev)
    dev_class = pci_db.class_name(class_id)
    subsystem = ''
    # Two-tab pci.ids lines are keyed by the subsystem vendor, not ven
    if sub_ven != NO_SUBSYSTEM_VENDOR:
        subsystem = pci_db.subsystem_name(sub_ven, sub_dev)
    return ven_name, dev_name, dev_class, subsystem


def map_pci_device(bus, devices_root=SYSFS_PCI_BUS_DEVICES,
                   driver_root=SYSFS_DEVICES_PCI, pci_db=None):
    """
    Build the PCIDevice for one bus address.

    Raises DeviceAttributeError naming the attribute that could not be read.
    """
    values = {}
    for attr, start, end in DEVICE_ATTRIBUTES:
        try:
            values[attr] = read_attribute(
                os.path.join(devices_root, bus, attr), 1, start, end)
        except (OSError, InvalidRange) as e:
            raise DeviceAttributeError(bus, attr, e) from e

    try:
        driver = lookup_kernel_driver(bus, devices_root, driver_root)
    except (OSError, InvalidRange) as e:
        raise DeviceAttributeError(bus, 'kernel driver', e) from e

    try:
        names = _resolve_names(pci_db, values['vendor'], values['device'],
                               values['class'], values['subsystem_vendor'],
                               values['subsystem_device'])
    except PCIIdsLookupError as e:
        raise DeviceAttributeError(bus, 'pci.ids name', e) from e
    ven_name, dev_name, dev_class, subsystem = names

    return PCIDevice(bus, values['vendor'], values['device'], values['class'],
                     values['subsystem_vendor'], values['subsystem_device'],
                     values['irq'], values['revision'], ven_name, dev_name,
                     dev_class, subsystem, values['modalias'], driver)


def parse_pci_devices(devices_root=SYSFS_PCI_BUS_DEVICES,
                      driver_root=SYSFS_DEVICES_PCI, pci_db=None):
    """
    Assemble a PCIDevice for every device under devices_root.

    Returns (devices, errors). errors is None when every device could be
    read, otherwise a PCIDeviceErrors holding one DeviceAttributeError per
    skipped device. With pci_db=None names are left at their "Unknown"
    placeholders.

    Raises DeviceWalkError if devices_root cannot be listed at all.
    """
    devices = []
    errors = []
    for bus in enumerate_devices(devices_root):
        try:
            devices.append(map_pci_device(bus, devices_root, driver_root,
                                          pci_db))
        except DeviceAttributeError as e:
            log.debug('Skipping PCI device %s: %s', bus, e)
            errors.append(e)
    log.debug('Parsed %d PCI devices, %d skipped', len(devices), len(errors))
    if errors:
        return devices, PCIDeviceErrors(errors)
    return devices, None


def maybe_shorten_pci_addr(pci_addr):
    '''Shorten a PCI address, but only if its domain is 0'''
    try:
        return shorten_pci_addr(pci_addr)
    except NonZeroDomain:
        return pci_addr


def shorten_pci_addr(pci_addr):
    '''
    Convert a long pci address to the short version, nothing to be done if pci
    address is already a short version.

    Short addresses do not necessarily uniquely identify a device! Only use
    this for displaying address to humans. This will raise NonZeroDomain if
    passed an address that cannot be shortened. Consider
    `maybe_shorten_pci_addr`
    '''

    m1 = LONG_PCI_ADDR_REGEX.match(pci_addr)
    m2 = SHORT_PCI_ADDR_REGEX.match(pci_addr)
    if m1:
        if int(m1.group(1), 16) != 0:
            raise NonZeroDomain()
        pci_addr = '{}:{}.{}'.format(
            m1.group(2), m1.group(3), m1.group(4))
    elif m2:
        pass
    else:
        log.error('Invalid pci address %s', pci_addr)
        pci_addr = None

    return pci_addr
