#!/usr/bin/env python3

"""
Copyright (c) Meta Platforms, Inc. and affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
"""

import logging
import os
import sys
import xml.etree.ElementTree as ET
from json import dumps

import click
from irq_lib import irq_stat, PROC_INTERRUPTS
from pci_lib import (
    DeviceWalkError,
    maybe_shorten_pci_addr,
    parse_pci_devices,
    PCI_IDS_LOCATIONS,
    PCIIdDatabase,
    PCIIdsNotFound,
    SYSFS_ROOT,
)

from lsdev.lib.constants import (
    DEVICE_WALK_FAILED,
    INTERRUPTS_UNREADABLE,
    PARTIAL_DEVICE_ERRORS,
)

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(debug):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING, format=LOG_FORMAT
    )


def sysfs_paths(sysfs):
    """(devices_root, driver_root) below a sysfs mount point"""
    devices_root = os.path.join(sysfs, "bus", "pci", "devices")
    driver_root = os.path.join(sysfs, "devices", "pci")
    return devices_root, driver_root


def open_pci_db(pci_ids):
    locations = [pci_ids] if pci_ids else PCI_IDS_LOCATIONS
    return PCIIdDatabase.locate(locations)


def describe(dev, numeric=False, numtext=False):
    if numtext:
        line = "{} [{}]: {} {} [{}:{}]".format(
            dev.device_class,
            dev.class_id,
            dev.vendor_name,
            dev.device_name,
            dev.vendor_id,
            dev.device_id,
        )
    elif numeric:
        line = f"{dev.class_id}: {dev.vendor_id}:{dev.device_id}"
    else:
        line = f"{dev.device_class}: {dev.vendor_name} {dev.device_name}"
    if dev.revision != "00":
        line += f" (rev {dev.revision})"
    return line


def display_addr(dev, domain):
    if domain:
        return dev.bus
    return maybe_shorten_pci_addr(dev.bus) or dev.bus


def print_table(devs, numeric, numtext, domain, kernel, verbose, very_verbose):
    addrs = [display_addr(dev, domain) for dev in devs]
    width = max((len(a) for a in addrs), default=0)
    for addr, dev in zip(addrs, devs):
        click.echo(
            "{:<{width}} {}".format(
                addr, describe(dev, numeric, numtext), width=width
            )
        )
        if (verbose or very_verbose) and dev.subsystem:
            click.echo(f"\tSubsystem: {dev.vendor_name} {dev.subsystem}")
        if very_verbose and dev.irq != "0":
            click.echo(f"\tInterrupt: pin A routed to IRQ {dev.irq}")
        if (kernel or verbose or very_verbose) and dev.kernel_driver:
            click.echo(f"\tKernel driver in use: {dev.kernel_driver}")


def jsonify(devs):
    return dumps({"pcidevices": [dev._asdict() for dev in devs]}, indent=4)


def xmlify(devs):
    root = ET.Element("pcidevices")
    for dev in devs:
        node = ET.SubElement(root, "device", {"bus": dev.bus})
        for key, value in dev._asdict().items():
            if key == "bus":
                continue
            ET.SubElement(node, key).text = value
    return ET.tostring(root, encoding="unicode")


@click.command()  # noqa: C901
@click.option("--json/--no-json", "-j", default=False, help="Output in JSON format")
@click.option("--xml/--no-xml", "-x", default=False, help="Output in XML format")
@click.option("--numeric", "-n", is_flag=True, default=False, help="Show numeric IDs")
@click.option(
    "--numtext",
    "-nn",
    is_flag=True,
    default=False,
    help="Show both textual and numeric IDs (names & numbers)",
)
@click.option(
    "--domain", "-D", is_flag=True, default=False, help="Always show domain numbers"
)
@click.option(
    "--kernel",
    "-k",
    is_flag=True,
    default=False,
    help="Show kernel drivers handling each device",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Be verbose")
@click.option(
    "--very-verbose", "-vv", is_flag=True, default=False, help="Be very verbose"
)
@click.option(
    "--pci-ids",
    default=None,
    type=click.Path(dir_okay=False),
    help="Use this pci.ids file instead of the system one",
)
@click.option(
    "--sysfs",
    default=SYSFS_ROOT,
    show_default=True,
    type=click.Path(file_okay=False),
    help="sysfs mount point",
)
@click.option("--debug", is_flag=True, default=False, help="Log debugging output")
def lspci(
    json,
    xml,
    numeric,
    numtext,
    domain,
    kernel,
    verbose,
    very_verbose,
    pci_ids,
    sysfs,
    debug,
):
    """
    List detailed information about all PCI buses and devices in the system.

    Values come from sysfs and are matched against pci.ids.
    """
    setup_logging(debug)

    try:
        pci_db = open_pci_db(pci_ids)
    except PCIIdsNotFound as e:
        log.debug("%s", e)
        click.echo("Error: Cannot open pci.ids file, defaulting to numeric", err=True)
        pci_db = None
        numeric, numtext = True, False

    devices_root, driver_root = sysfs_paths(sysfs)
    try:
        devs, errors = parse_pci_devices(devices_root, driver_root, pci_db)
    except DeviceWalkError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(DEVICE_WALK_FAILED)

    devs = sorted(devs, key=lambda d: d.bus)
    if json:
        click.echo(jsonify(devs))
    elif xml:
        click.echo(xmlify(devs))
    else:
        print_table(devs, numeric, numtext, domain, kernel, verbose, very_verbose)

    if errors:
        for err in errors.errors:
            click.echo(f"Warning: {err}", err=True)
        sys.exit(PARTIAL_DEVICE_ERRORS)


@click.command()
@click.option(
    "--noheadings", "-n", is_flag=True, default=False, help="Don't print headings"
)
@click.option(
    "--pairs", "-p", is_flag=True, default=False, help='Use key="value" output format'
)
@click.option("--json/--no-json", "-j", default=False, help="Output in JSON format")
@click.option(
    "--interrupts",
    default=PROC_INTERRUPTS,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Interrupt table to read",
)
@click.option("--debug", is_flag=True, default=False, help="Log debugging output")
def lsirq(noheadings, pairs, json, interrupts, debug):
    """
    Display kernel interrupt information, busiest interrupts first.
    """
    setup_logging(debug)

    try:
        irqs = irq_stat(interrupts)
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(INTERRUPTS_UNREADABLE)

    if json:
        click.echo(dumps({"interrupts": [i._asdict() for i in irqs]}, indent=4))
    elif pairs:
        for i in irqs:
            click.echo(f'IRQ="{i.irq}" TOTAL="{i.total}" NAME="{i.name}"')
    else:
        if not noheadings:
            click.echo("{:>3} {:>8} {}".format("IRQ", "TOTAL", "NAME"))
        for i in irqs:
            click.echo("{:>3} {:>8} {}".format(i.irq, i.total, i.name))


if __name__ == "__main__":
    lspci()
