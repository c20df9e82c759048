'''
Copyright (c) Facebook, Inc. and its affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
'''

from collections import namedtuple
import logging

log = logging.getLogger(__name__)

PROC_INTERRUPTS = "/proc/interrupts"


Interrupt = namedtuple('Interrupt', ('irq', 'total', 'name'))


def _count(word):
    try:
        return int(word)
    except ValueError:
        return 0


def parse_interrupt_line(line, cpu_count):
    """
    Split one /proc/interrupts row into an Interrupt.

    Rows are variadic: the IRQ, one counter per active CPU, then a free form
    description (chip, hwirq, trigger type, device names). Summary rows like
    "ERR:" carry fewer counters.
    """
    words = line.split()
    if not words:
        return None
    irq = words[0].replace(':', '')
    counters = words[1:cpu_count + 1]
    name = words[cpu_count + 1:]
    return Interrupt(irq, sum(_count(w) for w in counters), ' '.join(name))


def irq_stat(path=PROC_INTERRUPTS):
    """
    Read the interrupt table, busiest interrupts first.

    The header row names one column per active CPU ("CPU0 CPU1 ...").
    OSError from opening path is left to the caller.
    """
    interrupts = []
    with open(path) as f:
        cpu_count = f.readline().count('CPU')
        for line in f:
            interrupt = parse_interrupt_line(line, cpu_count)
            if interrupt is not None:
                interrupts.append(interrupt)
    log.debug('Read %d interrupts over %d CPUs from %s',
              len(interrupts), cpu_count, path)
    interrupts.sort(key=lambda i: i.total, reverse=True)
    return interrupts
