'''
Copyright (c) Facebook, Inc. and its affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
'''

from irq_lib.irq_lib import (  # noqa: F401
    Interrupt,
    PROC_INTERRUPTS,
    irq_stat,
    parse_interrupt_line,
)
