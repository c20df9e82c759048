"""
Copyright (c) Meta Platforms, Inc. and affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
"""


# lspci / lsirq exit codes
DEVICE_WALK_FAILED = 11

PARTIAL_DEVICE_ERRORS = 12

INTERRUPTS_UNREADABLE = 13
