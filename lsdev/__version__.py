'''
Copyright (c) Facebook, Inc. and its affiliates.

This source code is licensed under the MIT license found in the
LICENSE file in the root directory of this source tree.
'''

VERSION = (0, 1, 0)

__version__ = '.'.join(map(str, VERSION))
