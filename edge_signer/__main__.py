# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Allow ``python -m edge_signer``."""

import sys

from edge_signer.cli import main


sys.exit(main())
