# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

import sys

from .viewer import run_dashboard

sys.exit(run_dashboard())
