"""Pytest configuration for tinycalc tests."""

import sys
from pathlib import Path

# The modules live flat in the project root
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))
