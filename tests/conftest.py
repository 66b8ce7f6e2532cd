"""Pytest configuration for verifier gadget tests."""

import sys
from pathlib import Path

# Add the repository root to the path so the package imports without installation
repo_dir = Path(__file__).parent.parent
if str(repo_dir) not in sys.path:
    sys.path.insert(0, str(repo_dir))
