"""Pytest configuration for tweaq-change-engine tests."""

import os
import sys
import tempfile
from pathlib import Path

# Ensure src/tweaq is importable
src_path = str(Path(__file__).parent.parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

# Keep settings, keys and the live log out of the real home directory
os.environ.setdefault("TWEAQ_HOME", tempfile.mkdtemp(prefix="tweaq-test-"))
