"""Root pytest configuration and shared fixtures for the kite-ports test suite."""

import sys
from pathlib import Path

# Add src directory to path for imports
src_path = Path(__file__).parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from tests._fixtures.env import *  # noqa: E402, F401, F403
