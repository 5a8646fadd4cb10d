"""Pytest configuration for the closurescope test suite."""

import sys
from pathlib import Path

# Add src directory to path for closurescope imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
