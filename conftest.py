"""
Pytest configuration shared by the whole repository.

Puts ``src`` on the import path so tests run from a plain checkout.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def project_root() -> Path:
    """Return path to project root."""
    return Path(__file__).parent
