"""Pytest configuration. Ensures the project root is on sys.path for imports like api.*, services.*, etc."""
import sys
from pathlib import Path

_root: Path = Path(__file__).resolve().parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))
