import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent

PYTHON_PATHS = [
    ROOT / "apps" / "core-api",
    ROOT / "packages" / "planning",
]

for path in PYTHON_PATHS:
    sys.path.insert(0, str(path))
