import sys
from pathlib import Path

# Add project root to path so the tests run from a plain checkout
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)
