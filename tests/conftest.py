from __future__ import annotations

import sys
from pathlib import Path

# The probe ships as top-level modules; make sure tests import the local tree.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
