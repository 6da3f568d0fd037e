#!/usr/bin/env python3
"""将 clash/surge rule-provider 转换为 sing-box 规则集。"""

from __future__ import annotations

import sys
from pathlib import Path

SCRIPTS_DIR = Path(__file__).resolve().parent
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from singrules.app import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
