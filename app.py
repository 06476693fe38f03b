#!/usr/bin/env python3
"""
Storage Ask Index - Main Application Entry Point.

============================================================
USAGE
============================================================
Direct execution:
    python app.py
    python app.py --policy continuous --cooldown 300

With PM2:
    pm2 start app.py --interpreter python --name storage-ask-index -- --policy continuous

Environment-based configuration:
    CYCLE_POLICY=continuous MINERS_API_FG=https://... python app.py

============================================================
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from orchestrator.cli import main


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
