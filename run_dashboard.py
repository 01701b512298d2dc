#!/usr/bin/env python3
"""Direct launcher for the Budget Dashboard.

Runs Streamlit on ``budget_dashboard/dashboard.py`` from the project root.
"""

import sys
import subprocess
from pathlib import Path

project_root = Path(__file__).parent.resolve()

if __name__ == "__main__":
    subprocess.run(
        [sys.executable, "-m", "streamlit", "run", str(project_root / "budget_dashboard" / "dashboard.py")],
        cwd=project_root,
    )
