"""
Each entry point must import cleanly in a fresh interpreter
"""
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.mark.unit
@pytest.mark.parametrize("module", [
    "app.modules.transactions.dependencies",
    "app.modules.transactions.router",
    "app.modules.transactions.services",
    "app.modules.accounts.router",
    "app.modules.notifications.services",
    "main",
])
def test_module_imports_first(module):
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0, result.stderr
