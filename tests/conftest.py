from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.maud_helpers import write_workspace


@pytest.fixture
def maud_workspace(tmp_path: Path) -> Path:
    return write_workspace(tmp_path / "workspace")


@pytest.fixture
def workspace_state(maud_workspace: Path):
    from maudls.state import WorkspaceState

    return WorkspaceState.load(maud_workspace)
