"""Configure test environment for importing the project package."""
import sys
from pathlib import Path

import jax

REPO_ROOT = Path(__file__).resolve().parent.parent
SRC = REPO_ROOT / "src"

if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

jax.config.update("jax_enable_x64", True)
