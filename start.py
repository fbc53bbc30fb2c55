from __future__ import annotations

import sys
from pathlib import Path

try:
    from mojibake_audit.cli import main
except ModuleNotFoundError:
    # Fallback for source tree runs without editable install.
    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from mojibake_audit.cli import main


if __name__ == "__main__":
    sys.exit(main())
