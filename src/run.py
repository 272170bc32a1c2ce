import sys
from pathlib import Path

# Launcher scripts call this file directly, without installing the package.
src_dir = Path(__file__).resolve().parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from workflow.main import main

if __name__ == "__main__":
    sys.exit(main())
