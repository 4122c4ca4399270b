"""
Generate the full-year call-centre dataset.
Equivalent to the `generate-call-log` console script.
"""

from pathlib import Path
import sys

# Ensure root directory is in path for config import
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from callcentre.cli import main


if __name__ == "__main__":
    sys.exit(main())
