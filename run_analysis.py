#!/usr/bin/env python3
"""Script entry point for the hntiming CLI without installing the package.

    python run_analysis.py explore --input-file data/raw/hn_posts.parquet
    python run_analysis.py fit --models simple,hierarchical --method nuts

See ``hntiming.analysis.model_fitting.cli`` for all options.
"""

import sys
from pathlib import Path

# Ensure src package is on path
PROJECT_ROOT = Path(__file__).parent
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from hntiming.analysis.model_fitting.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
