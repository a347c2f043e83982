"""
Script to run one ETL job from a source checkout
"""

import sys
import os

# Add current directory to path to allow imports from core, etl, etc.
sys.path.append(os.getcwd())

from etl.cli import main


if __name__ == "__main__":
    sys.exit(main())
