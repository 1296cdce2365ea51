#!/usr/bin/env python3
"""
Wrapper script to run python-aznet directly from the project directory.

This script allows you to run python-aznet without installing it:
    python run_aznet.py analyze snapshot.json
    python run_aznet.py diagram --dry-run --format dot
    python run_aznet.py --help
"""

import sys
from pathlib import Path

# Add src directory to Python path so we can import aznet
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

# Import and run the CLI
try:
    from aznet.cli import main

    if __name__ == "__main__":
        main()

except ImportError as e:
    print(f"Error importing aznet: {e}")
    print(
        "\nMake sure you're running from the python-aznet directory and have installed dependencies:",
    )
    print("   pip install -e .")
    sys.exit(1)
