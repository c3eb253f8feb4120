#!/usr/bin/env python3
"""
Mockup Server

Convenience wrapper that calls the packaged CLI.
The actual implementation is in src/mockup/cli.py

Usage:
    python mockup-server.py config.json --port 3001
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from mockup.cli import main

if __name__ == '__main__':
    main()
