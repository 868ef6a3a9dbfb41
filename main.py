# -*- coding: utf-8 -*-
"""
fe2io - lightweight FE2 client
Program entry point

Usage:
    python main.py <username> [volume] [server_url]

Requires:
    - Python 3.10+
    - websockets, pydantic, pygame, requests
"""

import sys
from pathlib import Path

# allow running from a source checkout without installing
sys.path.insert(0, str(Path(__file__).parent))

from fe2io.cli import main

if __name__ == "__main__":
    sys.exit(main())
