#!/usr/bin/env python3
"""
Signaling Server Runner.

Convenience script to run the server without installing the package.

Usage:
    python run_server.py

Or run as module:
    python -m signal_relay
"""

import sys
import os

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'python'))

if __name__ == "__main__":
    from signal_relay.__main__ import main
    import asyncio
    sys.exit(asyncio.run(main()))
