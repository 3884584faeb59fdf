#!/usr/bin/env python3
"""PrepTick — entry point.

Run with:
    python main.py
    python -m preptick
"""

from preptick.__main__ import main


if __name__ == "__main__":
    main()
