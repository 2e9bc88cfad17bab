#!/usr/bin/env python3
"""
Wave Survivor Launcher
======================
Run this script to start the game. An optional first argument picks the
pilot profile to load.
"""

from wave_survivor.main import main

if __name__ == "__main__":
    main()
