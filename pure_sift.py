#!/usr/bin/env python3
"""
Wrapper script for pure SIFT feature extraction and matching.
Makes it easier to run without the -m flag.

Usage:
    python pure_sift.py extract image.png
    python pure_sift.py match left.png right.png
"""

import sys
from puresift.sift_cli import main

if __name__ == '__main__':
    sys.exit(main())
