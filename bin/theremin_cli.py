#!/usr/bin/env python
"""
Command-line interface for the hand theremin application.

This script provides a CLI wrapper around the run_theremin function, allowing all
parameters to be controlled via command-line arguments.

Examples:
    # Run with default settings
    python theremin_cli.py --model-path hand_landmarker.task

    # Snap to the C major scale, and keep hands identified by detection order
    python theremin_cli.py --snap-to-scale --hand-ids index

    # Louder when the hand is farther away
    python theremin_cli.py --volume-convention closer_quieter

    # Print the readings of every frame, and debug logs
    python theremin_cli.py --log-readings --verbose

    # See what hand id functions are available
    python theremin_cli.py --list-hand-ids
"""

import argh
from handtheremin.script_utils import theremin_cli

if __name__ == "__main__":
    argh.dispatch_command(theremin_cli)
