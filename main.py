#!/usr/bin/env python3
"""
Agentic Structure Generation - Main Entry Point

Usage:
    python main.py generate "small oak cabin with a door"
    python main.py validate blueprint.json
    python main.py --version
"""

import sys


def main():
    """Main entry point; delegates to the automation CLI."""
    if "--version" in sys.argv[1:]:
        from generation import __version__
        print(f"Agentic Structure Generation {__version__}")
        return 0

    from automation.cli import main as cli_main
    return cli_main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
