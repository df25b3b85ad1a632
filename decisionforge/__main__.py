"""
Entry point for running decisionforge as a module.

Usage:
    python -m decisionforge run
    python -m decisionforge report --db decisions.db

This is equivalent to:
    python -m decisionforge.cli.decide_cli [args]
"""

import sys


def main():
    from decisionforge.cli.decide_cli import main as cli_main
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
