"""Entry point for ``python -m pollfile``.

Usage:
    python -m pollfile watch /var/log/big.log --interval 500
    python -m pollfile regions /var/log/big.log
"""

import sys

from pollfile.cli import run_cli


def main() -> None:
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
