"""Entry point for the topbar CLI."""

import sys


def main() -> int:
    """Main entry point."""
    from topbar.cli import cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
