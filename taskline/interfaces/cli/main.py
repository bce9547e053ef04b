"""Entry point for the taskline CLI.

Usage:
    python -m taskline.interfaces.cli.main

Or via installed entry point:
    taskline <command>
"""

from taskline.interfaces.cli import app


def main() -> None:
    """Run the taskline CLI application."""
    app()


if __name__ == "__main__":
    main()
