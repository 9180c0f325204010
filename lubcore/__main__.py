"""LubCore CLI entry point.

Delegates to ``lubcore.cli`` which houses all Click commands.
Kept minimal so that ``python -m lubcore`` and the ``lubcore``
console-script entry point both resolve here.
"""

from __future__ import annotations

from lubcore.cli import cli


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
