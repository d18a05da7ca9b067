"""Allow running the package with: `python -m originfinder`.

This delegates to :func:`originfinder.cli.main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
