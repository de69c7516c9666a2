"""Module wrapper so running ``python -m dcreg.cli`` matches the console script."""

from dcreg.cli import main


if __name__ == "__main__":  # pragma: no cover
    main()
