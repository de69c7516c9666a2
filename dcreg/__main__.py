"""
Module entry-point that makes the package runnable with

    python -m dcreg
    python -m dcreg.cli

The behaviour is identical to the *dcreg-cli* console script because the
Click **group** object imported below performs all CLI dispatching.
"""

from dcreg.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
