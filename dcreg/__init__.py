"""
dcreg package initialisation.

1. **Expose the version string**
   ``dcreg.__version__`` is resolved at import-time from the installed
   distribution metadata.

2. **Re-export the public YAML loader** so call-sites can simply do::

       from dcreg import load_config
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("dcreg")
except PackageNotFoundError:
    # Source tree without an installed wheel.
    __version__ = "0.0.0"

from .config import load_config  # noqa: E402

__all__: list[str] = ["load_config", "__version__"]
