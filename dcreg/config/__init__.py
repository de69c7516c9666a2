"""
Configuration package façade.

Exports the small, stable surface that external callers rely on:

* :func:`load_config` – Locate, parse, and validate *dcreg.yaml* into a
  :class:`DcregConfig` instance.
* :class:`DcregConfig` – Pydantic model representing the validated
  configuration.

Anything not imported here is considered private implementation detail.
"""

from .loader import load_config  # noqa: F401
from .schema import DcregConfig  # noqa: F401

__all__: list[str] = ["load_config", "DcregConfig"]
