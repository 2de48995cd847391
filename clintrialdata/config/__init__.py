"""
Configuration package façade.

Exports the small, stable surface that external callers rely on:

* :func:`load_config` – Locate, parse, and validate the YAML configuration
  into a :class:`ConfigSchema` instance.
* :class:`ConfigSchema` – Pydantic model representing the validated
  configuration.

Anything not imported here is considered private implementation detail.
"""

from .loader import APP_NAME, load_config  # noqa: F401
from .schema import ConfigSchema  # noqa: F401

__all__: list[str] = ["APP_NAME", "load_config", "ConfigSchema"]
