"""Shared helpers: paths, archives, display, logging and error types."""

from .errors import *  # noqa: F401,F403
from .paths import bundled_data_root, cache_dir, normalize_study_path  # noqa: F401
