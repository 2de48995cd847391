"""Advisory session locks over study folders and their file-mode hardening."""

from .permissions import PermissionHardener
from .registry import (
    LockRegistry,
    can_write_study,
    get_lock_status,
    get_registry,
    is_study_locked,
    lock_all_studies,
    lock_study,
    reset_registry,
    unlock_study,
)

__all__ = [
    "PermissionHardener",
    "LockRegistry",
    "get_registry",
    "reset_registry",
    "is_study_locked",
    "lock_study",
    "unlock_study",
    "lock_all_studies",
    "get_lock_status",
    "can_write_study",
]
