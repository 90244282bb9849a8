__all__ = ["TutorLockRegistry", "tutor_locks"]


def __getattr__(name):
    if name in {"TutorLockRegistry", "tutor_locks"}:
        from . import booking_lock as _booking_lock
        return getattr(_booking_lock, name)
    raise AttributeError(f"module 'tutorslot.utils' has no attribute '{name}'")
