"""Background jobs."""

from staffbot.tasks.role_sync import RoleSyncTask, SpecialRole, spec_role_sync

__all__ = ["RoleSyncTask", "SpecialRole", "spec_role_sync"]
