"""Git and GitHub helpers."""

from .actions import ActionsStatus, RunStatus
from .repository import GitContext, GitInspector, infer_owner_repo

__all__ = ["ActionsStatus", "GitContext", "GitInspector", "RunStatus", "infer_owner_repo"]
