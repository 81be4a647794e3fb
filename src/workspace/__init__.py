"""Workspace descriptors, dependency groups and on-disk discovery."""

from .dependency_groups import (
    CyclicGroupReference,
    DependencyGroupError,
    FlatDependencyGroups,
    UnknownGroupReference,
    merge_dependency_groups,
)
from .models import IncludeGroup, Lock, PyProjectToml, VirtualProject, Workspace, WorkspaceMember
from .names import DEV_DEPENDENCIES, GroupName, PackageName

__all__ = [
    "CyclicGroupReference",
    "DependencyGroupError",
    "FlatDependencyGroups",
    "UnknownGroupReference",
    "merge_dependency_groups",
    "IncludeGroup",
    "Lock",
    "PyProjectToml",
    "VirtualProject",
    "Workspace",
    "WorkspaceMember",
    "DEV_DEPENDENCIES",
    "GroupName",
    "PackageName",
]
