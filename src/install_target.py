"""Install targets: what a sync/install invocation should operate on."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, NoReturn, Optional

from common.logging_utils import extra_context, is_debug_enabled
from constants import TargetKinds
from workspace.dependency_groups import merge_dependency_groups
from workspace.models import GroupTable, Lock, VirtualProject, Workspace
from workspace.names import PackageName

logger = logging.getLogger(__name__)


def _unhandled(kind: TargetKinds) -> NoReturn:
    raise AssertionError(f"Unhandled install target kind: {kind!r}")


@dataclass(frozen=True, eq=False, repr=False)
class InstallTarget:
    """A target that can be installed.

    Exactly one of three shapes, fixed at construction:

    * ``PROJECT``: a single package, either the workspace root or a member.
    * ``WORKSPACE``: an entire workspace.
    * ``NON_PROJECT_WORKSPACE``: a workspace whose root is not a package.

    The workspace and lock are shared references owned by the caller; the
    target never mutates them.
    """

    kind: TargetKinds
    _workspace: Workspace
    _lock: Lock
    _name: Optional[PackageName] = None

    def __post_init__(self):
        kind = self.kind
        if kind is TargetKinds.PROJECT:
            if self._name is None:
                raise ValueError("A project install target requires a package name")
            object.__setattr__(self, "_name", PackageName(self._name))
        elif kind in (TargetKinds.WORKSPACE, TargetKinds.NON_PROJECT_WORKSPACE):
            if self._name is not None:
                raise ValueError(f"A {kind.value} install target does not take a package name")
        else:
            _unhandled(kind)

    def __repr__(self) -> str:
        if self.kind is TargetKinds.PROJECT:
            return f"InstallTarget.project({self._name!r})"
        return f"InstallTarget({self.kind.value})"

    @classmethod
    def project(cls, workspace: Workspace, name: PackageName, lock: Lock) -> "InstallTarget":
        return cls(TargetKinds.PROJECT, workspace, lock, name)

    @classmethod
    def whole_workspace(cls, workspace: Workspace, lock: Lock) -> "InstallTarget":
        return cls(TargetKinds.WORKSPACE, workspace, lock)

    @classmethod
    def non_project_workspace(cls, workspace: Workspace, lock: Lock) -> "InstallTarget":
        return cls(TargetKinds.NON_PROJECT_WORKSPACE, workspace, lock)

    @classmethod
    def from_workspace(cls, project: VirtualProject, lock: Lock) -> "InstallTarget":
        """Install everything: the whole workspace, or the non-project root."""
        if project.is_project:
            return cls.whole_workspace(project.workspace, lock)
        return cls.non_project_workspace(project.workspace, lock)

    @classmethod
    def from_project(cls, project: VirtualProject, lock: Lock) -> "InstallTarget":
        """Install only the discovered project, or the non-project root."""
        if project.is_project:
            return cls.project(project.workspace, project.project_name, lock)
        return cls.non_project_workspace(project.workspace, lock)

    def workspace(self) -> Workspace:
        """Return the workspace the target belongs to."""
        kind = self.kind
        if kind is TargetKinds.PROJECT:
            return self._workspace
        if kind is TargetKinds.WORKSPACE:
            return self._workspace
        if kind is TargetKinds.NON_PROJECT_WORKSPACE:
            return self._workspace
        _unhandled(kind)

    def packages(self) -> Iterator[PackageName]:
        """Return the names of the packages to install.

        Each call returns a fresh iterator over the same sequence.
        """
        kind = self.kind
        if kind is TargetKinds.PROJECT:
            return iter((self._name,))
        if kind is TargetKinds.NON_PROJECT_WORKSPACE:
            return iter(self._lock.member_identifiers())
        if kind is TargetKinds.WORKSPACE:
            # Members are encoded directly in the lockfile, unless the
            # workspace is a single member at the root, which the lock
            # identifies by its source instead.
            members = self._lock.member_identifiers()
            if members:
                return iter(members)
            root = self._lock.root_identifier()
            if is_debug_enabled(logger):
                logger.debug(
                    "Lock has no explicit members; using root package",
                    extra=extra_context(
                        event="decision",
                        component="install_target",
                        action="packages",
                        outcome="root_fallback" if root is not None else "no_root",
                    ),
                )
            return iter(() if root is None else (root,))
        _unhandled(kind)

    def groups(self) -> GroupTable:
        """Return the dependency groups that apply to the workspace root.

        Only a non-project workspace can have these: its root is not a
        member, so its ``dependency-groups`` and ``tool.uv.dev-dependencies``
        are not picked up per package. Every other shape returns ``{}``.

        Raises:
            DependencyGroupError: the root's group declarations are malformed.
        """
        kind = self.kind
        if kind is TargetKinds.PROJECT:
            return {}
        if kind is TargetKinds.WORKSPACE:
            return {}
        if kind is TargetKinds.NON_PROJECT_WORKSPACE:
            dependency_groups, dev_dependencies = self._workspace.root_group_declarations()
            groups = merge_dependency_groups(dependency_groups, dev_dependencies)
            if is_debug_enabled(logger):
                logger.debug(
                    "Resolved root dependency groups",
                    extra=extra_context(
                        event="function_exit",
                        component="install_target",
                        action="groups",
                        count=len(groups),
                    ),
                )
            return groups
        _unhandled(kind)

    def project_name(self) -> Optional[PackageName]:
        """Return the target package name; only projects have one."""
        kind = self.kind
        if kind is TargetKinds.PROJECT:
            return self._name
        if kind is TargetKinds.WORKSPACE:
            return None
        if kind is TargetKinds.NON_PROJECT_WORKSPACE:
            return None
        _unhandled(kind)
