"""Read-only descriptors for manifests, workspaces and locks."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .names import GroupName, PackageName


@dataclass(frozen=True)
class IncludeGroup:
    """A ``{include-group = "..."}`` entry inside a dependency group."""

    name: GroupName

    def __post_init__(self):
        object.__setattr__(self, "name", GroupName(self.name))


# Requirements are opaque here (usually ``packaging.requirements.Requirement``).
Requirement = Any
GroupEntry = Union[Requirement, IncludeGroup]
DependencyGroups = Dict[GroupName, List[GroupEntry]]
GroupTable = Dict[GroupName, List[Requirement]]


@dataclass(frozen=True)
class PyProjectToml:
    """The parts of a ``pyproject.toml`` this tool reads.

    ``dev_dependencies`` is ``None`` when ``tool.uv.dev-dependencies`` was
    never declared, which is different from an empty list.
    """

    path: Optional[Path] = None
    project_name: Optional[PackageName] = None
    dependency_groups: Optional[DependencyGroups] = None
    dev_dependencies: Optional[List[Requirement]] = None
    workspace_members: Tuple[str, ...] = ()
    workspace_exclude: Tuple[str, ...] = ()

    @property
    def is_project(self) -> bool:
        """Whether the manifest declares an installable ``[project]``."""
        return self.project_name is not None


@dataclass(frozen=True)
class WorkspaceMember:
    """A single installable package of a workspace."""

    name: PackageName
    root: Path
    pyproject: PyProjectToml


@dataclass(frozen=True)
class Workspace:
    """A root manifest plus its ordered member packages."""

    install_path: Path
    pyproject: PyProjectToml
    packages: Dict[PackageName, WorkspaceMember] = field(default_factory=dict)

    def members(self) -> Dict[PackageName, WorkspaceMember]:
        return self.packages

    def is_single_member(self) -> bool:
        return len(self.packages) == 1

    def root_group_declarations(
        self,
    ) -> Tuple[DependencyGroups, Optional[List[Requirement]]]:
        """Return the root's ``dependency-groups`` and legacy dev list."""
        return (
            dict(self.pyproject.dependency_groups or {}),
            self.pyproject.dev_dependencies,
        )


class Lock:
    """The membership view of a resolved ``uv.lock``.

    Members are kept in stored order with duplicates removed. ``root`` is
    only set when the workspace is a single package located at the root, in
    which case the lock does not list members explicitly.
    """

    __slots__ = ("_members", "_root")

    def __init__(
        self,
        members: Iterable[str] = (),
        root: Optional[str] = None,
    ):
        seen = set()
        ordered: List[PackageName] = []
        for member in members:
            name = PackageName(member)
            if name not in seen:
                seen.add(name)
                ordered.append(name)
        self._members: Tuple[PackageName, ...] = tuple(ordered)
        self._root: Optional[PackageName] = PackageName(root) if root is not None else None

    def member_identifiers(self) -> Tuple[PackageName, ...]:
        return self._members

    def root_identifier(self) -> Optional[PackageName]:
        return self._root

    def __repr__(self) -> str:
        return f"Lock(members={list(self._members)!r}, root={self._root!r})"


@dataclass(frozen=True)
class VirtualProject:
    """What discovery found at a directory.

    Either a project (``project_name`` set: the root package or a member) or
    a workspace whose root is not a package (``project_name`` is ``None``).
    """

    workspace: Workspace
    project_name: Optional[PackageName] = None

    @property
    def is_project(self) -> bool:
        return self.project_name is not None
