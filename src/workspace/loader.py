"""Load workspace descriptors and locks from disk (pyproject.toml, uv.lock).

This is the only module that touches the filesystem; everything it returns
is an immutable descriptor from ``workspace.models``.
"""

from __future__ import annotations

import glob
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from packaging.requirements import InvalidRequirement, Requirement

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

from .models import (
    DependencyGroups,
    GroupEntry,
    IncludeGroup,
    Lock,
    PyProjectToml,
    VirtualProject,
    Workspace,
    WorkspaceMember,
)
from .names import GroupName, PackageName

try:
    import tomllib as toml
except ImportError:  # Python < 3.11
    import tomli as toml  # type: ignore

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """A ``pyproject.toml`` could not be read or is malformed."""

    def __init__(self, path: Any, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class LockError(Exception):
    """A ``uv.lock`` could not be read or is malformed."""

    def __init__(self, path: Any, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


def _read_toml(path: Path, error_cls) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return toml.load(f) or {}
    except FileNotFoundError as e:
        raise error_cls(path, "file not found") from e
    except OSError as e:
        raise error_cls(path, f"failed to read file: {e}") from e
    except UnicodeDecodeError as e:
        raise error_cls(path, f"invalid UTF-8: {e}") from e
    except toml.TOMLDecodeError as e:
        raise error_cls(path, f"invalid TOML: {e}") from e


def _table(data: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Walk nested tables, returning ``{}`` for anything missing."""
    current: Any = data
    for key in keys:
        if not isinstance(current, dict):
            return {}
        current = current.get(key, {})
    return current if isinstance(current, dict) else {}


def _parse_requirement(path: Path, raw: Any, where: str) -> Requirement:
    if not isinstance(raw, str):
        raise ManifestError(path, f"expected a requirement string in {where}, got {raw!r}")
    try:
        return Requirement(raw)
    except InvalidRequirement as e:
        raise ManifestError(path, f"invalid requirement {raw!r} in {where}: {e}") from e


def _parse_dependency_groups(path: Path, raw: Any) -> Optional[DependencyGroups]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ManifestError(path, "`dependency-groups` must be a table")

    groups: DependencyGroups = {}
    for raw_name, entries in raw.items():
        name = GroupName(raw_name)
        if name in groups:
            raise ManifestError(
                path, f"duplicate dependency group `{name}` (from `{raw_name}`)"
            )
        if not isinstance(entries, list):
            raise ManifestError(path, f"dependency group `{raw_name}` must be a list")

        parsed: List[GroupEntry] = []
        for entry in entries:
            if isinstance(entry, dict):
                include = entry.get(Constants.INCLUDE_GROUP_KEY)
                if not isinstance(include, str) or len(entry) != 1:
                    raise ManifestError(
                        path, f"invalid table {entry!r} in dependency group `{raw_name}`"
                    )
                parsed.append(IncludeGroup(GroupName(include)))
            else:
                parsed.append(
                    _parse_requirement(path, entry, f"dependency group `{raw_name}`")
                )
        groups[name] = parsed
    return groups


def _string_tuple(path: Path, raw: Any, where: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ManifestError(path, f"`{where}` must be a list of strings")
    return tuple(raw)


def parse_pyproject(path) -> PyProjectToml:
    """Parse the parts of a ``pyproject.toml`` relevant to installation.

    Raises:
        ManifestError: unreadable file, invalid TOML or malformed entries.
    """
    path = Path(path)
    data = _read_toml(path, ManifestError)

    project_name: Optional[PackageName] = None
    if "project" in data:
        name = _table(data, "project").get("name")
        if not isinstance(name, str) or not name.strip():
            raise ManifestError(path, "`[project]` requires a `name`")
        project_name = PackageName(name)

    uv = _table(data, "tool", "uv")
    dev_dependencies: Optional[List[Requirement]] = None
    if "dev-dependencies" in uv:
        raw_dev = uv["dev-dependencies"]
        if not isinstance(raw_dev, list):
            raise ManifestError(path, "`tool.uv.dev-dependencies` must be a list")
        dev_dependencies = [
            _parse_requirement(path, entry, "`tool.uv.dev-dependencies`") for entry in raw_dev
        ]

    workspace = _table(uv, "workspace")
    return PyProjectToml(
        path=path,
        project_name=project_name,
        dependency_groups=_parse_dependency_groups(path, data.get("dependency-groups")),
        dev_dependencies=dev_dependencies,
        workspace_members=_string_tuple(path, workspace.get("members"), "tool.uv.workspace.members"),
        workspace_exclude=_string_tuple(path, workspace.get("exclude"), "tool.uv.workspace.exclude"),
    )


def _expand_globs(root: Path, patterns: Tuple[str, ...]) -> List[Path]:
    matches: List[Path] = []
    for pattern in patterns:
        for match in sorted(glob.glob(os.path.join(str(root), pattern))):
            path = Path(match)
            if path.is_dir():
                matches.append(path.resolve())
    return matches


def discover_workspace(root) -> Workspace:
    """Build the ``Workspace`` rooted at ``root``.

    The root is a member when it declares ``[project]``; other members come
    from ``tool.uv.workspace.members`` globs minus ``exclude`` globs.
    Members are ordered by name.

    Raises:
        ManifestError: a manifest is malformed or two members share a name.
    """
    root = Path(root).resolve()
    with Timer() as t:
        pyproject = parse_pyproject(root / Constants.PYPROJECT_TOML_FILE)

        members: Dict[PackageName, WorkspaceMember] = {}

        def _add(member: WorkspaceMember) -> None:
            other = members.get(member.name)
            if other is not None and other.root != member.root:
                raise ManifestError(
                    member.pyproject.path,
                    f"two workspace members are named `{member.name}`: {other.root} and {member.root}",
                )
            members[member.name] = member

        if pyproject.is_project:
            _add(WorkspaceMember(name=pyproject.project_name, root=root, pyproject=pyproject))

        excluded = set(_expand_globs(root, pyproject.workspace_exclude))
        for member_root in _expand_globs(root, pyproject.workspace_members):
            if member_root in excluded or member_root == root:
                continue
            manifest = member_root / Constants.PYPROJECT_TOML_FILE
            if not manifest.is_file():
                logger.warning("Skipping workspace member without %s: %s",
                               Constants.PYPROJECT_TOML_FILE, member_root)
                continue
            member_pyproject = parse_pyproject(manifest)
            if not member_pyproject.is_project:
                raise ManifestError(manifest, "workspace member is missing a `[project]` table")
            _add(WorkspaceMember(
                name=member_pyproject.project_name,
                root=member_root,
                pyproject=member_pyproject,
            ))

    if is_debug_enabled(logger):
        logger.debug(
            "Discovered workspace",
            extra=extra_context(
                event="function_exit",
                component="loader",
                action="discover_workspace",
                target=str(root),
                count=len(members),
                duration_ms=t.duration_ms(),
            ),
        )
    return Workspace(
        install_path=root,
        pyproject=pyproject,
        packages={name: members[name] for name in sorted(members)},
    )


def find_workspace_root(project_root) -> Optional[Path]:
    """Return the nearest ancestor whose ``tool.uv.workspace`` includes ``project_root``.

    Returns ``None`` when ``project_root`` is not a member of any enclosing
    workspace, i.e. it is a workspace root itself.
    """
    project_root = Path(project_root).resolve()
    for ancestor in project_root.parents:
        manifest = ancestor / Constants.PYPROJECT_TOML_FILE
        if not manifest.is_file():
            continue
        pyproject = parse_pyproject(manifest)
        if not pyproject.workspace_members:
            continue
        if project_root in _expand_globs(ancestor, pyproject.workspace_exclude):
            continue
        if project_root in _expand_globs(ancestor, pyproject.workspace_members):
            return ancestor
    return None


def discover_project(root) -> VirtualProject:
    """Classify ``root`` as a project or a non-project workspace root.

    When ``root`` is a member of an enclosing workspace, the workspace is
    built from that enclosing root and the member becomes the project.

    Raises:
        ManifestError: a manifest is malformed, or ``root`` is a workspace
            member without a ``[project]`` table.
    """
    root = Path(root).resolve()
    workspace_root = find_workspace_root(root)
    if workspace_root is None:
        workspace = discover_workspace(root)
        return VirtualProject(workspace=workspace, project_name=workspace.pyproject.project_name)

    workspace = discover_workspace(workspace_root)
    member = parse_pyproject(root / Constants.PYPROJECT_TOML_FILE)
    if not member.is_project:
        raise ManifestError(member.path, "workspace member is missing a `[project]` table")
    if is_debug_enabled(logger):
        logger.debug(
            "Found enclosing workspace",
            extra=extra_context(
                event="decision",
                component="loader",
                action="discover_project",
                target=str(root),
                outcome="member",
            ),
        )
    return VirtualProject(workspace=workspace, project_name=member.project_name)


def _is_root_source(source: Any) -> bool:
    if not isinstance(source, dict):
        return False
    return source.get("editable") == "." or source.get("virtual") == "."


def load_lock(path) -> Lock:
    """Read workspace membership from a ``uv.lock``.

    Raises:
        LockError: unreadable file, invalid TOML or malformed membership.
    """
    path = Path(path)
    data = _read_toml(path, LockError)

    raw_members = _table(data, "manifest").get("members", [])
    if not isinstance(raw_members, list) or not all(isinstance(m, str) for m in raw_members):
        raise LockError(path, "`manifest.members` must be a list of strings")

    root: Optional[str] = None
    packages = data.get("package", [])
    if not isinstance(packages, list):
        raise LockError(path, "`package` must be an array of tables")
    for package in packages:
        if not isinstance(package, dict):
            continue
        if _is_root_source(package.get("source")):
            name = package.get("name")
            if not isinstance(name, str):
                raise LockError(path, "root package is missing a `name`")
            root = name
            break

    lock = Lock(members=raw_members, root=root)
    if is_debug_enabled(logger):
        logger.debug(
            "Loaded lock",
            extra=extra_context(
                event="function_exit",
                component="loader",
                action="load_lock",
                target=str(path),
                count=len(lock.member_identifiers()),
                outcome="root_found" if root is not None else "no_root",
            ),
        )
    return lock
