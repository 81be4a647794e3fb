"""Flattening and merging of PEP 735 dependency groups.

Groups may include other groups by name (``{include-group = "..."}``). The
flattener expands those references depth-first into plain requirement lists;
the merger then folds the legacy ``tool.uv.dev-dependencies`` list into the
reserved ``dev`` group.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from common.logging_utils import Timer, extra_context, is_debug_enabled

from .models import DependencyGroups, GroupEntry, GroupTable, IncludeGroup, Requirement
from .names import DEV_DEPENDENCIES, GroupName

logger = logging.getLogger(__name__)


class DependencyGroupError(Exception):
    """Base class for malformed ``dependency-groups`` declarations."""


class CyclicGroupReference(DependencyGroupError):
    """A group's include chain revisits a group that is still being expanded."""

    def __init__(self, cycle: Sequence[GroupName]):
        self.cycle: Tuple[GroupName, ...] = tuple(cycle)
        rendered = " -> ".join(f"`{name}`" for name in self.cycle)
        super().__init__(f"Detected a cycle in `dependency-groups`: {rendered}")

    @property
    def groups(self) -> Tuple[GroupName, ...]:
        """Distinct members of the cycle, in the order first visited."""
        return tuple(dict.fromkeys(self.cycle))


class UnknownGroupReference(DependencyGroupError):
    """An include-reference names a group that is not declared."""

    def __init__(self, group: GroupName, parent: GroupName):
        self.group = group
        self.parent = parent
        super().__init__(f"Failed to find group `{group}` included by `{parent}`")


class FlatDependencyGroups(Dict[GroupName, List[Requirement]]):
    """Group name -> fully expanded requirement list, keys in sorted order."""

    @classmethod
    def from_dependency_groups(
        cls, groups: Mapping[GroupName, Sequence[GroupEntry]]
    ) -> "FlatDependencyGroups":
        """Expand every group in ``groups``.

        Raises:
            CyclicGroupReference: an include chain loops back on itself.
            UnknownGroupReference: an include names an undeclared group.
            DependencyGroupError: two keys normalize to the same group name.
        """
        declared: Dict[GroupName, Sequence[GroupEntry]] = {}
        for raw_name, entries in groups.items():
            name = GroupName(raw_name)
            if name in declared:
                raise DependencyGroupError(
                    f"Duplicate dependency group `{name}` (from `{raw_name}`)"
                )
            declared[name] = entries
        resolved: Dict[GroupName, List[Requirement]] = {}
        with Timer() as t:
            for name in sorted(declared):
                _resolve_group(name, declared, resolved)
        if is_debug_enabled(logger):
            logger.debug(
                "Flattened dependency groups",
                extra=extra_context(
                    event="function_exit",
                    component="dependency_groups",
                    action="flatten",
                    count=len(resolved),
                    duration_ms=t.duration_ms(),
                ),
            )
        return cls((name, resolved[name]) for name in sorted(resolved))


class _Frame:
    """One in-progress group on the expansion stack."""

    __slots__ = ("name", "entries", "output")

    def __init__(self, name: GroupName, entries: Sequence[GroupEntry]):
        self.name = name
        self.entries: Iterator[GroupEntry] = iter(entries)
        self.output: List[Requirement] = []


def _resolve_group(
    name: GroupName,
    declared: Mapping[GroupName, Sequence[GroupEntry]],
    resolved: Dict[GroupName, List[Requirement]],
) -> List[Requirement]:
    """Depth-first expansion of ``name`` using an explicit stack.

    ``resolved`` doubles as the memo table for this flattening pass.
    """
    if name in resolved:
        return resolved[name]

    stack: List[_Frame] = [_Frame(name, declared[name])]
    on_stack: Set[GroupName] = {name}

    while stack:
        frame = stack[-1]
        child: Optional[_Frame] = None
        for entry in frame.entries:
            if not isinstance(entry, IncludeGroup):
                frame.output.append(entry)
                continue
            include = entry.name
            if include in on_stack:
                path = [f.name for f in stack]
                start = path.index(include)
                raise CyclicGroupReference(path[start:] + [include])
            if include not in declared:
                raise UnknownGroupReference(include, frame.name)
            if include in resolved:
                frame.output.extend(resolved[include])
                continue
            child = _Frame(include, declared[include])
            break

        if child is not None:
            stack.append(child)
            on_stack.add(child.name)
            continue

        stack.pop()
        on_stack.discard(frame.name)
        resolved[frame.name] = frame.output
        if stack:
            # The parent paused on this include; splice the result in place.
            stack[-1].output.extend(frame.output)

    return resolved[name]


def merge_dependency_groups(
    dependency_groups: Optional[DependencyGroups],
    dev_dependencies: Optional[Sequence[Requirement]],
) -> GroupTable:
    """Combine flattened ``dependency-groups`` with legacy dev-dependencies.

    Flattened groups come first, then the legacy list under ``dev`` when it
    was declared at all. A name present in both sources has its lists
    concatenated; nothing is replaced or de-duplicated.

    Raises:
        DependencyGroupError: propagated unchanged from flattening.
    """
    flat = FlatDependencyGroups.from_dependency_groups(dependency_groups or {})

    sources: List[Tuple[GroupName, List[Requirement]]] = [
        (name, list(requirements)) for name, requirements in flat.items()
    ]
    if dev_dependencies is not None:
        sources.append((DEV_DEPENDENCIES, list(dev_dependencies)))

    merged: GroupTable = {}
    for name, requirements in sources:
        existing = merged.get(name)
        if existing is None:
            merged[name] = requirements
        else:
            existing.extend(requirements)

    return {name: merged[name] for name in sorted(merged)}
