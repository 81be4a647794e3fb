"""Tests for InstallTarget dispatch over the three install shapes."""

from pathlib import Path

import pytest

from constants import TargetKinds
from install_target import InstallTarget
from workspace.dependency_groups import CyclicGroupReference
from workspace.models import IncludeGroup, Lock, PyProjectToml, VirtualProject, Workspace, WorkspaceMember
from workspace.names import GroupName, PackageName


def _member(name):
    return WorkspaceMember(
        name=PackageName(name),
        root=Path("/ws") / name,
        pyproject=PyProjectToml(project_name=PackageName(name)),
    )


def _workspace(project_name=None, dependency_groups=None, dev_dependencies=None, members=()):
    pyproject = PyProjectToml(
        path=Path("/ws/pyproject.toml"),
        project_name=PackageName(project_name) if project_name else None,
        dependency_groups=(
            {GroupName(k): v for k, v in dependency_groups.items()}
            if dependency_groups is not None else None
        ),
        dev_dependencies=dev_dependencies,
    )
    return Workspace(
        install_path=Path("/ws"),
        pyproject=pyproject,
        packages={PackageName(m): _member(m) for m in members},
    )


ROOT_GROUPS = {"dev": ["A"], "docs": ["sphinx"]}


@pytest.fixture
def workspace():
    return _workspace(
        project_name="app",
        dependency_groups=ROOT_GROUPS,
        dev_dependencies=["B"],
        members=("app", "lib"),
    )


@pytest.fixture
def virtual_workspace():
    return _workspace(
        dependency_groups=ROOT_GROUPS,
        dev_dependencies=["B"],
        members=("lib-a", "lib-b"),
    )


class TestProjectTarget:
    """Test the single-package shape."""

    def test_packages_is_the_target(self, workspace):
        """A project target installs only its named package."""
        target = InstallTarget.project(workspace, PackageName("lib"), Lock(["app", "lib"]))
        assert list(target.packages()) == ["lib"]
        assert target.project_name() == "lib"

    def test_name_is_normalized(self, workspace):
        """The package name is normalized on construction."""
        target = InstallTarget.project(workspace, "My_Lib", Lock())
        assert target.project_name() == "my-lib"
        assert list(target.packages()) == [PackageName("my-lib")]

    def test_groups_always_empty(self, workspace):
        """A project target has no root groups."""
        target = InstallTarget.project(workspace, PackageName("app"), Lock(["app"]))
        assert target.groups() == {}

    def test_groups_empty_even_when_malformed(self):
        """Root group declarations are never read for a project."""
        broken = _workspace(
            project_name="app",
            dependency_groups={"x": [IncludeGroup("x")]},
            members=("app",),
        )
        target = InstallTarget.project(broken, PackageName("app"), Lock(["app"]))
        assert target.groups() == {}

    def test_workspace_accessor(self, workspace):
        """The workspace accessor returns the same workspace object."""
        target = InstallTarget.project(workspace, PackageName("app"), Lock())
        assert target.workspace() is workspace
        assert target.kind is TargetKinds.PROJECT

    def test_requires_name(self, workspace):
        """A project target without a name is rejected."""
        with pytest.raises(ValueError):
            InstallTarget(TargetKinds.PROJECT, workspace, Lock())


class TestWorkspaceTarget:
    """Test the whole-workspace shape."""

    def test_packages_from_lock_members(self, workspace):
        """Packages come from the lock's member list."""
        target = InstallTarget.whole_workspace(workspace, Lock(["app", "lib"], root="app"))
        assert list(target.packages()) == ["app", "lib"]

    def test_lock_order_is_authoritative(self, workspace):
        """Packages follow the lock's order."""
        target = InstallTarget.whole_workspace(workspace, Lock(["lib", "app"]))
        assert list(target.packages()) == ["lib", "app"]

    def test_falls_back_to_lock_root(self, workspace):
        """A single member at the root is identified by the lock root."""
        target = InstallTarget.whole_workspace(workspace, Lock([], root="app"))
        assert list(target.packages()) == ["app"]

    def test_packages_is_restartable(self, workspace):
        """Each packages() call yields a fresh iteration."""
        target = InstallTarget.whole_workspace(workspace, Lock(["app", "lib"]))
        assert list(target.packages()) == list(target.packages()) == ["app", "lib"]

    def test_no_duplicates(self, workspace):
        """Names that normalize alike are yielded once."""
        target = InstallTarget.whole_workspace(workspace, Lock(["app", "lib", "App"]))
        names = list(target.packages())
        assert names == ["app", "lib"]
        assert len(names) == len(set(names))

    def test_groups_always_empty(self, workspace):
        """A workspace target has no groups and no project name."""
        target = InstallTarget.whole_workspace(workspace, Lock(["app", "lib"]))
        assert target.groups() == {}
        assert target.project_name() is None

    def test_rejects_name(self, workspace):
        """A workspace target given a name is rejected."""
        with pytest.raises(ValueError):
            InstallTarget(TargetKinds.WORKSPACE, workspace, Lock(), PackageName("app"))


class TestNonProjectWorkspaceTarget:
    """Test the workspace-with-virtual-root shape."""

    def test_packages_from_lock_members(self, virtual_workspace):
        """Packages come from the lock's member list."""
        target = InstallTarget.non_project_workspace(virtual_workspace, Lock(["lib-a", "lib-b"]))
        assert list(target.packages()) == ["lib-a", "lib-b"]
        assert target.project_name() is None

    def test_lock_root_is_not_consulted(self, virtual_workspace):
        """The lock root is ignored for a virtual root."""
        target = InstallTarget.non_project_workspace(
            virtual_workspace, Lock(["lib-a"], root="something-else")
        )
        assert list(target.packages()) == ["lib-a"]

    def test_groups_merge_root_sources(self, virtual_workspace):
        """Root groups merge with legacy dev-dependencies."""
        target = InstallTarget.non_project_workspace(virtual_workspace, Lock(["lib-a"]))
        assert target.groups() == {"dev": ["A", "B"], "docs": ["sphinx"]}

    def test_groups_built_fresh_each_call(self, virtual_workspace):
        """Mutating a returned table does not affect the next call."""
        target = InstallTarget.non_project_workspace(virtual_workspace, Lock(["lib-a"]))
        first = target.groups()
        first["dev"].append("C")
        assert target.groups() == {"dev": ["A", "B"], "docs": ["sphinx"]}

    def test_no_declarations(self):
        """A root with no declarations yields no groups."""
        target = InstallTarget.non_project_workspace(_workspace(members=("a",)), Lock(["a"]))
        assert target.groups() == {}

    def test_group_errors_propagate(self):
        """Malformed root groups raise from groups()."""
        broken = _workspace(dependency_groups={
            "x": [IncludeGroup("y")],
            "y": [IncludeGroup("x")],
        })
        target = InstallTarget.non_project_workspace(broken, Lock(["a"]))
        with pytest.raises(CyclicGroupReference) as excinfo:
            target.groups()
        assert set(excinfo.value.groups) == {"x", "y"}


class TestConstruction:
    """Test construction from discovered projects."""

    def test_from_project_with_project(self, workspace):
        """A discovered project becomes a project target."""
        target = InstallTarget.from_project(
            VirtualProject(workspace=workspace, project_name=PackageName("app")), Lock(["app"])
        )
        assert target.kind is TargetKinds.PROJECT
        assert target.project_name() == "app"

    def test_from_project_with_non_project(self, virtual_workspace):
        """A virtual root becomes a non-project workspace target."""
        target = InstallTarget.from_project(VirtualProject(workspace=virtual_workspace), Lock())
        assert target.kind is TargetKinds.NON_PROJECT_WORKSPACE

    def test_from_workspace_with_project(self, workspace):
        """A project root with --all-packages becomes a workspace target."""
        target = InstallTarget.from_workspace(
            VirtualProject(workspace=workspace, project_name=PackageName("app")), Lock()
        )
        assert target.kind is TargetKinds.WORKSPACE
        assert target.project_name() is None

    def test_from_workspace_with_non_project(self, virtual_workspace):
        """A virtual root with --all-packages stays non-project."""
        target = InstallTarget.from_workspace(VirtualProject(workspace=virtual_workspace), Lock())
        assert target.kind is TargetKinds.NON_PROJECT_WORKSPACE

    def test_immutable(self, workspace):
        """Fields cannot be reassigned or deleted after construction."""
        target = InstallTarget.whole_workspace(workspace, Lock())
        with pytest.raises(AttributeError):
            target.kind = TargetKinds.PROJECT
        with pytest.raises(AttributeError):
            del target.kind
        with pytest.raises(AttributeError):
            del target._lock
        assert target.kind is TargetKinds.WORKSPACE

    @pytest.mark.parametrize("kind", list(TargetKinds))
    def test_every_kind_yields_unique_packages(self, workspace, kind):
        """Every kind yields a non-empty list of distinct names."""
        name = PackageName("app") if kind is TargetKinds.PROJECT else None
        target = InstallTarget(kind, workspace, Lock(["app", "lib"], root="app"), name)
        names = list(target.packages())
        assert names
        assert len(names) == len(set(names))
