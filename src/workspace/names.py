"""Normalized identifiers for packages and dependency groups."""

from packaging.utils import canonicalize_name

from constants import Constants


class PackageName(str):
    """A PEP 503 normalized package name.

    Instances compare, hash and sort as plain strings, so they can key
    ordinary dicts and be looked up with the normalized ``str`` form.
    """

    __slots__ = ()

    def __new__(cls, value: str) -> "PackageName":
        if isinstance(value, cls):
            return value
        return super().__new__(cls, canonicalize_name(str(value)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str.__repr__(self)})"


class GroupName(str):
    """A normalized dependency-group name (same rules as package names)."""

    __slots__ = ()

    def __new__(cls, value: str) -> "GroupName":
        if isinstance(value, cls):
            return value
        return super().__new__(cls, canonicalize_name(str(value)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str.__repr__(self)})"


# Group that receives the legacy `tool.uv.dev-dependencies` list.
DEV_DEPENDENCIES = GroupName(Constants.DEV_DEPENDENCIES_GROUP)
