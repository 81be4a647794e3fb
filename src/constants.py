"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    DEPENDENCY_GROUP_ERROR = 4
    UNKNOWN_PACKAGE = 5


class TargetKinds(Enum):
    """Install shapes supported by the program.

    Args:
        Enum (string): Install shapes supported by the program.
    """

    PROJECT = "project"
    WORKSPACE = "workspace"
    NON_PROJECT_WORKSPACE = "non-project-workspace"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PYPROJECT_TOML_FILE = "pyproject.toml"
    UV_LOCK_FILE = "uv.lock"
    DEV_DEPENDENCIES_GROUP = "dev"
    INCLUDE_GROUP_KEY = "include-group"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "INSTALLPLAN_LOG_LEVEL"
    DEFAULT_LOG_LEVEL = "INFO"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
