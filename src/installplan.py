"""installplan - Show what a uv-style project or workspace would install."""

import json
import logging
import sys
from pathlib import Path

from args import parse_args
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from install_target import InstallTarget
from workspace.dependency_groups import DependencyGroupError
from workspace.loader import LockError, ManifestError, discover_project, load_lock
from workspace.names import PackageName

logger = logging.getLogger(__name__)


def build_target(args, project, lock):
    """Choose the install target from the CLI flags.

    Args:
        args (Namespace): Parsed CLI arguments.
        project (VirtualProject): The discovered project or non-project root.
        lock (Lock): The loaded lock.

    Returns:
        InstallTarget: The target to report on.
    """
    if args.PACKAGE:
        name = PackageName(args.PACKAGE)
        if name not in project.workspace.members():
            logging.error("Package `%s` is not a member of the workspace at %s",
                          args.PACKAGE, project.workspace.install_path)
            sys.exit(ExitCodes.UNKNOWN_PACKAGE.value)
        return InstallTarget.project(project.workspace, name, lock)
    if args.ALL_PACKAGES:
        return InstallTarget.from_workspace(project, lock)
    return InstallTarget.from_project(project, lock)


def build_plan(target):
    """Render an install target as a JSON-serializable dict.

    Args:
        target (InstallTarget): The target to render.

    Raises:
        DependencyGroupError: If the root dependency groups are malformed.

    Returns:
        dict: The plan.
    """
    groups = target.groups()
    return {
        "target": target.kind.value,
        "project": target.project_name(),
        "workspace": str(target.workspace().install_path),
        "packages": list(target.packages()),
        "groups": {
            name: [str(requirement) for requirement in requirements]
            for name, requirements in groups.items()
        },
    }


def export_json(plan, path):
    """Writes the plan to a JSON file, or stdout when no path is given.

    Args:
        plan (dict): The plan to write.
        path (str): File path to export the JSON, or None.
    """
    if not path:
        json.dump(plan, sys.stdout, ensure_ascii=False, indent=4)
        sys.stdout.write("\n")
        return
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(plan, file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE, args.QUIET)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        project = discover_project(Path(args.DIRECTORY))
    except ManifestError as e:
        logging.error("Failed to load workspace: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    # The lock lives at the workspace root, even when run from a member.
    if args.LOCKFILE:
        lock_path = Path(args.LOCKFILE)
    else:
        lock_path = project.workspace.install_path / Constants.UV_LOCK_FILE
    try:
        lock = load_lock(lock_path)
    except LockError as e:
        logging.error("Failed to load lockfile: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    target = build_target(args, project, lock)
    logging.info("Install target: %r", target)

    try:
        plan = build_plan(target)
    except DependencyGroupError as e:
        logging.error("Invalid dependency groups in %s: %s",
                      project.workspace.pyproject.path, e)
        sys.exit(ExitCodes.DEPENDENCY_GROUP_ERROR.value)

    export_json(plan, args.OUTPUT)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="main",
                outcome="success",
                count=len(plan["packages"]),
            )
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
