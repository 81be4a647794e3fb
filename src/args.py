"""Argument parsing functionality for installplan."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="installplan",
        description=(
            "installplan - Show which packages and root dependency groups a "
            "uv-style project or workspace would install"
        ),
        add_help=True,
    )

    parser.add_argument("-d", "--directory",
                        dest="DIRECTORY",
                        help="Project, workspace member or workspace root (default: current directory)",
                        action="store", type=str,
                        default=".")
    parser.add_argument("--lockfile",
                        dest="LOCKFILE",
                        help=f"Path to the lockfile (default: {Constants.UV_LOCK_FILE} at the workspace root)",
                        action="store",
                        type=str)

    target_group = parser.add_mutually_exclusive_group()
    target_group.add_argument("--package",
                              dest="PACKAGE",
                              help="Install a single workspace member.",
                              action="store", type=str)
    target_group.add_argument("--all-packages",
                              dest="ALL_PACKAGES",
                              help="Install every member of the workspace.",
                              action="store_true")

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the JSON plan to this file instead of stdout",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help=f"Set the logging level (default: ${Constants.ENV_LOG_LEVEL} or "
                             f"{Constants.DEFAULT_LOG_LEVEL})",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not log to console.",
                        action="store_true")

    return parser.parse_args(argv)
