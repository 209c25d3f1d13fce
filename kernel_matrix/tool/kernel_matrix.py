"""Command line tool for building and publishing the kernel image matrix."""

import argparse
import asyncio
import logging
import sys
import traceback

from kernel_matrix.exceptions import (
    CommandException,
    KernelMatrixException,
    TargetFailedError,
)
from . import get, run

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kernel-matrix",
        description="Build, tag and push kernel images for every supported "
        "kernel of the host architecture.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    run.BuildAction.register(subparsers)
    run.ForceBuildAction.register(subparsers)
    run.PushAction.register(subparsers)
    run.ForcePushAction.register(subparsers)
    run.ShowTagsAction.register(subparsers)
    run.ShowTagAction.register(subparsers)
    run.KconfigAction.register(subparsers)
    run.RunAction.register(subparsers)
    get.TargetsAction.register(subparsers)
    get.TagAction.register(subparsers)
    return parser


def exit_code(err: KernelMatrixException) -> int:
    """Return the exit status for an error, preferring the failed tool's own."""
    if isinstance(err, TargetFailedError):
        for failure in err.failures.values():
            if isinstance(failure, CommandException) and failure.returncode:
                return failure.returncode
    if isinstance(err, CommandException) and err.returncode:
        return err.returncode
    return 1


def main(argv: list[str] | None = None) -> None:
    """kernel-matrix command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except KernelMatrixException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("kernel-matrix error: ", err, file=sys.stderr)
        sys.exit(exit_code(err))


if __name__ == "__main__":
    main()
