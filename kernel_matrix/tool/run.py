"""kernel-matrix actions that run rules."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
from typing import Any, cast

from kernel_matrix.rules import make_rules
from kernel_matrix.scheduler import Scheduler

from . import selector

_LOGGER = logging.getLogger(__name__)


async def run_rules(
    names: list[str], jobs: int, keep_going: bool, **kwargs: Any
) -> None:
    """Build the rules for the configuration and run the named ones."""
    config = selector.build_config(**kwargs)
    ctx = selector.build_context(config)
    rules = make_rules(ctx, selector.build_targets(config))
    scheduler = Scheduler(rules, jobs=jobs, keep_going=keep_going)
    results = await scheduler.run(names)
    _LOGGER.debug("Finished %d targets", len(results))


class RunAction:
    """kernel-matrix action that runs arbitrary rules by name."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "run",
                aliases=["make"],
                help="Run targets by name e.g. build_5.4.x or push_perf_5.4.x",
                description="""Runs the named targets and their dependencies.
                    Per kernel targets are named after the kernel series,
                    variant and debug suffix e.g. build_5.4.x-dbg, and side
                    images add an infix e.g. push_zfs_5.10.x.""",
            ),
        )
        args.add_argument("targets", nargs="+", help="Names of the targets to run")
        selector.add_common_flags(args)
        selector.add_run_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        targets: list[str],
        jobs: int,
        keep_going: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        await run_rules(targets, jobs, keep_going, **kwargs)


class UmbrellaAction:
    """kernel-matrix action that runs one umbrella rule for every kernel."""

    NAME = ""
    HELP = ""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(cls.NAME, help=cls.HELP, description=cls.HELP),
        )
        selector.add_common_flags(args)
        selector.add_run_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        jobs: int,
        keep_going: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        await run_rules([self.NAME], jobs, keep_going, **kwargs)


class BuildAction(UmbrellaAction):
    NAME = "build"
    HELP = "Build all kernels and side images unless already published"


class ForceBuildAction(UmbrellaAction):
    NAME = "forcebuild"
    HELP = "Build all kernels and side images without checking the registry"


class PushAction(UmbrellaAction):
    NAME = "push"
    HELP = "Push all kernels and side images unless already published"


class ForcePushAction(UmbrellaAction):
    NAME = "forcepush"
    HELP = "Rebuild and push all kernels and side images"


class ShowTagsAction(UmbrellaAction):
    NAME = "show-tags"
    HELP = "Print the hashed image reference of every kernel"


class ShowTagAction:
    """kernel-matrix action that prints the image reference of one kernel."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "show-tag",
                help="Print the hashed image reference of one kernel",
            ),
        )
        args.add_argument(
            "name", help="Kernel series with variant and debug suffix e.g. 5.4.x-dbg"
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        await run_rules([f"show-tag_{name}"], jobs=1, keep_going=False, **kwargs)


class KconfigAction:
    """kernel-matrix action that builds the kernel config extraction image."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "kconfig",
                help="Build the kconfig image for all non-debug kernel versions",
            ),
        )
        args.add_argument(
            "--kconfig-tag",
            type=str,
            default=None,
            help="Tag for the kconfig image (env KCONFIG_TAG)",
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        await run_rules(["kconfig"], jobs=1, keep_going=False, **kwargs)
