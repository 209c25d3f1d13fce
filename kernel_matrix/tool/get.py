"""kernel-matrix actions that inspect the build matrix without side effects."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
from typing import Any, cast

from kernel_matrix import matrix

from .format import OUTPUT_FORMATS, TABLE, formatter
from . import selector

_LOGGER = logging.getLogger(__name__)

TARGET_KEYS = ["name", "version", "series", "variant", "debug", "side_images"]


def target_rows(targets: list[matrix.BuildTarget]) -> list[dict[str, Any]]:
    """Flatten build targets into rows for output."""
    rows = []
    for target in targets:
        data = target.to_dict()
        rows.append(
            {
                "name": target.name,
                **data["kernel"],
                "side_images": data["side_images"],
            }
        )
    return rows


class TargetsAction:
    """kernel-matrix action that lists the build targets of an architecture."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "targets",
                help="List the kernels and side images of the build matrix",
            ),
        )
        selector.add_matrix_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=OUTPUT_FORMATS,
            default=TABLE,
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = selector.build_config(**kwargs)
        targets = selector.build_targets(config)
        if not targets:
            _LOGGER.warning("No kernels are built for architecture %s", config.arch)
        formatter(output, TARGET_KEYS).print(target_rows(targets))


class TagAction:
    """kernel-matrix action that prints the content tag of the kernel directory."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "tag",
                help="Print the content tag used for all images",
            ),
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = selector.build_config(**kwargs)
        print(selector.tree_hash(config).tag)
