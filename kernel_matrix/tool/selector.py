"""Library for flags shared by kernel-matrix commands."""

from argparse import ArgumentParser, BooleanOptionalAction
import logging
import pathlib
from typing import Any, TextIO

from kernel_matrix import git_repo, matrix
from kernel_matrix.actions import BuildContext
from kernel_matrix.config import Config, split_list
from kernel_matrix.docker import Docker
from kernel_matrix.exceptions import RepositoryStateError
from kernel_matrix.git_repo import TreeHash

_LOGGER = logging.getLogger(__name__)


def add_matrix_flags(args: ArgumentParser) -> None:
    """Add flags that select the build matrix.

    Flags default to None so that unset flags fall back to the environment.
    """
    args.add_argument(
        "--arch",
        type=str,
        default=None,
        help="Architecture to build for, default is the host (env ARCH)",
    )
    args.add_argument(
        "--extra",
        type=str,
        default=None,
        help="Kernel config and localversion suffix e.g. -rt (env EXTRA)",
    )
    args.add_argument(
        "--debug",
        type=str,
        default=None,
        help="Debug config and localversion suffix e.g. -dbg (env DEBUG)",
    )
    args.add_argument(
        "--side-image-series",
        type=split_list,
        default=None,
        help="Comma separated kernel series that get perf and bcc images "
        "(env SIDE_IMAGE_SERIES)",
    )


def add_common_flags(args: ArgumentParser) -> None:
    """Add flags that are common to commands that reference images."""
    add_matrix_flags(args)
    args.add_argument(
        "--path",
        type=pathlib.Path,
        default=None,
        help="Kernel directory used as build context and hashed for the tag",
    )
    args.add_argument(
        "--org",
        type=str,
        default=None,
        help="Registry organization for all images (env ORG)",
    )
    args.add_argument(
        "--hash",
        type=str,
        default=None,
        help="Use this content tag instead of the git tree hash (env HASH)",
    )
    args.add_argument(
        "--hash-commit",
        type=str,
        default=None,
        help="Compute the git tree hash at this ref (env HASH_COMMIT)",
    )
    args.add_argument(
        "--repo",
        type=str,
        default=None,
        help="Source repository url for the image source label (env REPO)",
    )
    args.add_argument(
        "--content-trust",
        type=str,
        default=None,
        help="Value passed to the manifest helper (env DOCKER_CONTENT_TRUST)",
    )
    args.add_argument(
        "--push-manifest",
        type=pathlib.Path,
        default=None,
        help="Manifest helper script, default scripts/push-manifest.sh in the "
        "repo (env PUSH_MANIFEST)",
    )


def add_run_flags(args: ArgumentParser) -> None:
    """Add flags that control how rules are run."""
    args.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=1,
        help="Number of targets to run at the same time",
    )
    args.add_argument(
        "--keep-going",
        "-k",
        type=bool,
        default=False,
        action=BooleanOptionalAction,
        help="Continue with unrelated targets after a failure",
    )


def build_config(**kwargs: Any) -> Config:
    """Return the Config from the environment overridden by flags."""
    config = Config.from_env()
    for key in (
        "path",
        "arch",
        "org",
        "extra",
        "debug",
        "hash",
        "hash_commit",
        "repo",
        "content_trust",
        "kconfig_tag",
        "push_manifest",
        "side_image_series",
    ):
        if (value := kwargs.get(key)) is not None:
            setattr(config, key, value)
    return config


def build_targets(config: Config) -> list[matrix.BuildTarget]:
    """Expand the build matrix for the configuration."""
    return matrix.expand_matrix(
        config.arch,
        extra=config.extra,
        debug=config.debug,
        side_image_series=config.side_image_series,
    )


def tree_hash(config: Config) -> TreeHash:
    """Return the content tag, computing it from git unless overridden."""
    if config.hash:
        return TreeHash(hash=config.hash)
    return git_repo.compute_tag(config.path, config.hash_commit)


def build_context(config: Config, output: TextIO | None = None) -> BuildContext:
    """Return the context for running rules with this configuration."""
    content = tree_hash(config)
    revision: str | None = None
    push_manifest = config.push_manifest
    try:
        if not content.dirty:
            revision = git_repo.head_revision(config.path)
        if push_manifest is None:
            push_manifest = git_repo.push_manifest_path(config.path)
    except RepositoryStateError as err:
        # Only reachable with an explicit tag, otherwise the tag computation
        # above would have failed first.
        _LOGGER.warning("Unable to read repository metadata: %s", err)
    docker = Docker(
        context=config.path,
        push_manifest=push_manifest,
        content_trust=config.content_trust,
    )
    return BuildContext(
        docker=docker,
        tree_hash=content,
        org=config.org,
        arch_suffix=matrix.arch_suffix(config.arch),
        repo=config.repo,
        revision=revision,
        kconfig_tag=config.kconfig_tag,
        output=output,
    )
