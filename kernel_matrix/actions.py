"""Build and publish steps for the images of one build tuple.

Builds and pushes are content addressed: the image reference embeds the tag
of the source tree, so an image that can already be pulled for the tag does
not need to be built or pushed again. The forced variants skip that check.

A push publishes the hashed reference first and only then moves the
floating alias, so the alias never refers to content missing from the
registry.
"""

from collections.abc import Iterable
from dataclasses import dataclass
import logging
from typing import TextIO

from .docker import BuildOptions, Docker, provenance_labels
from .exceptions import DirtyRepositoryError, ManifestPushException
from .git_repo import TreeHash
from .image import ImageRef
from .matrix import BuildTuple, SideImage

__all__ = [
    "BuildContext",
    "build_kernel",
    "build_side_image",
    "push_image",
    "show_tag",
    "build_kconfig",
]

_LOGGER = logging.getLogger(__name__)

KCONFIG_IMAGE = "linuxkit/kconfig"
KCONFIG_DOCKERFILE = "Dockerfile.kconfig"

SIDE_IMAGE_DOCKERFILES = {
    SideImage.PERF: "Dockerfile.perf",
    SideImage.BCC: "Dockerfile.bcc",
    SideImage.ZFS: "Dockerfile.zfs",
}

# perf is built from the kernel sources only and needs no network access.
SIDE_IMAGE_NETWORK = {
    SideImage.PERF: "none",
}


@dataclass
class BuildContext:
    """Everything the steps need to know about the current run."""

    docker: Docker
    """Client used to run docker commands."""

    tree_hash: TreeHash
    """Content tag of the kernel directory."""

    org: str = "linuxkit"
    """Registry organization."""

    arch_suffix: str = ""
    """Architecture suffix of per-architecture image tags."""

    repo: str = ""
    """Source repository url for the provenance label."""

    revision: str | None = None
    """Commit sha for the provenance label."""

    kconfig_tag: str = ""
    """Tag of the kconfig image, if any."""

    output: TextIO | None = None
    """Where queries print their results, default stdout."""

    @property
    def tag(self) -> str:
        return self.tree_hash.tag

    @property
    def labels(self) -> dict[str, str]:
        """Provenance labels, with the revision only for a clean tree."""
        revision = None if self.tree_hash.dirty else self.revision
        return provenance_labels(self.repo, revision)

    def image(
        self, kernel: BuildTuple, side_image: SideImage | None = None
    ) -> ImageRef:
        """Return the image reference for the kernel or one of its side images."""
        return ImageRef.for_kernel(
            self.org, kernel, self.tag, self.arch_suffix, side_image
        )

    def check_clean(self) -> None:
        """Refuse to publish images built from uncommitted changes."""
        if self.tree_hash.dirty:
            raise DirtyRepositoryError()

    def check_publish(self) -> None:
        """Refuse to publish when a push could not complete."""
        self.check_clean()
        if not self.docker.has_manifest_helper:
            raise ManifestPushException(
                "No manifest helper configured, set PUSH_MANIFEST or run "
                "inside the repository"
            )


async def build_kernel(
    ctx: BuildContext, kernel: BuildTuple, force: bool = False
) -> None:
    """Build the kernel image unless it can be pulled for this content tag."""
    ref = ctx.image(kernel)
    if not force and await ctx.docker.pull(ref.hashed):
        _LOGGER.info("Using existing image %s", ref.hashed)
        return
    _LOGGER.info("Building %s", ref.hashed)
    options = BuildOptions(
        build_args={
            "KERNEL_VERSION": kernel.version,
            "KERNEL_SERIES": kernel.series,
            "EXTRA": kernel.variant,
            "DEBUG": kernel.debug,
        },
        labels=ctx.labels,
    )
    await ctx.docker.build(ref.hashed, options)


async def build_side_image(
    ctx: BuildContext, kernel: BuildTuple, side_image: SideImage, force: bool = False
) -> None:
    """Build a side image from the kernel image of the same content tag."""
    ref = ctx.image(kernel, side_image)
    if not force and await ctx.docker.pull(ref.hashed):
        _LOGGER.info("Using existing image %s", ref.hashed)
        return
    _LOGGER.info("Building %s", ref.hashed)
    # The kernel image is passed as a build argument, which docker content
    # trust does not support (moby/moby#34199).
    options = BuildOptions(
        dockerfile=SIDE_IMAGE_DOCKERFILES[side_image],
        build_args={"IMAGE": ctx.image(kernel).hashed},
        labels=ctx.labels,
        network=SIDE_IMAGE_NETWORK.get(side_image),
        content_trust=False,
    )
    await ctx.docker.build(ref.hashed, options)


async def push_image(ctx: BuildContext, ref: ImageRef, force: bool = False) -> None:
    """Publish the hashed image, then the floating alias, then the manifests."""
    ctx.check_publish()
    if not force and await ctx.docker.pull(ref.hashed):
        _LOGGER.info("Image %s already published", ref.hashed)
        return
    _LOGGER.info("Pushing %s", ref.hashed)
    await ctx.docker.push(ref.hashed)
    await ctx.docker.tag(ref.hashed, ref.floating)
    await ctx.docker.push(ref.floating)
    await ctx.docker.push_manifest(ref.manifest_hashed)
    await ctx.docker.push_manifest(ref.manifest_floating)


async def show_tag(ctx: BuildContext, kernel: BuildTuple) -> None:
    """Print the hashed reference of the kernel image."""
    print(ctx.image(kernel).manifest_hashed, file=ctx.output)


async def build_kconfig(ctx: BuildContext, versions: Iterable[str]) -> None:
    """Build the image used to extract kernel configs for all versions."""
    ref = f"{KCONFIG_IMAGE}:{ctx.kconfig_tag}" if ctx.kconfig_tag else KCONFIG_IMAGE
    _LOGGER.info("Building %s", ref)
    options = BuildOptions(
        dockerfile=KCONFIG_DOCKERFILE,
        build_args={"KERNEL_VERSIONS": " ".join(versions)},
    )
    await ctx.docker.build(ref, options)
