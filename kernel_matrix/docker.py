"""Library for running `docker` commands to build and publish images.

The `Docker` object wraps the handful of docker CLI invocations used by the
build matrix. It is the only place that knows about command lines, so tests
can substitute a fake object with the same methods.

```python
from kernel_matrix.docker import Docker, BuildOptions

docker = Docker(context=Path("kernel"), push_manifest=Path("scripts/push-manifest.sh"))
if not await docker.pull("linuxkit/kernel:5.4.113-abc-amd64"):
    await docker.build("linuxkit/kernel:5.4.113-abc-amd64", BuildOptions(...))
```
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path

from . import command
from .exceptions import DockerException, ManifestPushException

__all__ = [
    "Docker",
    "BuildOptions",
    "provenance_labels",
]

_LOGGER = logging.getLogger(__name__)


DOCKER_BIN = "docker"
SOURCE_LABEL = "org.opencontainers.image.source"
REVISION_LABEL = "org.opencontainers.image.revision"


@dataclass
class BuildOptions:
    """Options for a `docker build` invocation."""

    dockerfile: str | None = None
    """Dockerfile relative to the build context, default Dockerfile."""

    build_args: dict[str, str] = field(default_factory=dict)
    """Values passed with --build-arg."""

    labels: dict[str, str] = field(default_factory=dict)
    """Values passed with --label."""

    network: str | None = None
    """Network mode for RUN instructions e.g. none."""

    content_trust: bool = True
    """When false, the build runs with DOCKER_CONTENT_TRUST=0."""

    @property
    def args(self) -> list[str]:
        """Return the `docker build` flags for these options."""
        args: list[str] = []
        if self.dockerfile:
            args.extend(["-f", self.dockerfile])
        for key, value in self.build_args.items():
            args.extend(["--build-arg", f"{key}={value}"])
        for key, value in self.labels.items():
            args.extend(["--label", f"{key}={value}"])
        args.append("--no-cache")
        if self.network:
            args.append(f"--network={self.network}")
        return args

    @property
    def env(self) -> dict[str, str] | None:
        if not self.content_trust:
            return {"DOCKER_CONTENT_TRUST": "0"}
        return None


def provenance_labels(repo: str, revision: str | None) -> dict[str, str]:
    """Return OCI labels for the source repo and, when known, the commit."""
    labels: dict[str, str] = {}
    if repo:
        labels[SOURCE_LABEL] = repo
    if revision:
        labels[REVISION_LABEL] = revision
    return labels


class Docker:
    """Runs docker commands for a build context."""

    def __init__(
        self,
        context: Path,
        push_manifest: Path | None = None,
        content_trust: str = "",
    ) -> None:
        """Initialize Docker."""
        self._context = context
        self._push_manifest = push_manifest
        self._content_trust = content_trust

    @property
    def has_manifest_helper(self) -> bool:
        """True when a manifest helper is configured for publishing."""
        return self._push_manifest is not None

    async def pull(self, ref: str) -> bool:
        """Pull an image, returning false if it could not be pulled.

        Any failure is reported as absent, including registry outages.
        """
        try:
            await command.run(
                command.Command([DOCKER_BIN, "pull", ref], exc=DockerException)
            )
        except DockerException as err:
            _LOGGER.debug("Unable to pull %s: %s", ref, err)
            return False
        return True

    async def build(self, ref: str, options: BuildOptions) -> None:
        """Build an image from the context and tag it with the reference."""
        args = [DOCKER_BIN, "build", *options.args, "-t", ref, "."]
        await command.run(
            command.Command(
                args,
                cwd=self._context,
                env=options.env,
                exc=DockerException,
                capture_output=False,
            )
        )

    async def push(self, ref: str) -> None:
        """Push an image to the registry."""
        await command.run(
            command.Command(
                [DOCKER_BIN, "push", ref], exc=DockerException, capture_output=False
            )
        )

    async def tag(self, source: str, target: str) -> None:
        """Create the target tag referring to the source image."""
        await command.run(
            command.Command([DOCKER_BIN, "tag", source, target], exc=DockerException)
        )

    async def push_manifest(self, ref: str) -> None:
        """Publish a multi-architecture manifest for the reference."""
        if self._push_manifest is None:
            raise ManifestPushException(f"No manifest helper configured for {ref}")
        args = [str(self._push_manifest), ref]
        if self._content_trust:
            args.append(self._content_trust)
        await command.run(
            command.Command(args, exc=ManifestPushException, capture_output=False)
        )
