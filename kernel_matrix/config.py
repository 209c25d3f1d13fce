"""Configuration objects for kernel-matrix.

Every setting has an environment variable of the same name as the variables
accepted by the original kernel Makefile, so existing invocations such as
`ORG=myorg EXTRA=-rt kernel-matrix build` keep working. Command line flags
take precedence over the environment.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import os
import platform
from pathlib import Path

from .matrix import DEFAULT_SIDE_IMAGE_SERIES

__all__ = [
    "Config",
    "split_list",
]

DEFAULT_ORG = "linuxkit"
DEFAULT_REPO = "https://github.com/linuxkit/linuxkit"
DEFAULT_COMMIT = "HEAD"


def split_list(value: str) -> tuple[str, ...]:
    """Split a comma separated value, dropping blank items."""
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass
class Config:
    """Settings for one invocation of the build matrix."""

    path: Path = field(default_factory=Path.cwd)
    """Kernel directory, used as docker build context and hashed for the tag."""

    arch: str = field(default_factory=platform.machine)
    """Host architecture as reported by `uname -m`."""

    org: str = DEFAULT_ORG
    """Registry organization for all images."""

    extra: str = ""
    """Kernel config and localversion suffix, e.g. `-rt`."""

    debug: str = ""
    """Debug config and localversion suffix, e.g. `-dbg`."""

    hash: str = ""
    """Explicit content tag overriding the computed git tree hash."""

    hash_commit: str = DEFAULT_COMMIT
    """Ref the git tree hash is computed from."""

    repo: str = DEFAULT_REPO
    """Source repository url for the provenance label."""

    content_trust: str = ""
    """Value of DOCKER_CONTENT_TRUST passed to the manifest helper."""

    kconfig_tag: str = ""
    """Optional tag for the kconfig image."""

    push_manifest: Path | None = None
    """Manifest helper script, defaults to scripts/push-manifest.sh in the repo."""

    side_image_series: tuple[str, ...] = DEFAULT_SIDE_IMAGE_SERIES
    """Kernel series that get perf and bcc side images."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Build a Config from environment variables."""
        env = os.environ if environ is None else environ
        config = cls()
        if arch := env.get("ARCH"):
            config.arch = arch
        config.org = env.get("ORG") or DEFAULT_ORG
        config.extra = env.get("EXTRA", "")
        config.debug = env.get("DEBUG", "")
        config.hash = env.get("HASH", "")
        config.hash_commit = (env.get("HASH_COMMIT") or DEFAULT_COMMIT).strip()
        config.repo = env.get("REPO", DEFAULT_REPO)
        config.content_trust = env.get("DOCKER_CONTENT_TRUST", "")
        config.kconfig_tag = env.get("KCONFIG_TAG", "")
        if push_manifest := env.get("PUSH_MANIFEST"):
            config.push_manifest = Path(push_manifest)
        if series := env.get("SIDE_IMAGE_SERIES"):
            config.side_image_series = split_list(series)
        return config
