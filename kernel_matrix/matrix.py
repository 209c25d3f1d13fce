"""Representation of the supported kernel build matrix.

Each supported architecture has a fixed list of kernels. A kernel entry is
expanded into a `BuildTuple` using the configured `EXTRA` and `DEBUG`
suffixes, unless the entry pins its own suffixes (e.g. the x86_64 debug build
of the LTS kernel). Each tuple then becomes a `BuildTarget` which records
which side images are built on top of the kernel image.

Example usage:

```python
from kernel_matrix import matrix

for target in matrix.expand_matrix("x86_64"):
    print(target.name, [side.value for side in target.side_images])
```
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
import logging

from mashumaro import DataClassDictMixin

__all__ = [
    "BuildTuple",
    "BuildTarget",
    "SideImage",
    "expand_matrix",
    "kernel_versions",
    "arch_suffix",
    "normalize_arch",
]

_LOGGER = logging.getLogger(__name__)

X86_64 = "x86_64"
AARCH64 = "aarch64"
S390X = "s390x"

# `uname -m` reports arm64 on some systems.
ARCH_ALIASES = {"arm64": AARCH64}

ARCH_SUFFIX = {
    X86_64: "-amd64",
    AARCH64: "-arm64",
    S390X: "-s390x",
}

DEBUG_SUFFIX = "-dbg"

# Only build perf and bcc on the latest LTS and stable kernels.
DEFAULT_SIDE_IMAGE_SERIES = ("5.6.x", "5.4.x")


class SideImage(str, Enum):
    """Images built on top of a kernel image."""

    PERF = "perf"
    BCC = "bcc"
    ZFS = "zfs"


@dataclass(frozen=True)
class KernelEntry:
    """A row of the per-architecture kernel table.

    A `None` variant or debug is filled in from the configured EXTRA/DEBUG.
    """

    version: str
    series: str
    variant: str | None = None
    debug: str | None = None


KERNELS: dict[str, list[KernelEntry]] = {
    X86_64: [
        KernelEntry("5.11.15", "5.11.x"),
        KernelEntry("5.10.31", "5.10.x"),
        KernelEntry("5.4.113", "5.4.x"),
        KernelEntry("5.4.113", "5.4.x", "", DEBUG_SUFFIX),
        KernelEntry("4.19.188", "4.19.x"),
    ],
    AARCH64: [
        KernelEntry("5.11.15", "5.11.x"),
        KernelEntry("5.10.11", "5.10.x"),
        KernelEntry("5.4.39", "5.4.x"),
    ],
    S390X: [
        KernelEntry("5.11.15", "5.11.x"),
        KernelEntry("5.10.31", "5.10.x"),
        KernelEntry("5.4.113", "5.4.x"),
    ],
}


def normalize_arch(arch: str) -> str:
    """Return the canonical architecture name."""
    return ARCH_ALIASES.get(arch, arch)


def arch_suffix(arch: str) -> str:
    """Return the image tag suffix for the architecture, empty if unknown."""
    return ARCH_SUFFIX.get(normalize_arch(arch), "")


@dataclass(frozen=True)
class BuildTuple(DataClassDictMixin):
    """Identifies one kernel build configuration."""

    version: str
    """Full kernel version e.g. 5.4.113."""

    series: str
    """Kernel series e.g. 5.4.x."""

    variant: str = ""
    """Kernel variant suffix e.g. -rt."""

    debug: str = ""
    """Debug suffix e.g. -dbg."""

    @property
    def name(self) -> str:
        """Suffix used in target names e.g. 5.4.x-dbg."""
        return f"{self.series}{self.variant}{self.debug}"

    @property
    def label(self) -> str:
        """Image version label e.g. 5.4.113-dbg."""
        return f"{self.version}{self.variant}{self.debug}"


@dataclass
class BuildTarget(DataClassDictMixin):
    """A kernel build and the side images built from it."""

    kernel: BuildTuple
    """The kernel configuration."""

    side_images: list[SideImage] = field(default_factory=list)
    """Side images enabled for this kernel, in build order."""

    @property
    def name(self) -> str:
        return self.kernel.name


def kernel_tuples(arch: str, extra: str = "", debug: str = "") -> list[BuildTuple]:
    """Return the build tuples for an architecture.

    Entries that resolve to an already seen target name are dropped, so a
    configured DEBUG of `-dbg` does not define the pinned debug kernel twice.
    """
    arch = normalize_arch(arch)
    if arch not in KERNELS:
        _LOGGER.warning("No kernels defined for architecture %s", arch)
    tuples: list[BuildTuple] = []
    seen: set[str] = set()
    for entry in KERNELS.get(arch, []):
        kernel = BuildTuple(
            version=entry.version,
            series=entry.series,
            variant=extra if entry.variant is None else entry.variant,
            debug=debug if entry.debug is None else entry.debug,
        )
        if kernel.name in seen:
            _LOGGER.debug("Skipping duplicate kernel %s", kernel.name)
            continue
        seen.add(kernel.name)
        tuples.append(kernel)
    return tuples


def side_images(
    arch: str, kernel: BuildTuple, side_image_series: Iterable[str]
) -> list[SideImage]:
    """Return the side images built for a kernel on an architecture."""
    result: list[SideImage] = []
    if normalize_arch(arch) == X86_64 and kernel.series in set(side_image_series):
        result.extend([SideImage.PERF, SideImage.BCC])
    # ZFS does not compile against debug kernels because
    # CONFIG_DEBUG_LOCK_ALLOC is incompatible with CDDL.
    if not kernel.debug:
        result.append(SideImage.ZFS)
    return result


def expand_matrix(
    arch: str,
    extra: str = "",
    debug: str = "",
    side_image_series: Iterable[str] = DEFAULT_SIDE_IMAGE_SERIES,
) -> list[BuildTarget]:
    """Expand the kernel table for an architecture into build targets."""
    series = tuple(side_image_series)
    return [
        BuildTarget(kernel=kernel, side_images=side_images(arch, kernel, series))
        for kernel in kernel_tuples(arch, extra, debug)
    ]


def kernel_versions(targets: Iterable[BuildTarget]) -> list[str]:
    """Return kernel versions that take part in the kernel config matrix.

    Debug builds are not part of the canonical config matrix.
    """
    return [target.kernel.version for target in targets if not target.kernel.debug]
