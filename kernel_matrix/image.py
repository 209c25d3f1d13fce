"""Helper functions for naming container images.

Every image is published under two tags: one embedding the content tag and
one floating alias without it. Each tag exists per architecture (with an
architecture suffix) and as a multi-architecture manifest list (without).
"""

from dataclasses import dataclass

from .matrix import BuildTuple, SideImage

__all__ = [
    "ImageRef",
    "KERNEL_IMAGE",
    "SIDE_IMAGE_NAMES",
]

KERNEL_IMAGE = "kernel"

SIDE_IMAGE_NAMES = {
    SideImage.PERF: "kernel-perf",
    SideImage.BCC: "kernel-bcc",
    SideImage.ZFS: "zfs-kmod",
}


@dataclass(frozen=True)
class ImageRef:
    """A reference to one image of one build tuple."""

    org: str
    """Registry organization e.g. linuxkit."""

    image: str
    """Image name e.g. kernel."""

    label: str
    """Version label e.g. 5.4.113-dbg."""

    tag: str
    """Content tag of the source tree."""

    arch_suffix: str = ""
    """Architecture suffix e.g. -amd64."""

    @classmethod
    def for_kernel(
        cls,
        org: str,
        kernel: BuildTuple,
        tag: str,
        arch_suffix: str,
        side_image: SideImage | None = None,
    ) -> "ImageRef":
        """Return the reference of the kernel image or one of its side images."""
        image = SIDE_IMAGE_NAMES[side_image] if side_image else KERNEL_IMAGE
        return cls(
            org=org, image=image, label=kernel.label, tag=tag, arch_suffix=arch_suffix
        )

    @property
    def repository(self) -> str:
        return f"{self.org}/{self.image}"

    @property
    def hashed(self) -> str:
        """The per-architecture reference embedding the content tag."""
        return f"{self.repository}:{self.label}-{self.tag}{self.arch_suffix}"

    @property
    def floating(self) -> str:
        """The per-architecture alias pointing at the latest build."""
        return f"{self.repository}:{self.label}{self.arch_suffix}"

    @property
    def manifest_hashed(self) -> str:
        """The multi-architecture manifest embedding the content tag."""
        return f"{self.repository}:{self.label}-{self.tag}"

    @property
    def manifest_floating(self) -> str:
        """The multi-architecture manifest alias."""
        return f"{self.repository}:{self.label}"

    def __str__(self) -> str:
        return self.hashed
