"""
kernel-matrix builds and publishes container images for a matrix of kernels.

Each supported kernel of the host architecture is built into a `kernel`
image, and some kernels also get `kernel-perf`, `kernel-bcc` and `zfs-kmod`
side images. Images are tagged with the git tree hash of the kernel
directory so unchanged sources are never rebuilt or pushed twice.
"""

__all__ = [
    "actions",
    "config",
    "docker",
    "exceptions",
    "git_repo",
    "image",
    "matrix",
    "rules",
    "scheduler",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
