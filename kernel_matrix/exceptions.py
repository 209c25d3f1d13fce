"""Exceptions related to kernel-matrix."""

__all__ = [
    "KernelMatrixException",
    "InputException",
    "UnknownTargetError",
    "RepositoryStateError",
    "DirtyRepositoryError",
    "CommandException",
    "DockerException",
    "ManifestPushException",
    "TargetFailedError",
]


class KernelMatrixException(Exception):
    """Generic base exception used for this library."""


class InputException(KernelMatrixException):
    """Raised when the input flags or values are not formatted as expected."""


class UnknownTargetError(InputException):
    """Raised when a requested target name is not defined for this matrix."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No rule to make target '{name}'")
        self.name = name


class RepositoryStateError(KernelMatrixException):
    """Raised when the content tag cannot be computed from the git repository."""


class DirtyRepositoryError(KernelMatrixException):
    """Raised when attempting to publish images built from uncommitted changes."""

    def __init__(self) -> None:
        super().__init__("Your repository is not clean. Will not push image")


class CommandException(KernelMatrixException):
    """Raised when there is a failure running a subcommand."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class DockerException(CommandException):
    """Raised when there is a failure running a docker command."""


class ManifestPushException(CommandException):
    """Raised when the multi-architecture manifest helper fails."""


class TargetFailedError(KernelMatrixException):
    """Raised when one or more targets failed during a run."""

    def __init__(self, failures: dict[str, BaseException]) -> None:
        names = ", ".join(failures)
        details = "\n".join(f"{name}: {err}" for name, err in failures.items())
        super().__init__(f"Failed targets: {names}\n{details}")
        self.failures = failures
