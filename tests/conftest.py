"""Shared fixtures for kernel-matrix tests."""

from collections.abc import Iterable
from pathlib import Path

import git
import pytest

from kernel_matrix.docker import BuildOptions, Docker
from kernel_matrix.exceptions import DockerException, ManifestPushException
from kernel_matrix.git_repo import TreeHash

TEST_ACTOR = git.Actor("Kernel Matrix", "kernel-matrix@example.com")


class FakeDocker(Docker):
    """Records docker calls instead of running them.

    `published` holds references that can be pulled. Pushed references are
    added to it. `failures` maps (operation, reference) to the exit status
    the operation fails with.
    """

    def __init__(
        self,
        context: Path = Path("."),
        push_manifest: Path | None = Path("scripts/push-manifest.sh"),
        content_trust: str = "",
        published: Iterable[str] = (),
        failures: dict[tuple[str, str], int] | None = None,
    ) -> None:
        super().__init__(context, push_manifest, content_trust)
        self.published = set(published)
        self.failures = failures or {}
        self.calls: list[tuple[str, str]] = []
        self.build_options: dict[str, BuildOptions] = {}

    def _record(self, op: str, ref: str) -> None:
        self.calls.append((op, ref))
        if (returncode := self.failures.get((op, ref))) is not None:
            exc = ManifestPushException if op == "manifest" else DockerException
            raise exc(f"{op} {ref} failed", returncode=returncode)

    async def pull(self, ref: str) -> bool:
        self.calls.append(("pull", ref))
        return ref in self.published

    async def build(self, ref: str, options: BuildOptions) -> None:
        self.build_options[ref] = options
        self._record("build", ref)

    async def push(self, ref: str) -> None:
        self._record("push", ref)
        self.published.add(ref)

    async def tag(self, source: str, target: str) -> None:
        self._record("tag", f"{source} {target}")

    async def push_manifest(self, ref: str) -> None:
        self._record("manifest", ref)


@pytest.fixture(name="docker")
def mock_docker() -> FakeDocker:
    """Fixture for a docker client that records calls."""
    return FakeDocker()


@pytest.fixture(name="tree_hash")
def mock_tree_hash() -> TreeHash:
    """Fixture for a clean content tag."""
    return TreeHash(hash="abc123")


@pytest.fixture(name="kernel_repo")
def mock_kernel_repo(tmp_path: Path) -> Path:
    """Fixture for a git repo with one commit, returning its kernel directory."""
    repo = git.Repo.init(tmp_path)
    kernel = tmp_path / "kernel"
    kernel.mkdir()
    (kernel / "Dockerfile").write_text("FROM scratch\n")
    (kernel / "config-5.4.x").write_text("CONFIG_LOCALVERSION=\n")
    (tmp_path / "README.md").write_text("Kernels\n")
    repo.index.add(["kernel/Dockerfile", "kernel/config-5.4.x", "README.md"])
    repo.index.commit("Add kernel", author=TEST_ACTOR, committer=TEST_ACTOR)
    return kernel
