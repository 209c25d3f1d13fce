"""Fixtures for kernel-matrix tool tests."""

import pytest

from kernel_matrix.tool import selector

from ..conftest import FakeDocker

ENV_VARS = [
    "ARCH",
    "ORG",
    "EXTRA",
    "DEBUG",
    "HASH",
    "HASH_COMMIT",
    "REPO",
    "DOCKER_CONTENT_TRUST",
    "KCONFIG_TAG",
    "PUSH_MANIFEST",
    "SIDE_IMAGE_SERIES",
]


@pytest.fixture(autouse=True)
def clear_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings of the calling environment out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(name="tool_docker")
def mock_tool_docker(monkeypatch: pytest.MonkeyPatch, docker: FakeDocker) -> FakeDocker:
    """Fixture that makes the command line tool use the recording docker client."""
    monkeypatch.setattr(selector, "Docker", lambda **kwargs: docker)
    return docker
