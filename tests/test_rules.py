"""Tests for the rules generated from the build matrix."""

import pytest

from kernel_matrix.actions import BuildContext
from kernel_matrix.git_repo import TreeHash
from kernel_matrix.matrix import expand_matrix
from kernel_matrix.rules import Rule, make_rules

from .conftest import FakeDocker


@pytest.fixture(name="rules")
def mock_rules(docker: FakeDocker, tree_hash: TreeHash) -> dict[str, Rule]:
    """Fixture for the rules of the x86_64 build matrix."""
    ctx = BuildContext(docker=docker, tree_hash=tree_hash, arch_suffix="-amd64")
    return make_rules(ctx, expand_matrix("x86_64"))


def test_kernel_rules(rules: dict[str, Rule]) -> None:
    """Test every kernel has the per kernel rules."""
    for name in ["5.11.x", "5.10.x", "5.4.x", "5.4.x-dbg", "4.19.x"]:
        assert rules[f"build_{name}"].deps == []
        assert rules[f"forcebuild_{name}"].deps == []
        assert rules[f"push_{name}"].deps == [f"build_{name}"]
        assert rules[f"forcepush_{name}"].deps == [f"forcebuild_{name}"]
        assert rules[f"show-tag_{name}"].deps == []


def test_push_rules_are_guarded(rules: dict[str, Rule]) -> None:
    """Test only publishing rules check the tree is clean."""
    for name, rule in rules.items():
        publishes = name.startswith("push") or name.startswith("forcepush")
        assert (rule.guard is not None) == publishes, name


def test_side_image_rules(rules: dict[str, Rule]) -> None:
    """Test side image rules depend on the kernel they are built from."""
    assert rules["build_perf_5.4.x"].deps == ["build_5.4.x"]
    assert rules["push_perf_5.4.x"].deps == ["build_perf_5.4.x"]
    assert rules["forcebuild_perf_5.4.x"].deps == ["build_5.4.x"]
    assert rules["forcepush_perf_5.4.x"].deps == ["forcebuild_perf_5.4.x"]
    assert rules["build_bcc_5.4.x-dbg"].deps == ["build_5.4.x-dbg"]
    assert rules["build_zfs_5.10.x"].deps == ["build_5.10.x"]
    assert rules["push_zfs_5.10.x"].deps == ["build_zfs_5.10.x"]


def test_zfs_rules(rules: dict[str, Rule]) -> None:
    """Test zfs has build and push rules only for kernels without debug."""
    zfs = sorted(name for name in rules if "_zfs_" in name)
    assert zfs == [
        "build_zfs_4.19.x",
        "build_zfs_5.10.x",
        "build_zfs_5.11.x",
        "build_zfs_5.4.x",
        "push_zfs_4.19.x",
        "push_zfs_5.10.x",
        "push_zfs_5.11.x",
        "push_zfs_5.4.x",
    ]


def test_no_perf_for_other_series(rules: dict[str, Rule]) -> None:
    """Test perf and bcc rules exist only for the allowed series."""
    perf = sorted(name for name in rules if "_perf_" in name)
    assert perf == [
        "build_perf_5.4.x",
        "build_perf_5.4.x-dbg",
        "forcebuild_perf_5.4.x",
        "forcebuild_perf_5.4.x-dbg",
        "forcepush_perf_5.4.x",
        "forcepush_perf_5.4.x-dbg",
        "push_perf_5.4.x",
        "push_perf_5.4.x-dbg",
    ]


def test_build_umbrella(rules: dict[str, Rule]) -> None:
    """Test the build rule covers kernels, perf and bcc but not zfs."""
    assert rules["build"].action is None
    assert rules["build"].deps == [
        "build_5.11.x",
        "build_5.10.x",
        "build_5.4.x",
        "build_perf_5.4.x",
        "build_bcc_5.4.x",
        "build_5.4.x-dbg",
        "build_perf_5.4.x-dbg",
        "build_bcc_5.4.x-dbg",
        "build_4.19.x",
    ]


@pytest.mark.parametrize("prefix", ["forcebuild", "push", "forcepush"])
def test_umbrellas(rules: dict[str, Rule], prefix: str) -> None:
    """Test the other umbrella rules follow the same order."""
    expected = [dep.replace("build_", f"{prefix}_", 1) for dep in rules["build"].deps]
    assert rules[prefix].deps == expected


def test_show_tags_umbrella(rules: dict[str, Rule]) -> None:
    """Test show-tags prints every kernel in matrix order."""
    assert rules["show-tags"].deps == [
        "show-tag_5.11.x",
        "show-tag_5.10.x",
        "show-tag_5.4.x",
        "show-tag_5.4.x-dbg",
        "show-tag_4.19.x",
    ]


def test_kconfig(rules: dict[str, Rule]) -> None:
    """Test the kconfig rule."""
    assert rules["kconfig"].deps == []
    assert rules["kconfig"].action is not None


def test_other_architecture(docker: FakeDocker, tree_hash: TreeHash) -> None:
    """Test rules for an architecture without perf and bcc."""
    ctx = BuildContext(docker=docker, tree_hash=tree_hash, arch_suffix="-s390x")
    rules = make_rules(ctx, expand_matrix("s390x"))
    assert rules["build"].deps == ["build_5.11.x", "build_5.10.x", "build_5.4.x"]
    assert "build_zfs_5.4.x" in rules
    assert not [name for name in rules if "_perf_" in name or "_bcc_" in name]


def test_empty_matrix(docker: FakeDocker, tree_hash: TreeHash) -> None:
    """Test an architecture without kernels still has the umbrella rules."""
    ctx = BuildContext(docker=docker, tree_hash=tree_hash)
    rules = make_rules(ctx, expand_matrix("riscv64"))
    assert sorted(rules) == [
        "build",
        "forcebuild",
        "forcepush",
        "kconfig",
        "push",
        "show-tags",
    ]
