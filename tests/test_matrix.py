"""Tests for the build matrix."""

import pytest

from kernel_matrix.matrix import (
    BuildTuple,
    SideImage,
    arch_suffix,
    expand_matrix,
    kernel_versions,
    normalize_arch,
)


def _tuples(arch: str, extra: str = "", debug: str = "") -> list[BuildTuple]:
    return [target.kernel for target in expand_matrix(arch, extra, debug)]


def test_build_tuple_names() -> None:
    """Test the derived names of a build tuple."""
    kernel = BuildTuple("5.4.113", "5.4.x", "-rt", "-dbg")
    assert kernel.name == "5.4.x-rt-dbg"
    assert kernel.label == "5.4.113-rt-dbg"


def test_x86_64_tuples() -> None:
    """Test the kernels built on x86_64."""
    assert _tuples("x86_64") == [
        BuildTuple("5.11.15", "5.11.x", "", ""),
        BuildTuple("5.10.31", "5.10.x", "", ""),
        BuildTuple("5.4.113", "5.4.x", "", ""),
        BuildTuple("5.4.113", "5.4.x", "", "-dbg"),
        BuildTuple("4.19.188", "4.19.x", "", ""),
    ]


@pytest.mark.parametrize("arch", ["aarch64", "arm64"])
def test_aarch64_tuples(arch: str) -> None:
    """Test the kernels built on arm64 under both architecture names."""
    assert _tuples(arch) == [
        BuildTuple("5.11.15", "5.11.x", "", ""),
        BuildTuple("5.10.11", "5.10.x", "", ""),
        BuildTuple("5.4.39", "5.4.x", "", ""),
    ]


def test_s390x_tuples() -> None:
    """Test the kernels built on s390x."""
    assert _tuples("s390x") == [
        BuildTuple("5.11.15", "5.11.x", "", ""),
        BuildTuple("5.10.31", "5.10.x", "", ""),
        BuildTuple("5.4.113", "5.4.x", "", ""),
    ]


def test_unknown_arch() -> None:
    """Test an architecture without kernels."""
    assert expand_matrix("riscv64") == []
    assert arch_suffix("riscv64") == ""


@pytest.mark.parametrize(
    ("arch", "expected"),
    [
        ("x86_64", "-amd64"),
        ("aarch64", "-arm64"),
        ("arm64", "-arm64"),
        ("s390x", "-s390x"),
        ("ppc64le", ""),
    ],
)
def test_arch_suffix(arch: str, expected: str) -> None:
    """Test the image tag suffix for each architecture."""
    assert arch_suffix(arch) == expected


def test_normalize_arch() -> None:
    """Test architecture aliases."""
    assert normalize_arch("arm64") == "aarch64"
    assert normalize_arch("x86_64") == "x86_64"


def test_extra_and_debug_suffixes() -> None:
    """Test the configured suffixes apply to all but the pinned debug kernel."""
    assert _tuples("x86_64", extra="-rt") == [
        BuildTuple("5.11.15", "5.11.x", "-rt", ""),
        BuildTuple("5.10.31", "5.10.x", "-rt", ""),
        BuildTuple("5.4.113", "5.4.x", "-rt", ""),
        BuildTuple("5.4.113", "5.4.x", "", "-dbg"),
        BuildTuple("4.19.188", "4.19.x", "-rt", ""),
    ]


def test_debug_duplicates_pinned_kernel() -> None:
    """Test a configured debug suffix does not define the pinned kernel twice."""
    names = [target.name for target in expand_matrix("x86_64", debug="-dbg")]
    assert names == ["5.11.x-dbg", "5.10.x-dbg", "5.4.x-dbg", "4.19.x-dbg"]


def test_perf_and_bcc_x86_64() -> None:
    """Test perf and bcc are built only for the allowed series on x86_64."""
    with_perf = [
        target.name
        for target in expand_matrix("x86_64")
        if SideImage.PERF in target.side_images
    ]
    with_bcc = [
        target.name
        for target in expand_matrix("x86_64")
        if SideImage.BCC in target.side_images
    ]
    assert with_perf == ["5.4.x", "5.4.x-dbg"]
    assert with_bcc == ["5.4.x", "5.4.x-dbg"]


@pytest.mark.parametrize("arch", ["aarch64", "arm64", "s390x"])
def test_no_perf_or_bcc_other_arches(arch: str) -> None:
    """Test perf and bcc are never built outside x86_64."""
    for target in expand_matrix(arch):
        assert SideImage.PERF not in target.side_images
        assert SideImage.BCC not in target.side_images


def test_side_image_series_allow_list() -> None:
    """Test the series allow-list for perf and bcc is configurable."""
    targets = expand_matrix("x86_64", side_image_series=["5.11.x", "5.10.x"])
    with_perf = [t.name for t in targets if SideImage.PERF in t.side_images]
    assert with_perf == ["5.11.x", "5.10.x"]

    targets = expand_matrix("x86_64", side_image_series=["5.6.x"])
    assert not [t.name for t in targets if SideImage.PERF in t.side_images]


@pytest.mark.parametrize("arch", ["x86_64", "aarch64", "s390x"])
def test_zfs_only_without_debug(arch: str) -> None:
    """Test zfs is built for every kernel without a debug suffix."""
    for target in expand_matrix(arch):
        assert (SideImage.ZFS in target.side_images) == (target.kernel.debug == "")


def test_side_image_order() -> None:
    """Test the side images of a kernel that gets all of them."""
    targets = {target.name: target for target in expand_matrix("x86_64")}
    assert targets["5.4.x"].side_images == [
        SideImage.PERF,
        SideImage.BCC,
        SideImage.ZFS,
    ]
    assert targets["5.4.x-dbg"].side_images == [SideImage.PERF, SideImage.BCC]
    assert targets["5.11.x"].side_images == [SideImage.ZFS]


def test_kernel_versions() -> None:
    """Test debug kernels are left out of the kernel config versions."""
    assert kernel_versions(expand_matrix("x86_64")) == [
        "5.11.15",
        "5.10.31",
        "5.4.113",
        "4.19.188",
    ]
    assert kernel_versions(expand_matrix("x86_64", debug="-dbg")) == []


def test_build_target_to_dict() -> None:
    """Test serializing a build target."""
    targets = {target.name: target for target in expand_matrix("x86_64")}
    assert targets["5.4.x-dbg"].to_dict() == {
        "kernel": {
            "version": "5.4.113",
            "series": "5.4.x",
            "variant": "",
            "debug": "-dbg",
        },
        "side_images": ["perf", "bcc"],
    }
