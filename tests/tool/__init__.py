"""Test helpers for kernel-matrix tools."""

from kernel_matrix.command import Command, run

KERNEL_MATRIX_BIN = "kernel-matrix"


async def run_command(args: list[str], env: dict[str, str] | None = None) -> str:
    return await run(Command([KERNEL_MATRIX_BIN] + args, env=env))
