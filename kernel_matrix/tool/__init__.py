"""Command line interface for kernel-matrix."""
