"""Tests for kernel-matrix."""
