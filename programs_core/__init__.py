"""Verification scoring and agent hierarchy rollup. Pure code, no I/O."""
