"""Change-driven test selection for CI jobs."""
