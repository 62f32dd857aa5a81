from __future__ import annotations

# Runtime lifecycle
STARTUP_INVALID_CONFIG = "startup.invalid_config"
STARTUP_READY = "startup.ready"

# Inputs
TESTSUITES_LOADED = "testsuites.loaded"
TESTSUITES_INVALID = "testsuites.invalid"
CLONEREFS_LOADED = "clonerefs.loaded"
CLONEREFS_INVALID = "clonerefs.invalid"

# Diff acquisition
DIFF_STEP_START = "diff.step.start"
DIFF_STEP_FAILED = "diff.step.failed"
DIFF_COMPLETE = "diff.complete"
DIFF_FAILED = "diff.failed"
GIT_MERGE_ABORT_FAILED = "git.merge_abort_failed"

# Selection
SELECTION_NO_REVISION_INFO = "selection.no_revision_info"
SELECTION_FALLBACK_ALL = "selection.fallback_all"
SELECTION_COMPLETE = "selection.complete"
SELECTION_FAILED = "selection.failed"

# Output
OUTPUT_WRITTEN = "output.written"
OUTPUT_WRITE_FAILED = "output.write_failed"
