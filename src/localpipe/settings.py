# settings.py
from __future__ import annotations

import os

# characters of captured stdout shown after a successful step (non-verbose)
OUTPUT_PREVIEW_CHARS = int(os.environ.get("LOCALPIPE_OUTPUT_PREVIEW", "200"))

# characters of captured stdout/stderr kept on failure (non-verbose)
FAILURE_TAIL_CHARS = int(os.environ.get("LOCALPIPE_FAILURE_TAIL", "4000"))

REPORT_FILENAME = os.environ.get("LOCALPIPE_REPORT_NAME", "localpipe-report.json")

ENFORCE_TIMEOUTS = os.environ.get("LOCALPIPE_ENFORCE_TIMEOUTS", "").lower() in ("1", "true", "yes")
