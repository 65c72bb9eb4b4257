"""Trace file for local context resolution.

Module loggers carry normal diagnostics. The trace file is an append-only
record of what each request resolved and merged, available even when the
host never configures ``logging``. LOCAL_CONTEXT_TRACE_LOG names the file;
an empty value turns tracing off.
"""

import logging
import os
import tempfile
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TRACE_ENV_VAR = "LOCAL_CONTEXT_TRACE_LOG"


def trace_path() -> Optional[Path]:
    """Current trace file, or None when tracing is off."""
    value = os.environ.get(TRACE_ENV_VAR)
    if value is None:
        return Path(tempfile.gettempdir()) / "local_context_trace.log"
    return Path(value) if value else None


def trace(component: str, msg: str, *, include_traceback: bool = False) -> None:
    """Append ``[time] [component] msg`` to the trace file.

    With ``include_traceback`` the exception being handled is appended too.
    A file that cannot be written is reported at debug level and skipped.
    """
    path = trace_path()
    if path is None:
        return

    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    entry = f"[{stamp}] [{component}] {msg}\n"
    if include_traceback:
        tb = traceback.format_exc()
        if not tb.startswith("NoneType: None"):
            entry += tb if tb.endswith("\n") else tb + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(entry)
    except OSError as e:
        logger.debug("Cannot write trace file %s: %s", path, e)
