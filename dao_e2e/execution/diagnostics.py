"""
Diagnostics for finished test processes.

Separates "the check ran and failed" from "the process died before it
could run the check", and assembles the error text shown in reports.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from dao_e2e.config import CRASH_OUTPUT_THRESHOLD
from dao_e2e.utils import get_logger

logger = get_logger(__name__)

CRASH_SIGNATURES = re.compile(
    r"FATAL ERROR"
    r"|Segmentation fault"
    r"|[Oo]ut of memory"
    r"|heap out of memory"
    r"|MemoryError"
    r"|\bKilled\b"
    r"|\bSIG(?:KILL|SEGV|ABRT|BUS|TERM)\b"
    r"|core dumped"
)

# Words a test prints when it actually ran its check
EXPECTED_VOCABULARY = re.compile(r"pass|fail|error|assert|expect|timeout", re.IGNORECASE)

# Exit codes a shell or runtime reports for signal deaths (128 + signal)
SIGNAL_EXIT_CODES = frozenset({134, 137, 139})

TIMEOUT_FRAGMENT = re.compile(r"TimeoutError[\s\S]*?(?=\n\s*at\s|\Z)")

NO_OUTPUT_MESSAGE = "Test failed (no error output)"

ERROR_FILE_TEMPLATE = "selenium-test-error-{pid}.log"


def is_crash(
    stdout: str,
    stderr: str,
    returncode: Optional[int] = None,
    threshold: int = CRASH_OUTPUT_THRESHOLD,
) -> bool:
    """
    Classifies a failed run as a crash ("NO RUN").

    A crash is a signal death, output matching a known crash signature, or
    output too short to come from a check and without any pass/fail words.
    """
    if returncode is not None and (returncode < 0 or returncode in SIGNAL_EXIT_CODES):
        return True

    combined = f"{stdout or ''}\n{stderr or ''}"
    if CRASH_SIGNATURES.search(combined):
        return True

    stripped = combined.strip()
    return len(stripped) < threshold and not EXPECTED_VOCABULARY.search(stripped)


def extract_timeout_fragment(text: str) -> Optional[str]:
    """TimeoutError text up to the first stack frame, if present."""
    match = TIMEOUT_FRAGMENT.search(text or "")
    if not match:
        return None
    return match.group(0).strip() or None


def build_error_message(stdout: str, stderr: str, out_of_band: Optional[str] = None) -> str:
    """
    Error text for a failed test.

    Captured stdout and stderr, led by a timeout fragment when one is
    present, followed by text the test wrote to its out-of-band error file.
    """
    stdout = (stdout or "").strip()
    stderr = (stderr or "").strip()

    parts = []
    if stdout:
        parts.append("[Console Output]\n" + stdout)
    if stderr:
        parts.append("[Error Output]\n" + stderr)
    message = "\n".join(parts)

    fragment = extract_timeout_fragment(f"{stdout}\n{stderr}")
    if fragment and not message.startswith(fragment):
        message = fragment + "\n" + message

    if out_of_band and out_of_band not in message:
        message += ("\n" if message else "") + out_of_band

    return message or NO_OUTPUT_MESSAGE


def error_file_path(pid: int) -> Path:
    """Out-of-band error file of a test process."""
    return Path(tempfile.gettempdir()) / ERROR_FILE_TEMPLATE.format(pid=pid)


def read_error_file(pid: Optional[int]) -> Optional[str]:
    """Reads and deletes the out-of-band error file of a process."""
    if pid is None:
        return None

    path = error_file_path(pid)
    if not path.exists():
        return None

    try:
        content = path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError as e:
        logger.warning("error_file_unreadable", path=str(path), error=str(e))
        return None

    try:
        os.unlink(path)
    except OSError as e:
        logger.debug("error_file_not_removed", path=str(path), error=str(e))

    return content or None
