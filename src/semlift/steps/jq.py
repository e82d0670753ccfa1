"""
External jq filter runner.

The interpreter is a black box: the document is written to its stdin, the
program is passed as the only argument, stdout is the new document.
"""

import logging
import subprocess
from typing import Optional

from ..constants import LiftDefaults
from ..core.errors import ExternalProcessFailure

logger = logging.getLogger(__name__)

MISSING_BINARY_EXIT_CODE = 127


class JqProcessor:
    """Runs ``<jq_binary> <program>`` with the input on stdin."""

    def __init__(self, jq_binary: str = LiftDefaults.JQ_BINARY, timeout: Optional[float] = None):
        self.jq_binary = jq_binary
        self.timeout = timeout

    def apply(self, program: str, input_bytes: bytes) -> bytes:
        """Return the filter's stdout; raise ExternalProcessFailure on non-zero exit."""
        logger.debug(f"Running {self.jq_binary} ({len(input_bytes)} bytes in)")
        try:
            completed = subprocess.run(
                [self.jq_binary, program],
                input=input_bytes,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            raise ExternalProcessFailure(
                MISSING_BINARY_EXIT_CODE, f"{self.jq_binary}: command not found", self.jq_binary
            )
        except subprocess.TimeoutExpired as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace")
            raise ExternalProcessFailure(-1, f"timed out after {self.timeout}s {stderr}".strip(), self.jq_binary)

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            raise ExternalProcessFailure(completed.returncode, stderr, self.jq_binary)
        return completed.stdout
