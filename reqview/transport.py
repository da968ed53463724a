"""reqview transport - run curl as a subprocess on the event loop."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
import uuid
from pathlib import Path

from reqview.models import RawResult

logger = logging.getLogger(__name__)

_STATUS_RE = re.compile(r"^HTTP/\S+\s+(\d{3})")


def final_status(header_lines: list[str]) -> int:
    """Status code of the last status line, 0 if there is none."""
    status = 0
    for line in header_lines:
        m = _STATUS_RE.match(line)
        if m:
            status = int(m.group(1))
    return status


class CurlTransport:
    """Runs a curl argv and collects exit code, dumped headers and body.

    Headers are captured through curl's ``-D <path>`` dump so the body on
    stdout stays untouched.
    """

    def __init__(self, temp_dir: str | None = None):
        self.temp_dir = temp_dir or tempfile.gettempdir()

    def new_headers_path(self) -> str:
        return os.path.join(self.temp_dir, f"reqview-{uuid.uuid4().hex}.headers")

    def write_body(self, data: bytes) -> str:
        """Write a binary request body to a temp file curl reads with ``@path``."""
        path = os.path.join(self.temp_dir, f"reqview-{uuid.uuid4().hex}.body")
        with open(path, "wb") as f:
            f.write(data)
        return path

    async def fetch(self, argv: list[str], headers_path: str) -> RawResult:
        """Run ``argv``. Raises OSError when curl cannot be started."""
        logger.debug("running %s", argv)
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0 and stderr:
            logger.info("curl stderr: %s", stderr.decode("utf-8", errors="replace").strip())

        header_lines = _read_header_dump(headers_path)
        return RawResult(
            exit=proc.returncode,
            headers=header_lines,
            status=final_status(header_lines),
            body=stdout,
        )


def _read_header_dump(headers_path: str) -> list[str]:
    path = Path(headers_path)
    if not path.exists():
        return []
    try:
        text = path.read_bytes().decode("iso-8859-1")
    finally:
        path.unlink(missing_ok=True)
    return [line.rstrip("\r") for line in text.split("\n")]
