"""
First-page removal via the qpdf CLI.

qpdf rewrites the page tree without recompressing streams, so the
output keeps the input's compression:

    qpdf <in> <out> --pages <in> 2-z --
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import PageRemovalError

logger = get_logger(__name__)

# Every page from the second to the last
DROP_FIRST_PAGE_RANGE = "2-z"


class PageRemover:
    """Runs qpdf as a subprocess."""

    def __init__(self, binary: str = "qpdf") -> None:
        self.binary = binary

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            str(input_path),
            str(output_path),
            "--pages",
            str(input_path),
            DROP_FIRST_PAGE_RANGE,
            "--",
        ]

    async def remove_first_page(self, input_path: Path, output_path: Path) -> int:
        """Write `input_path` minus page one to `output_path`. Returns output size."""
        command = self.build_command(input_path, output_path)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise PageRemovalError(f"Could not launch {self.binary}: {exc}") from exc

        _, stderr = await process.communicate()
        stderr_text = stderr.decode("utf-8", errors="replace").strip()

        # qpdf exits 3 for "succeeded with warnings"
        if process.returncode not in (0, 3):
            logger.error("qpdf failed", returncode=process.returncode, stderr=stderr_text)
            raise PageRemovalError(
                "qpdf failed to process PDF",
                returncode=process.returncode,
                stderr=stderr_text,
            )

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise PageRemovalError(
                "qpdf produced no output",
                returncode=process.returncode,
                stderr=stderr_text,
            )

        size = output_path.stat().st_size
        logger.info("First page removed", output_size_mb=round(size / 1024 / 1024, 2))
        return size
