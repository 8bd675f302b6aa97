"""Storage client for the 0G content-addressed storage network.

Uploads go through the official ``0g-storage-client`` command line tool,
run as an asyncio subprocess. The tool splits the file into segments,
submits the data root to the flow contract and pushes segments to the
storage nodes selected by the indexer. It reports the Merkle root of the
file, which is the content reference used to retrieve it later.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Protocol

from cngprotect._redact import redact_argv
from cngprotect.config import BridgeConfig
from cngprotect.exceptions import StorageError

_logger = logging.getLogger(__name__)

_ROOT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\broots?\s*[=:]\s*\[?\s*(0x[0-9a-fA-F]{64})"),
    re.compile(r"\b(0x[0-9a-fA-F]{64})\b"),
)

_OUTPUT_TAIL = 400


class StorageClient(Protocol):
    """Structural storage interface used by the telemetry publisher."""

    async def upload_artifact(self, path: Path) -> str: ...


def parse_content_ref(output: str) -> str | None:
    """Extract the uploaded file's root hash from CLI output.

    Prefers an explicit ``root = 0x…`` line and falls back to the last
    32-byte hex value in the output.
    """
    match = _ROOT_PATTERNS[0].search(output)
    if match is not None:
        return match.group(1).lower()
    candidates = _ROOT_PATTERNS[1].findall(output)
    if candidates:
        return str(candidates[-1]).lower()
    return None


class ZeroGStorageClient:
    """Uploads files with ``0g-storage-client upload``."""

    def __init__(self, config: BridgeConfig) -> None:
        self._config = config

    def _build_argv(self, path: Path) -> list[str]:
        return [
            self._config.storage_client_bin,
            "upload",
            "--url",
            self._config.evm_rpc_url,
            "--key",
            self._config.private_key,
            "--indexer",
            self._config.indexer_rpc_url,
            "--file",
            str(path),
        ]

    async def upload_artifact(self, path: Path) -> str:
        """Upload *path* and return its content reference.

        Raises
        ------
        StorageError
            If the tool is missing, times out, exits non-zero, or does not
            report a root hash.
        """
        argv = self._build_argv(path)
        _logger.debug("Running %s", redact_argv(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise StorageError(f"Cannot start {self._config.storage_client_bin}: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), self._config.storage_upload_timeout)
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise StorageError(f"Upload of {path} timed out after {self._config.storage_upload_timeout:.0f}s") from exc

        output = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise StorageError(
                f"Upload of {path} failed (exit {proc.returncode}): {output[-_OUTPUT_TAIL:].strip()}",
                returncode=proc.returncode,
            )

        content_ref = parse_content_ref(output)
        if content_ref is None:
            raise StorageError(
                f"Upload of {path} reported no root hash: {output[-_OUTPUT_TAIL:].strip()}",
                returncode=proc.returncode,
            )
        return content_ref
