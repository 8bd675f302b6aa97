from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

from _fakes import make_config
from cngprotect._storage import ZeroGStorageClient, parse_content_ref
from cngprotect.exceptions import StorageError

ROOT = "0x" + "ab" * 32
TX = "0x" + "cd" * 32


def test_parse_content_ref_prefers_root_field() -> None:
    output = (
        f'level=info msg="Data prepared to upload" chunks=1 root={ROOT.upper().replace("0X", "0x")} segments=1\n'
        f'level=info msg="Succeeded to send transaction to append log entry" hash={TX}\n'
    )
    assert parse_content_ref(output) == ROOT


def test_parse_content_ref_falls_back_to_last_hash() -> None:
    assert parse_content_ref(f"uploaded {ROOT}\n") == ROOT


def test_parse_content_ref_none_without_hash() -> None:
    assert parse_content_ref("upload finished\n") is None


def _write_tool(tmp_path: Path, body: str) -> Path:
    tool = tmp_path / "fake-0g-storage-client"
    tool.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR)
    return tool


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as the CLI")


@posix_only
@pytest.mark.asyncio
async def test_upload_returns_root_from_cli(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, f'echo "file uploaded root={ROOT}"')
    artifact = tmp_path / "temp_log.json"
    artifact.write_text("{}", encoding="utf-8")
    client = ZeroGStorageClient(make_config(tmp_path, storage_client_bin=str(tool)))

    assert await client.upload_artifact(artifact) == ROOT


@posix_only
@pytest.mark.asyncio
async def test_upload_passes_endpoints_and_file(tmp_path: Path) -> None:
    argv_file = tmp_path / "argv.txt"
    tool = _write_tool(tmp_path, f'echo "$@" > {argv_file}\necho "root={ROOT}"')
    artifact = tmp_path / "temp_log.json"
    artifact.write_text("{}", encoding="utf-8")
    config = make_config(tmp_path, storage_client_bin=str(tool))

    await ZeroGStorageClient(config).upload_artifact(artifact)

    argv = argv_file.read_text(encoding="utf-8").split()
    assert argv[0] == "upload"
    assert argv[argv.index("--url") + 1] == config.evm_rpc_url
    assert argv[argv.index("--indexer") + 1] == config.indexer_rpc_url
    assert argv[argv.index("--file") + 1] == str(artifact)


@posix_only
@pytest.mark.asyncio
async def test_non_zero_exit_raises_storage_error(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, 'echo "no storage nodes available" >&2\nexit 3')
    client = ZeroGStorageClient(make_config(tmp_path, storage_client_bin=str(tool)))

    with pytest.raises(StorageError) as exc_info:
        await client.upload_artifact(tmp_path / "temp_log.json")

    assert exc_info.value.returncode == 3
    assert "no storage nodes available" in str(exc_info.value)


@posix_only
@pytest.mark.asyncio
async def test_output_without_root_raises_storage_error(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, 'echo "done"')
    client = ZeroGStorageClient(make_config(tmp_path, storage_client_bin=str(tool)))

    with pytest.raises(StorageError, match="no root hash"):
        await client.upload_artifact(tmp_path / "temp_log.json")


@posix_only
@pytest.mark.asyncio
async def test_timeout_raises_storage_error(tmp_path: Path) -> None:
    tool = _write_tool(tmp_path, "exec sleep 5")
    client = ZeroGStorageClient(make_config(tmp_path, storage_client_bin=str(tool), storage_upload_timeout=0.2))

    with pytest.raises(StorageError, match="timed out"):
        await client.upload_artifact(tmp_path / "temp_log.json")


@pytest.mark.asyncio
async def test_missing_binary_raises_storage_error(tmp_path: Path) -> None:
    client = ZeroGStorageClient(make_config(tmp_path, storage_client_bin=str(tmp_path / "does-not-exist")))

    with pytest.raises(StorageError, match="Cannot start"):
        await client.upload_artifact(tmp_path / "temp_log.json")
