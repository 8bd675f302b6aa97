"""Results of the two side effects the bridge performs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class IncidentReceipt(BaseModel):
    """A confirmed incident transaction.

    Parameters
    ----------
    tx_hash : str
        ``0x``-prefixed transaction hash.
    block_number : int or None
        Block the transaction was mined in, when the receipt carries it.
    device_id : str
        Device the incident was recorded for.
    gas_level : int
        Gas level as encoded on chain.
    nonce : int
        Sequence number the transaction was submitted with.
    raw : dict
        Receipt fields as returned by the ledger client.
    """

    model_config = ConfigDict(frozen=True)

    tx_hash: str
    block_number: int | None
    device_id: str
    gas_level: int
    nonce: int
    raw: dict[str, Any]


class ArchiveRecord(BaseModel):
    """A snapshot stored on the content-addressed storage network."""

    model_config = ConfigDict(frozen=True)

    content_ref: str
    artifact_path: str
    size_bytes: int
