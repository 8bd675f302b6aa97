"""Bridge configuration for cngprotect."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from cngprotect import _constants
from cngprotect.exceptions import BridgeConfigError


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Process configuration, loaded once at startup.

    Parameters
    ----------
    database_url : str
        Firebase Realtime Database root URL
        (e.g. ``"https://cng-protect-default-rtdb.firebaseio.com/"``).
    private_key : str
        Hex private key of the signer. Pays for incident transactions and
        signs storage uploads. Never included in ``repr``.
    service_account_path : str or None
        Firebase service-account JSON. When unset the telemetry stream is
        opened without credentials (database rules must allow reads).
    device_path : str
        Database path of the watched device's live telemetry node.
    device_id : str
        Device identifier recorded in incident transactions.
    evm_rpc_url : str
        JSON-RPC endpoint of the 0G chain. Also passed to the storage client.
    indexer_rpc_url : str
        0G storage indexer endpoint.
    contract_address : str
        Address of the incident-report contract.
    artifact_path : str
        Transient file the current snapshot is serialized to before upload.
        Overwritten every cycle.
    storage_client_bin : str
        Name or path of the ``0g-storage-client`` executable.
    tx_confirmation_timeout : float
        Seconds to wait for an incident transaction receipt.
    storage_upload_timeout : float
        Seconds before an upload attempt is abandoned.
    subscription_reconnect_delay : float
        Seconds to wait before reopening a dropped telemetry stream.
    """

    database_url: str
    private_key: str = dataclasses.field(repr=False)
    service_account_path: str | None = None
    device_path: str = _constants.DEVICE_PATH
    device_id: str = _constants.DEVICE_ID
    evm_rpc_url: str = _constants.EVM_RPC_URL
    indexer_rpc_url: str = _constants.INDEXER_RPC_URL
    contract_address: str = _constants.CONTRACT_ADDRESS
    artifact_path: str = _constants.ARTIFACT_PATH
    storage_client_bin: str = _constants.STORAGE_CLIENT_BIN
    tx_confirmation_timeout: float = 120.0
    storage_upload_timeout: float = 300.0
    subscription_reconnect_delay: float = 5.0

    @property
    def stream_url(self) -> str:
        """REST URL of the watched node (``<database_url><device_path>.json``)."""
        path = "/" + self.device_path.strip("/")
        return f"{self.database_url.rstrip('/')}{path}.json"

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from ``CNG_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        BridgeConfigError
            If ``database_url`` or ``private_key`` is neither set in the
            environment nor passed as an override, or a numeric variable
            does not parse.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CNG_DATABASE_URL": "database_url",
            "CNG_PRIVATE_KEY": "private_key",
            "CNG_SERVICE_ACCOUNT_PATH": "service_account_path",
            "CNG_DEVICE_PATH": "device_path",
            "CNG_DEVICE_ID": "device_id",
            "CNG_EVM_RPC_URL": "evm_rpc_url",
            "CNG_INDEXER_RPC_URL": "indexer_rpc_url",
            "CNG_CONTRACT_ADDRESS": "contract_address",
            "CNG_ARTIFACT_PATH": "artifact_path",
            "CNG_STORAGE_CLIENT_BIN": "storage_client_bin",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        _ENV_FLOAT_MAP = {
            "CNG_TX_CONFIRMATION_TIMEOUT": "tx_confirmation_timeout",
            "CNG_STORAGE_UPLOAD_TIMEOUT": "storage_upload_timeout",
            "CNG_SUBSCRIPTION_RECONNECT_DELAY": "subscription_reconnect_delay",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise BridgeConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        missing = [name for name in ("database_url", "private_key") if not config_kwargs.get(name)]
        if missing:
            raise BridgeConfigError(f"Missing required configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
