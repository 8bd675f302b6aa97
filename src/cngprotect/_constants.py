"""Internal constants shared across the library."""

from typing import Any

EVM_RPC_URL = "https://evmrpc-testnet.0g.ai"
INDEXER_RPC_URL = "https://indexer-storage-testnet-turbo.0g.ai"
CONTRACT_ADDRESS = "0xD74Dd42d21e4784232E85A38485d7eD8Af3D7beB"
DEVICE_PATH = "/cng_protect/devices/device_01/live_data"
DEVICE_ID = "Device_01"
ARTIFACT_PATH = "temp_log.json"
STORAGE_CLIENT_BIN = "0g-storage-client"

MINT_METHOD = "mintIncidentReport"

INCIDENT_CONTRACT_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": MINT_METHOD,
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "deviceId", "type": "string", "internalType": "string"},
            {"name": "gasLevel", "type": "uint256", "internalType": "uint256"},
        ],
        "outputs": [],
    }
]

# ------------------------------------------------------------------
# Firebase Realtime Database streaming
# ------------------------------------------------------------------

FIREBASE_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
)
