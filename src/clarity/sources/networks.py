# src/clarity/sources/networks.py
"""Settlement network identifiers."""
from types import MappingProxyType
from typing import Mapping, Optional

# CAIP-2 style chain ids -> human network names
CHAIN_ID_NETWORKS: Mapping[str, str] = MappingProxyType({
    "eip155:1": "ethereum",
    "eip155:10": "optimism",
    "eip155:137": "polygon",
    "eip155:8453": "base",
    "eip155:84532": "base-sepolia",
    "eip155:42161": "arbitrum",
    "eip155:43114": "avalanche",
    "eip155:43113": "avalanche-fuji",
    "eip155:80002": "polygon-amoy",
    "eip155:2741": "abstract",
    "eip155:11124": "abstract-testnet",
    "eip155:4689": "iotex",
    "eip155:1329": "sei",
    "eip155:1328": "sei-testnet",
    "solana:5eykt4usfv8p8njdtrepy1vzqkqzkvdp": "solana",
    "solana:etwtrabzayq6imfeykouru166vu2xqa1": "solana-devnet",
})


def normalize_network(network: Optional[str], table: Mapping[str, str] = CHAIN_ID_NETWORKS) -> Optional[str]:
    """
    Map a chain-id style identifier (``eip155:8453``) to its network name.

    Unknown identifiers pass through lowercased; empty input yields None.
    """
    if network is None:
        return None
    value = str(network).strip().lower()
    if not value:
        return None
    return table.get(value, value)
