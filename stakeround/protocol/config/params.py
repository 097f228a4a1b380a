# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict

# Event published after each processed round invocation
JOB_PROGRESS_EVENT = "jobProgress"
ROUND_JOB_NAME = "Nomination Round Job"

# Eras that must pass after a nomination before the next one
POLKADOT_ERA_BUFFER = 1
DEFAULT_ERA_BUFFER = 4


class NetworkConfig:
    def __init__(self,
                 network_id: str,
                 network_prefix: int,
                 token_symbol: str,
                 token_decimals: int,
                 endpoints: list,
                 era_length_hours: int = 24,
                 max_nominations: int = 16):
        self.network_id = network_id
        self.network_prefix = network_prefix   # SS58 address prefix
        self.token_symbol = token_symbol
        self.token_decimals = token_decimals
        self.endpoints = endpoints
        self.era_length_hours = era_length_hours
        self.max_nominations = max_nominations

    @property
    def denom(self) -> int:
        return 10 ** self.token_decimals

    @property
    def era_buffer(self) -> int:
        return era_buffer_for_prefix(self.network_prefix)


def era_buffer_for_prefix(network_prefix: int) -> int:
    """Polkadot (prefix 0) waits one era between nominations, every other network four."""
    return POLKADOT_ERA_BUFFER if network_prefix == 0 else DEFAULT_ERA_BUFFER


NETWORKS: Dict[str, NetworkConfig] = {
    "polkadot": NetworkConfig(
        network_id="polkadot",
        network_prefix=0,
        token_symbol="DOT",
        token_decimals=10,
        endpoints=["wss://rpc.polkadot.io"],
        era_length_hours=24,
    ),
    "kusama": NetworkConfig(
        network_id="kusama",
        network_prefix=2,
        token_symbol="KSM",
        token_decimals=12,
        endpoints=["wss://kusama-rpc.polkadot.io"],
        era_length_hours=6,
        max_nominations=24,
    ),
    "westend": NetworkConfig(
        network_id="westend",
        network_prefix=42,
        token_symbol="WND",
        token_decimals=12,
        endpoints=["wss://westend-rpc.polkadot.io"],
        era_length_hours=6,
    ),
}


def network_for_prefix(network_prefix: int) -> NetworkConfig:
    for network in NETWORKS.values():
        if network.network_prefix == network_prefix:
            return network
    return NETWORKS["westend"]
