from types import SimpleNamespace

import pytest

from stakeround.chaindata.chaindata import ChainData


class FakeSubstrate:
    """In-memory stand-in for a SubstrateInterface connection."""

    def __init__(self, storage=None, token_decimals=12, healthy=True):
        # (module, storage, params tuple) -> decoded value or Exception to raise
        self.storage = storage or {}
        self.token_decimals = token_decimals
        self.healthy = healthy
        self.closed = False
        self.queries = []

    def rpc_request(self, method, params):
        if not self.healthy:
            raise ConnectionError("socket closed")
        return {"result": {"peers": 8, "isSyncing": False}}

    def query(self, module, storage, params=None, block_hash=None):
        key = (module, storage, tuple(params or []))
        self.queries.append((key, block_hash))
        value = self.storage.get(key)
        if isinstance(value, Exception):
            raise value
        return SimpleNamespace(value=value)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_chain():
    """Builds a ChainData on top of a FakeSubstrate seeded with `storage`."""
    def build(storage=None, network_prefix=0, target_names=None, token_decimals=12):
        substrate = FakeSubstrate(storage, token_decimals=token_decimals)
        chaindata = ChainData(
            endpoints=["wss://test-node"],
            network_prefix=network_prefix,
            substrate_factory=lambda **kwargs: substrate,
            target_names=target_names,
        )
        return chaindata, substrate
    return build
