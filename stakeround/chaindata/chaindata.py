# MIT License
# Copyright (c) 2025 Hashborn

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple

from substrateinterface import SubstrateInterface

from ..protocol.types.common import ChainError
from ..protocol.types.staking import Target
from ..observability.metrics import active_era as active_era_gauge, chain_query_errors_total

logger = logging.getLogger(__name__)


class ChainData:
    """
    Read-only access to a Substrate staking chain.

    Wraps a SubstrateInterface connection. Every public method absorbs its
    own failures: errors are logged and returned as values, never raised.
    """

    def __init__(self,
                 endpoints: List[str],
                 network_prefix: int,
                 substrate_factory: Callable[..., SubstrateInterface] = SubstrateInterface,
                 target_names: Optional[Callable[[str], Optional[str]]] = None):
        if not endpoints:
            raise ValueError("At least one chain endpoint is required")
        self.endpoints = list(endpoints)
        self.network_prefix = network_prefix
        self.substrate_factory = substrate_factory
        # Optional lookup of display names for target addresses
        self.target_names = target_names
        self.api: Optional[SubstrateInterface] = None
        self._endpoint_index = 0
        self._lock = threading.RLock()

    @property
    def endpoint(self) -> str:
        return self.endpoints[self._endpoint_index]

    def _connect(self) -> None:
        url = self.endpoint
        logger.info(f"Connecting to chain endpoint {url}")
        self.api = self.substrate_factory(url=url, ss58_format=self.network_prefix)

    def _rotate_endpoint(self) -> None:
        self._endpoint_index = (self._endpoint_index + 1) % len(self.endpoints)

    def close(self) -> None:
        with self._lock:
            if self.api is not None:
                try:
                    self.api.close()
                except Exception as e:
                    logger.debug(f"Error closing chain connection: {e}")
                self.api = None

    def check_connection(self) -> Optional[str]:
        """
        Ensures a healthy connection, reconnecting through the configured
        endpoints once each if needed.

        Returns:
            None when connected, otherwise an error message
        """
        with self._lock:
            if self.api is not None:
                try:
                    self.api.rpc_request("system_health", [])
                    return None
                except Exception as e:
                    logger.warning(f"Chain connection to {self.endpoint} unhealthy: {e}")
                    self.close()
                    self._rotate_endpoint()

            last_error = None
            for _ in range(len(self.endpoints)):
                try:
                    self._connect()
                    return None
                except Exception as e:
                    last_error = f"Failed to connect to {self.endpoint}: {e}"
                    logger.warning(last_error)
                    self.api = None
                    self._rotate_endpoint()
            return last_error

    @contextmanager
    def connection(self) -> Iterator[SubstrateInterface]:
        """
        Holds the connection for the duration of the block.

        SubstrateInterface shares one websocket between callers, so every
        request and extrinsic submission goes through here.

        Raises:
            ChainError: If no endpoint is reachable
        """
        with self._lock:
            err = self.check_connection()
            if err:
                raise ChainError(err)
            yield self.api

    def query(self, module: str, storage: str, params: Optional[list] = None,
              block_hash: Optional[str] = None):
        """Storage query on the held connection. Raises ChainError when disconnected."""
        with self.connection() as api:
            return api.query(module, storage, params or [], block_hash=block_hash)

    def get_active_era_index(self) -> Tuple[int, Optional[str]]:
        """Returns (active era index, error). The index is 0 when error is set."""
        try:
            active_era = self.query("Staking", "ActiveEra")
            if active_era is None or not active_era.value:
                return 0, "Active era not found."
            index = int(active_era.value["index"])
            active_era_gauge.set(index)
            return index, None
        except Exception as e:
            logger.error(f"Error getting active era: {e}")
            chain_query_errors_total.labels(query="active_era").inc()
            return 0, str(e)

    def get_current_era(self) -> Tuple[int, Optional[str]]:
        """Returns (planned current era index, error)."""
        try:
            current_era = self.query("Staking", "CurrentEra")
            if current_era is None or current_era.value is None:
                return 0, "Current era not found."
            return int(current_era.value), None
        except Exception as e:
            logger.error(f"Error getting current era: {e}")
            chain_query_errors_total.labels(query="current_era").inc()
            return 0, str(e)

    def get_denom(self) -> Optional[int]:
        """Planck units per token, from the chain properties."""
        try:
            with self.connection() as api:
                decimals = api.token_decimals
            if decimals is None:
                return None
            return 10 ** int(decimals)
        except Exception as e:
            logger.error(f"Error getting denom: {e}")
            return None

    def get_current_targets(self, bonded_address: str) -> List[Target]:
        """Validators currently nominated by `bonded_address`; empty on any failure."""
        try:
            nominations = self.query("Staking", "Nominators", [bonded_address])
            if nominations is None or not nominations.value:
                return []
            targets = []
            for address in nominations.value.get("targets", []):
                name = self.target_names(address) if self.target_names else None
                targets.append(Target(address=str(address), name=name))
            return targets
        except Exception as e:
            logger.error(f"Error getting current targets for {bonded_address}: {e}")
            chain_query_errors_total.labels(query="current_targets").inc()
            return []
