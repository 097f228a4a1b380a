# MIT License
# Copyright (c) 2025 Hashborn

"""
Service configuration.

Loaded from a JSON or YAML file. Keys of the `global` and `scorekeeper`
sections accept the camelCase names used by existing deployments
(`networkPrefix`).
"""

import json
import logging
import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..types.common import ConfigError
from ..types.staking import NominatorGroup, ScoredCandidate
from .params import network_for_prefix

logger = logging.getLogger(__name__)


class GlobalCfg(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    network_prefix: int = Field(default=2, alias="networkPrefix")


class ScorekeeperCfg(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nominating: bool = False
    # Start the next round even when ending the previous one failed
    start_after_failed_end: bool = Field(default=True, alias="startAfterFailedEnd")
    dry_run: bool = Field(default=False, alias="dryRun")
    max_commission: int = Field(default=150_000_000, alias="maxCommission")  # Perbill, 15%
    candidates: List[ScoredCandidate] = Field(default_factory=list)


class ChainCfg(BaseModel):
    endpoints: List[str] = Field(default_factory=list)  # Empty: use the network defaults


class DbCfg(BaseModel):
    path: str = "./data/stakeround.db"


class SchedulerCfg(BaseModel):
    interval_sec: float = 300.0


class RpcCfg(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3300


class NotifierCfg(BaseModel):
    webhook_url: Optional[str] = None


class Config(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalCfg = Field(default_factory=GlobalCfg, alias="global")
    scorekeeper: ScorekeeperCfg = Field(default_factory=ScorekeeperCfg)
    chain: ChainCfg = Field(default_factory=ChainCfg)
    db: DbCfg = Field(default_factory=DbCfg)
    scheduler: SchedulerCfg = Field(default_factory=SchedulerCfg)
    rpc: RpcCfg = Field(default_factory=RpcCfg)
    notifier: NotifierCfg = Field(default_factory=NotifierCfg)
    nominator_groups: List[NominatorGroup] = Field(default_factory=list, alias="nominatorGroups")

    @property
    def network_prefix(self) -> int:
        return self.global_.network_prefix

    def chain_endpoints(self) -> List[str]:
        if self.chain.endpoints:
            return list(self.chain.endpoints)
        return list(network_for_prefix(self.network_prefix).endpoints)


def load_config(path: str) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    try:
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(raw) or {}
        else:
            data = json.loads(raw)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e

    logger.info(f"Loaded config from {path} (network prefix {config.network_prefix}, "
                f"{len(config.nominator_groups)} nominator group(s))")
    return config
