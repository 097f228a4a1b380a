# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Callable

from substrateinterface import SubstrateInterface
from uvicorn import Config as UvicornConfig, Server

from ..chaindata.chaindata import ChainData
from ..chaindata.submitter import SubstrateNominationSubmitter
from ..core.constraints import ConfiguredConstraints
from ..core.controller import JobMetadata, RoundController
from ..core.events import JobStatusTracker, job_status_emitter
from ..core.lifecycle import RoundLifecycle
from ..core.notifier import build_notifier
from ..core.scheduler import RoundScheduler
from ..protocol.config.settings import Config, load_config
from ..protocol.types.common import ConfigError, RoundPhase
from ..rpc import api
from ..storage.db import StorageDB
from ..storage.round_store import RoundStateStore

logger = logging.getLogger(__name__)


@dataclass
class Node:
    config: Config
    db: StorageDB
    store: RoundStateStore
    chaindata: ChainData
    lifecycle: RoundLifecycle
    controller: RoundController
    tracker: JobStatusTracker
    scheduler: RoundScheduler

    def close(self):
        self.scheduler.stop()
        self.tracker.close()
        self.chaindata.close()
        self.db.close()


def build_node(config: Config, substrate_factory: Callable[..., SubstrateInterface] = SubstrateInterface) -> Node:
    """Wires the round scheduler from configuration."""
    db = StorageDB(config.db.path)
    store = RoundStateStore(db)
    chaindata = ChainData(
        endpoints=config.chain_endpoints(),
        network_prefix=config.network_prefix,
        substrate_factory=substrate_factory,
        target_names=store.get_target_name,
    )
    constraints = ConfiguredConstraints(chaindata, config.scorekeeper.candidates, config.scorekeeper.max_commission)
    handler = SubstrateNominationSubmitter(chaindata, dry_run=config.scorekeeper.dry_run)
    notifier = build_notifier(config.notifier.webhook_url)
    lifecycle = RoundLifecycle()
    controller = RoundController(store, emitter=job_status_emitter)
    tracker = JobStatusTracker(job_status_emitter)

    def metadata_factory() -> JobMetadata:
        # No chain reads here; the controller reads the era after claiming the lifecycle
        return JobMetadata(
            config=config,
            chaindata=chaindata,
            nominator_groups=tuple(config.nominator_groups),
            constraints=constraints,
            lifecycle=lifecycle,
            handler=handler,
            notifier=notifier,
            nominating=lifecycle.phase == RoundPhase.STARTING,
        )

    scheduler = RoundScheduler(controller, metadata_factory, config.scheduler.interval_sec)
    return Node(config, db, store, chaindata, lifecycle, controller, tracker, scheduler)


async def run_node_async(node: Node):
    api.store = node.store
    api.chaindata = node.chaindata
    api.tracker = node.tracker
    api.lifecycle = node.lifecycle
    api.network_prefix = node.config.network_prefix

    node.scheduler.start()

    server_config = UvicornConfig(app=api.app, host=node.config.rpc.host, port=node.config.rpc.port, log_level="info")
    server = Server(server_config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        pass
    finally:
        node.close()


def _load(args) -> Config:
    try:
        return load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)


def cmd_run(args):
    node = build_node(_load(args))
    try:
        asyncio.run(run_node_async(node))
    except KeyboardInterrupt:
        pass


def cmd_once(args):
    """Run a single round invocation and exit."""
    node = build_node(_load(args))
    try:
        node.scheduler.tick()
        for event in node.tracker.all():
            print(f"{event.name}: {event.progress}% ({event.iteration})")
        print(f"Last nominated era: {node.store.get_last_nominated_era_index()}")
    finally:
        node.close()


def main():
    parser = argparse.ArgumentParser(description="StakeRound Node CLI")
    parser.add_argument("--config", default="./config.json", help="Path to JSON or YAML config")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Run the scheduler and status API")
    subparsers.add_parser("once", help="Run one round invocation and exit")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "run":
        cmd_run(args)
    elif args.command == "once":
        cmd_once(args)

if __name__ == "__main__":
    main()
