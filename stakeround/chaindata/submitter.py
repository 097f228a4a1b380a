# MIT License
# Copyright (c) 2025 Hashborn

import logging
from typing import Callable, List, Optional

from substrateinterface import Keypair

from .chaindata import ChainData
from ..observability.metrics import nominations_total
from ..protocol.types.common import ChainError, SubmissionError
from ..protocol.types.staking import NominatorGroup

logger = logging.getLogger(__name__)


class SubstrateNominationSubmitter:
    """
    Signs and submits `Staking.nominate` extrinsics for a nominator group.

    In dry-run mode nothing is submitted and `nominate` returns None.
    """

    def __init__(self,
                 chaindata: ChainData,
                 dry_run: bool = False,
                 keypair_factory: Callable[..., Keypair] = Keypair.create_from_uri):
        self.chaindata = chaindata
        self.dry_run = dry_run
        self.keypair_factory = keypair_factory

    def nominate(self, group: NominatorGroup, targets: List[str], era: int) -> Optional[str]:
        """
        Nominate `targets` from `group`.

        Returns:
            Extrinsic hash, or None in dry-run mode

        Raises:
            SubmissionError: If signing or inclusion fails
        """
        if not targets:
            raise SubmissionError(f"No targets to nominate for {group.bonded_address}")

        if self.dry_run:
            logger.info(f"[dry-run] {group.bonded_address} would nominate {len(targets)} target(s) in era {era}")
            nominations_total.labels(status="dry_run").inc()
            return None

        if not group.seed:
            raise SubmissionError(f"No signing seed configured for {group.bonded_address}")

        try:
            keypair = self.keypair_factory(group.seed, ss58_format=self.chaindata.network_prefix)
            if keypair.ss58_address != group.bonded_address:
                logger.warning(f"Signer {keypair.ss58_address} differs from bonded address {group.bonded_address}")

            with self.chaindata.connection() as api:
                call = api.compose_call(
                    call_module="Staking",
                    call_function="nominate",
                    call_params={"targets": targets},
                )
                extrinsic = api.create_signed_extrinsic(call=call, keypair=keypair)
                receipt = api.submit_extrinsic(extrinsic, wait_for_inclusion=True)
        except ChainError as e:
            nominations_total.labels(status="failed").inc()
            raise SubmissionError(f"Chain unavailable: {e}") from e
        except Exception as e:
            nominations_total.labels(status="failed").inc()
            raise SubmissionError(f"Failed to submit nomination for {group.bonded_address}: {e}") from e

        if not receipt.is_success:
            nominations_total.labels(status="failed").inc()
            raise SubmissionError(f"Nomination for {group.bonded_address} failed: {receipt.error_message}")

        nominations_total.labels(status="submitted").inc()
        logger.info(f"{group.bonded_address} nominated {len(targets)} target(s) in era {era}: {receipt.extrinsic_hash}")
        return receipt.extrinsic_hash
