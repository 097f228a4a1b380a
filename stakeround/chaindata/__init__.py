# MIT License
# Copyright (c) 2025 Hashborn

"""
Chain Data

Read-only staking queries and nomination submission against a Substrate chain.
"""

from .chaindata import ChainData
from .submitter import SubstrateNominationSubmitter

__all__ = ["ChainData", "SubstrateNominationSubmitter"]
