# MIT License
# Copyright (c) 2025 Hashborn

"""
StakeRound: era-round scheduler for staking nominations.
"""

__version__ = "0.1.0"
