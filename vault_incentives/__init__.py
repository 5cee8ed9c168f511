# MIT License
# Copyright (c) 2025 Hashborn

"""
Vault Incentives

Reward-pool ledger layered on a collateralized lending vault. Funders deposit
approved tokens into per-token pools; collateral holders accrue a pro-rata,
linearly vested share of each pool.
"""

__version__ = "0.1.0"
