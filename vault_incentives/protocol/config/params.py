# MIT License
# Copyright (c) 2025 Hashborn

# Global Constants
DECIMALS = 18
UNIT = 10**DECIMALS

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

BPS_DENOMINATOR = 10_000

# Fixed-point scale for reward-per-collateral accumulators (not an amount,
# never range-checked)
ACC_PRECISION = 10**36

# Largest value any stored amount may take
UINT256_MAX = 2**256 - 1

SECONDS_PER_DAY = 86_400
