# MIT License
# Copyright (c) 2025 Hashborn

"""
Vault Incentives Economic Model
Single source of truth for fee and vesting parameters.

Fee policy:
- protocol_fee_bps of every deposit goes to the treasury (truncated)
- the remainder vests linearly over vesting_duration seconds
"""

from dataclasses import dataclass
from typing import Dict

from .params import BPS_DENOMINATOR, SECONDS_PER_DAY

# Treasury Address (governance-controlled outside this ledger)
TREASURY_ADDRESS = "0x7472656173757279000000000000000000000000"

# Account holding net deposits until they are claimed
CUSTODY_ADDRESS = "0x637573746f647900000000000000000000000000"


@dataclass
class IncentiveConfig:
    """Economic parameters for a network."""

    network_id: str

    # ═══════════════════════════════════════════════════════
    # FEES
    # ═══════════════════════════════════════════════════════
    protocol_fee_bps: int               # Share of each deposit sent to treasury (2500 = 25%)
    treasury_address: str = TREASURY_ADDRESS
    custody_address: str = CUSTODY_ADDRESS

    # ═══════════════════════════════════════════════════════
    # VESTING
    # ═══════════════════════════════════════════════════════
    vesting_duration: int = 30 * SECONDS_PER_DAY   # Window length whenever a period (re)starts

    # ═══════════════════════════════════════════════════════
    # CLAIMS
    # ═══════════════════════════════════════════════════════
    revert_on_empty_claim: bool = True  # Raise NothingToClaim instead of returning a zero receipt

    # ═══════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════

    def validate(self) -> None:
        if not 0 <= self.protocol_fee_bps <= BPS_DENOMINATOR:
            raise ValueError(f"protocol_fee_bps must be within [0, {BPS_DENOMINATOR}], got {self.protocol_fee_bps}")
        if self.vesting_duration <= 0:
            raise ValueError(f"vesting_duration must be positive, got {self.vesting_duration}")
        if self.treasury_address == self.custody_address:
            raise ValueError("treasury and custody must be distinct accounts")


# ═══════════════════════════════════════════════════════════════════════════
# DEVNET CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
DEVNET = IncentiveConfig(
    network_id="devnet",
    protocol_fee_bps=2500,                      # 25%
    vesting_duration=30 * SECONDS_PER_DAY,      # 30 days
)


# ═══════════════════════════════════════════════════════════════════════════
# TESTNET CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
TESTNET = IncentiveConfig(
    network_id="testnet",
    protocol_fee_bps=2500,                      # 25%
    vesting_duration=7 * SECONDS_PER_DAY,       # Short windows for faster iteration
)


# ═══════════════════════════════════════════════════════════════════════════
# MAINNET CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
MAINNET = IncentiveConfig(
    network_id="mainnet",
    protocol_fee_bps=2500,                      # 25%
    vesting_duration=30 * SECONDS_PER_DAY,      # 30 days
)


NETWORKS: Dict[str, IncentiveConfig] = {
    "devnet": DEVNET,
    "testnet": TESTNET,
    "mainnet": MAINNET,
}


def get_config(network_id: str) -> IncentiveConfig:
    if network_id not in NETWORKS:
        raise ValueError(f"Unknown network: {network_id}")
    return NETWORKS[network_id]


# ═══════════════════════════════════════════════════════════════════════════
# CURRENT NETWORK (selected at runtime)
# ═══════════════════════════════════════════════════════════════════════════
INCENTIVE_CONFIG = DEVNET  # Default to devnet, can be changed via config
