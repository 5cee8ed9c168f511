# MIT License
# Copyright (c) 2025 Hashborn

"""
Reward Accrual Engine

Computes what an account may claim from a pool as of `now`.

Accounting:
    acc[c]        reward per unit of collateral accumulated for class c
    paid[c]       value of acc[c] the account was last settled against
    entitlement = banked + sum_c (acc[c] - paid[c]) * effective[c] // ACC_PRECISION

An account earns in a class only from its first checkpoint in that class
(or from the moment the class opens in the pool, for accounts enrolled
before that). Before then it has no `paid[c]` and is owed nothing there.

The vault is only read at checkpoints, so collateral held between two
checkpoints is taken as effective[c] = min(snapshot[c], current[c]).
Collateral added after a checkpoint starts earning at the next one, and
collateral removed stops earning immediately.

Whatever the per-account arithmetic says, the pool never banks more than it
has allocated to collateral holders and not yet paid or banked.
"""

import logging
from typing import Dict

from ...protocol.config.params import ACC_PRECISION
from ...protocol.types.pool import ClaimState, Pool
from .oracle import CollateralOracle
from .pools import accumulator_increment, checked, headroom, vested_since_anchor

logger = logging.getLogger(__name__)


def pending_reward_per_collateral(pool: Pool, collateral_class: str, now: int, total_collateral: int) -> int:
    """Read-only view of acc[collateral_class] as if the pool were advanced to `now`."""
    stored = pool.reward_per_collateral.get(collateral_class, 0)
    if collateral_class != pool.collateral_class:
        return stored
    return stored + accumulator_increment(vested_since_anchor(pool, now), total_collateral)


def effective_collateral(claim: ClaimState, collateral_class: str, current: int) -> int:
    return min(claim.collateral_snapshot.get(collateral_class, 0), current)


def _unsettled(claim: ClaimState, accumulators: Dict[str, int], oracle: CollateralOracle) -> Dict[str, int]:
    """Per-class entitlement since the account's last checkpoint."""
    owed: Dict[str, int] = {}
    for collateral_class, acc in accumulators.items():
        if collateral_class not in claim.paid_per_collateral:
            continue
        delta = acc - claim.paid_per_collateral[collateral_class]
        if delta <= 0:
            continue
        current = oracle.collateral_of(claim.account, collateral_class)
        held = effective_collateral(claim, collateral_class, current)
        if held > 0:
            owed[collateral_class] = delta * held // ACC_PRECISION
    return owed


def earned(pool: Pool, claim: ClaimState, oracle: CollateralOracle, now: int) -> int:
    """
    Unpaid entitlement of `claim.account` in `pool` as of `now`.

    Pure: neither the pool nor the claim state is modified.
    """
    accumulators = dict(pool.reward_per_collateral)
    available = headroom(pool)
    if pool.collateral_class is not None:
        total = oracle.total_collateral(pool.collateral_class)
        accumulators[pool.collateral_class] = pending_reward_per_collateral(
            pool, pool.collateral_class, now, total
        )
        if total > 0:
            available += vested_since_anchor(pool, now)

    owed = sum(_unsettled(claim, accumulators, oracle).values())
    return claim.banked + min(owed, available)


def enroll(pool: Pool, claim: ClaimState, oracle: CollateralOracle, collateral_class: str) -> None:
    """Starts `claim.account` earning in `collateral_class` from the pool's current accumulator."""
    claim.paid_per_collateral[collateral_class] = pool.reward_per_collateral.get(collateral_class, 0)
    claim.collateral_snapshot[collateral_class] = oracle.collateral_of(claim.account, collateral_class)


def checkpoint(pool: Pool, claim: ClaimState, oracle: CollateralOracle, now: int) -> int:
    """
    Banks the account's entitlement against the pool's stored accumulators
    and refreshes its collateral snapshot. The pool must already be advanced
    to `now`. A first checkpoint only records the starting point.

    Returns the amount newly banked.
    """
    owed = sum(_unsettled(claim, pool.reward_per_collateral, oracle).values())
    available = headroom(pool)
    newly_banked = min(owed, available)
    if newly_banked < owed:
        logger.warning(
            f"Checkpoint {claim.account} in {pool.token}: owed {owed} but only {available} unbanked, capping"
        )

    claim.banked = checked(claim.banked + newly_banked, "banked")
    pool.total_banked = checked(pool.total_banked + newly_banked, "total banked")

    for collateral_class in pool.reward_per_collateral:
        enroll(pool, claim, oracle, collateral_class)
    claim.last_checkpoint = now

    if newly_banked:
        logger.debug(f"Checkpoint {claim.account} in {pool.token}: banked {newly_banked}, total {claim.banked}")
    return newly_banked
