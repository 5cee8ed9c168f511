# MIT License
# Copyright (c) 2025 Hashborn

"""
Pool Ledger

Owns the per-token vesting schedule: fee split, linear reward rate, window
bounds and the reward-per-collateral accumulator.

Schedule rules:
- Fresh window (none active, or now >= period_finish):
    rate = net // duration, window = [now, now + duration)
- Active window (now < period_finish):
    remaining = rate * (period_finish - now)
    rate = (remaining + net) // duration, window = [now, now + duration)

The accumulator is advanced to `now` with the OLD rate before any reschedule,
so each rate slice is paid to the collateral class it was set for. Accumulators
are fixed-point ratios and are not range-checked; every amount derived from
them is bounded by `allocated`, which is.
"""

import logging
from typing import Tuple

from ...protocol.config.params import ACC_PRECISION, BPS_DENOMINATOR, UINT256_MAX
from ...protocol.types.common import ArithmeticFault
from ...protocol.types.pool import Pool

logger = logging.getLogger(__name__)


def checked(value: int, what: str = "value") -> int:
    """Aborts on anything a uint256 cannot hold instead of wrapping."""
    if value < 0:
        raise ArithmeticFault(value, f"{what} underflow")
    if value > UINT256_MAX:
        raise ArithmeticFault(value, f"{what} overflow")
    return value


def split_deposit(amount: int, fee_bps: int) -> Tuple[int, int]:
    """Returns (protocol_amount, net_amount); protocol + net == amount."""
    checked(amount, "deposit amount")
    protocol_amount = amount * fee_bps // BPS_DENOMINATOR
    net_amount = amount - protocol_amount
    return protocol_amount, net_amount


def vested_since_anchor(pool: Pool, now: int) -> int:
    """Amount vested globally between last_update_time and min(now, period_finish)."""
    elapsed = min(now, pool.period_finish) - pool.last_update_time
    if elapsed <= 0:
        return 0
    return checked(pool.reward_rate * elapsed, "vested amount")


def unvested_remainder(pool: Pool, now: int) -> int:
    if not pool.has_active_period(now):
        return 0
    return checked(pool.reward_rate * (pool.period_finish - now), "remaining amount")


def accumulator_increment(vested: int, total_collateral: int) -> int:
    if total_collateral <= 0:
        return 0
    return vested * ACC_PRECISION // total_collateral


def advance_pool(pool: Pool, now: int, total_collateral: int) -> int:
    """
    Folds everything vested since the anchor into the accumulator of the
    schedule's collateral class and moves the anchor to `now`.

    With zero collateral outstanding the vested amount is recorded as
    unallocated: nobody can claim it.

    Returns the vested amount.
    """
    vested = vested_since_anchor(pool, now)

    if vested > 0 and pool.collateral_class is not None:
        if total_collateral > 0:
            current = pool.reward_per_collateral.get(pool.collateral_class, 0)
            pool.reward_per_collateral[pool.collateral_class] = current + accumulator_increment(vested, total_collateral)
            pool.allocated = checked(pool.allocated + vested, "allocated")
        else:
            pool.unallocated = checked(pool.unallocated + vested, "unallocated")
            logger.warning(
                f"Pool {pool.token}: {vested} vested with no {pool.collateral_class} collateral outstanding"
            )

    if now > pool.last_update_time:
        pool.last_update_time = now
    return vested


def reschedule(pool: Pool, net_amount: int, collateral_class: str, now: int, duration: int) -> Pool:
    """
    Applies a net deposit to the schedule. The caller must have advanced the
    pool to `now` first.
    """
    if pool.has_active_period(now):
        remaining = unvested_remainder(pool, now)
        pool.reward_rate = checked(remaining + net_amount, "scheduled amount") // duration
        logger.info(
            f"Pool {pool.token}: blended {remaining} unvested with {net_amount} new, "
            f"rate={pool.reward_rate}/s"
        )
    else:
        pool.reward_rate = net_amount // duration
        logger.info(f"Pool {pool.token}: new window, rate={pool.reward_rate}/s")

    pool.period_start = now
    pool.period_finish = checked(now + duration, "period finish")
    pool.last_update_time = now
    pool.collateral_class = collateral_class
    pool.reward_per_collateral.setdefault(collateral_class, 0)
    return pool


def headroom(pool: Pool) -> int:
    """Allocated to collateral holders but neither banked nor paid yet."""
    return max(pool.allocated - pool.total_claimed - pool.total_banked, 0)
