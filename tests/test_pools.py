# MIT License
# Copyright (c) 2025 Hashborn

"""
Pool Ledger Tests

Covers deposit intake:
1. Fee split and where each leg lands
2. Fresh-window and blended schedules
3. Precondition failures leave state untouched
"""

import pytest

from vault_incentives.ledger.core.pools import advance_pool, checked, reschedule, split_deposit
from vault_incentives.protocol.config.params import UINT256_MAX, UNIT, ZERO_ADDRESS
from vault_incentives.protocol.types.common import (
    ArithmeticFault,
    InvalidCollateralType,
    InvalidToken,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from vault_incentives.protocol.types.pool import Pool

from conftest import ALICE, BOB, DURATION, FUNDER, OTHER_TOKEN, T0, TOKEN, WBTC, WETH


# ═══════════════════════════════════════════════════════════════════
# FEE SPLIT
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("amount", [1, 3, 7, 9_999, 10_001, 1000 * UNIT, 123_456_789_123_456_789])
def test_fee_split_conserves_amount(amount):
    protocol_amount, net_amount = split_deposit(amount, 2500)
    assert protocol_amount + net_amount == amount
    assert protocol_amount == amount * 2500 // 10_000


def test_fee_split_truncates_toward_zero():
    # 3 * 0.25 = 0.75 -> 0 to treasury
    assert split_deposit(3, 2500) == (0, 3)
    assert split_deposit(1000 * UNIT, 2500) == (250 * UNIT, 750 * UNIT)


def test_deposit_routes_fee_to_treasury_and_net_to_custody(ledger, bank, config):
    receipt = ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)

    assert receipt.protocol_amount == 250 * UNIT
    assert receipt.net_amount == 750 * UNIT
    assert bank.balance_of(TOKEN, config.treasury_address) == 250 * UNIT
    assert bank.balance_of(TOKEN, config.custody_address) == 750 * UNIT
    assert bank.balance_of(TOKEN, FUNDER) == (1_000_000 - 1000) * UNIT


# ═══════════════════════════════════════════════════════════════════
# SCHEDULE
# ═══════════════════════════════════════════════════════════════════

def test_first_deposit_starts_fresh_window(ledger):
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    data = ledger.get_pool_data(TOKEN)

    assert data.total_deposited == 750 * UNIT
    assert data.reward_rate == 750 * UNIT // DURATION
    assert data.period_start == T0
    assert data.period_finish == T0 + DURATION
    assert data.last_update_time == T0
    assert data.collateral_class == WETH
    assert data.as_tuple() == (750 * UNIT, 750 * UNIT // DURATION, T0, T0 + DURATION, T0)


def test_mid_window_deposit_blends_remaining_schedule(ledger, clock):
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    old_rate = ledger.get_pool_data(TOKEN).reward_rate

    clock.advance(10 * 86_400)
    now = clock()
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    data = ledger.get_pool_data(TOKEN)

    remaining = old_rate * (T0 + DURATION - now)
    assert data.reward_rate == (remaining + 750 * UNIT) // DURATION
    assert data.period_start == now
    assert data.period_finish == now + DURATION
    assert data.last_update_time == now
    assert data.total_deposited == 1500 * UNIT


def test_blending_never_schedules_more_than_deposited(ledger, clock):
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    first_rate = ledger.get_pool_data(TOKEN).reward_rate

    clock.advance(10 * 86_400)
    vested_before_blend = first_rate * 10 * 86_400
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    data = ledger.get_pool_data(TOKEN)

    scheduled = vested_before_blend + data.reward_rate * DURATION
    assert scheduled <= data.total_deposited
    # Only integer-division dust is left behind
    assert data.total_deposited - scheduled < 2 * DURATION


def test_deposit_after_window_lapses_starts_fresh(ledger, clock):
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    clock.advance(DURATION + 5)
    ledger.deposit_incentives(FUNDER, TOKEN, 400 * UNIT, WETH)

    data = ledger.get_pool_data(TOKEN)
    assert data.reward_rate == 300 * UNIT // DURATION
    assert data.period_start == clock()
    assert data.total_deposited == 1050 * UNIT


def test_reschedule_and_advance_on_bare_pool():
    pool = Pool(token=TOKEN)
    reschedule(pool, 1_000_000, WETH, now=100, duration=1000)
    assert pool.reward_rate == 1000
    assert pool.reward_per_collateral == {WETH: 0}

    vested = advance_pool(pool, now=600, total_collateral=10)
    assert vested == 500_000
    assert pool.last_update_time == 600
    assert pool.reward_per_collateral[WETH] == 500_000 * 10**36 // 10
    assert pool.allocated == 500_000

    # Past the window only the remainder up to period_finish vests
    assert advance_pool(pool, now=5_000, total_collateral=10) == 500_000
    assert advance_pool(pool, now=6_000, total_collateral=10) == 0


def test_advance_with_no_collateral_records_unallocated():
    pool = Pool(token=TOKEN)
    reschedule(pool, 1_000_000, WETH, now=0, duration=1000)
    advance_pool(pool, now=250, total_collateral=0)

    assert pool.unallocated == 250_000
    assert pool.allocated == 0
    assert pool.reward_per_collateral[WETH] == 0


def test_checked_arithmetic_aborts():
    assert checked(UINT256_MAX) == UINT256_MAX
    with pytest.raises(ArithmeticFault, match="overflow"):
        checked(UINT256_MAX + 1)
    with pytest.raises(ArithmeticFault, match="underflow"):
        checked(-1)


def test_oversized_deposit_aborts_without_state_change(ledger, bank):
    bank.mint(TOKEN, FUNDER, UINT256_MAX + 1)
    before = bank.balance_of(TOKEN, FUNDER)
    with pytest.raises(ArithmeticFault, match="deposit amount overflow"):
        ledger.deposit_incentives(FUNDER, TOKEN, UINT256_MAX + 1, WETH)
    assert ledger.get_pool_data(TOKEN).total_deposited == 0
    assert bank.balance_of(TOKEN, FUNDER) == before


def test_schedule_overflow_moves_no_tokens(ledger, bank, clock, config):
    bank.mint(TOKEN, FUNDER, 2 * UINT256_MAX)
    ledger.deposit_incentives(FUNDER, TOKEN, UINT256_MAX, WETH)
    clock.advance(86_400)

    pool_before = ledger.state.get_pool(TOKEN).model_dump()
    funder_before = bank.balance_of(TOKEN, FUNDER)
    custody_before = bank.balance_of(TOKEN, config.custody_address)

    # Unvested remainder plus the new net amount exceeds a uint256
    with pytest.raises(ArithmeticFault, match="scheduled amount overflow"):
        ledger.deposit_incentives(FUNDER, TOKEN, UINT256_MAX // 2, WETH)

    assert ledger.state.get_pool(TOKEN).model_dump() == pool_before
    assert bank.balance_of(TOKEN, FUNDER) == funder_before
    assert bank.balance_of(TOKEN, config.custody_address) == custody_before


def test_large_pool_keeps_accepting_deposits_and_claims(ledger, bank, clock):
    bank.mint(TOKEN, FUNDER, 10**45)
    ledger.deposit_incentives(FUNDER, TOKEN, 10**45, WETH)
    clock.advance(86_400)

    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    clock.advance(86_400)

    claimed = ledger.claim_rewards(BOB, TOKEN).amount
    assert claimed > 0
    assert bank.balance_of(TOKEN, BOB) == claimed


# ═══════════════════════════════════════════════════════════════════
# PRECONDITIONS
# ═══════════════════════════════════════════════════════════════════

def test_zero_amount_rejected(ledger):
    with pytest.raises(ZeroAmount):
        ledger.deposit_incentives(FUNDER, TOKEN, 0, WETH)
    with pytest.raises(ZeroAmount):
        ledger.deposit_incentives(FUNDER, TOKEN, -5, WETH)


def test_zero_address_token_rejected(ledger):
    with pytest.raises(InvalidToken, match="zero address"):
        ledger.deposit_incentives(FUNDER, ZERO_ADDRESS, 100, WETH)


def test_token_not_on_allow_list_rejected(ledger):
    with pytest.raises(InvalidToken, match="allowed-token list"):
        ledger.deposit_incentives(FUNDER, OTHER_TOKEN, 100, WETH)


def test_collateral_class_equal_to_token_rejected(ledger, oracle):
    # Incentive token that is itself a collateral class of the vault
    oracle.register_class(TOKEN)
    with pytest.raises(InvalidCollateralType, match="own collateral"):
        ledger.deposit_incentives(FUNDER, TOKEN, 100, TOKEN)


def test_unknown_collateral_class_rejected(ledger):
    with pytest.raises(InvalidCollateralType, match="not a collateral class"):
        ledger.deposit_incentives(FUNDER, TOKEN, 100, "0xnotacollateral")


def test_missing_fund_capability_rejected(ledger, bank):
    bank.mint(TOKEN, ALICE, 1000)
    with pytest.raises(Unauthorized) as excinfo:
        ledger.deposit_incentives(ALICE, TOKEN, 1000, WETH)
    assert excinfo.value.caller == ALICE
    assert ledger.get_pool_data(TOKEN).total_deposited == 0
    assert bank.balance_of(TOKEN, ALICE) == 1000


def test_class_switch_during_active_window_rejected(ledger, clock):
    ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)
    clock.advance(86_400)
    with pytest.raises(InvalidCollateralType, match="vesting to"):
        ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WBTC)


def test_insufficient_funder_balance_leaves_no_pool(ledger, bank):
    with pytest.raises(TransferFailed, match="insufficient balance"):
        ledger.deposit_incentives(FUNDER, TOKEN, 2_000_000 * UNIT, WETH)
    assert ledger.state.get_pool(TOKEN) is None
    assert bank.balance_of(TOKEN, FUNDER) == 1_000_000 * UNIT


def test_failed_treasury_leg_refunds_depositor(oracle, roles, config, clock, bus):
    from vault_incentives.ledger.core.distributor import IncentiveDistributor
    from vault_incentives.ledger.core.tokens import InMemoryTokenBank

    class TreasuryDownBank(InMemoryTokenBank):
        def transfer(self, token, sender, recipient, amount):
            if recipient == config.treasury_address:
                raise TransferFailed(token, sender, recipient, amount, "treasury frozen")
            super().transfer(token, sender, recipient, amount)

    bank = TreasuryDownBank()
    bank.mint(TOKEN, FUNDER, 1000 * UNIT)
    ledger = IncentiveDistributor(oracle, roles, bank, config=config, clock=clock, events=bus)
    ledger.state.set_allowed(TOKEN, True)

    with pytest.raises(TransferFailed, match="treasury frozen"):
        ledger.deposit_incentives(FUNDER, TOKEN, 1000 * UNIT, WETH)

    assert bank.balance_of(TOKEN, FUNDER) == 1000 * UNIT
    assert bank.balance_of(TOKEN, config.custody_address) == 0
    assert ledger.state.get_pool(TOKEN) is None


def test_pool_data_for_unknown_token_is_empty(ledger):
    assert ledger.get_pool_data(OTHER_TOKEN).as_tuple() == (0, 0, 0, 0, 0)
    assert ledger.get_claimable_rewards(OTHER_TOKEN, BOB) == 0
