# MIT License
# Copyright (c) 2025 Hashborn

"""
Incentive Distributor

Public entry points of the ledger. Each operation samples the clock once,
runs under the distributor lock and is atomic: it either commits every state
change and transfer or leaves everything as it was.

Flow:
1. Funder deposits incentives -> fee to treasury, net into custody
2. Pool schedule is advanced to now, then blended with the net amount
3. Accounts accrue against the reward-per-collateral accumulator
4. Accounts earn from their first checkpoint; claims checkpoint the account,
   advance its marker, then pay out of custody
"""

import logging
import threading
from typing import Callable, List, Optional

from ...protocol.config.economic_model import INCENTIVE_CONFIG, IncentiveConfig
from ...protocol.config.params import ZERO_ADDRESS
from ...protocol.types.common import (
    Capability,
    IncentiveError,
    InvalidCollateralType,
    InvalidToken,
    NothingToClaim,
    ZeroAmount,
)
from ...protocol.types.pool import ClaimReceipt, DepositReceipt, Pool, PoolData
from ..observability import metrics
from .access import Authorizer, authorize
from .accrual import checkpoint, earned, enroll
from .clock import system_clock
from .events import (
    ACCOUNT_CHECKPOINTED,
    ALLOWED_TOKEN_SET,
    INCENTIVES_DEPOSITED,
    REWARDS_CLAIMED,
    EventBus,
    event_bus,
)
from .oracle import CollateralOracle
from .pools import advance_pool, checked, reschedule, split_deposit
from .state import IncentiveState
from .tokens import TokenBank

logger = logging.getLogger(__name__)


class IncentiveDistributor:
    def __init__(self,
                 oracle: CollateralOracle,
                 authorizer: Authorizer,
                 tokens: TokenBank,
                 state: Optional[IncentiveState] = None,
                 config: Optional[IncentiveConfig] = None,
                 clock: Callable[[], int] = system_clock,
                 events: Optional[EventBus] = None):
        self.oracle = oracle
        self.authorizer = authorizer
        self.tokens = tokens
        self.state = state if state is not None else IncentiveState()
        self.config = config or INCENTIVE_CONFIG
        self.config.validate()
        self.clock = clock
        self.events = events if events is not None else event_bus
        self._lock = threading.RLock()

    # --- Thread-safe wrappers ---
    def deposit_incentives(self, caller: str, token: str, amount: int, collateral_class: str) -> DepositReceipt:
        with self._lock:
            try:
                receipt = self._deposit_incentives_impl(caller, token, amount, collateral_class)
            except IncentiveError as e:
                metrics.record_rejection("deposit_incentives", e)
                logger.warning(f"Deposit of {amount} {token} by {caller} rejected: {e}")
                raise
            self._commit()

            metrics.record_deposit(token, receipt.gross_amount, receipt.protocol_amount, receipt.net_amount)
            metrics.update_pool_metrics(self)
            self.events.emit(INCENTIVES_DEPOSITED, **receipt.model_dump())
            return receipt

    def claim_rewards(self, caller: str, token: str) -> ClaimReceipt:
        with self._lock:
            try:
                receipt = self._claim_rewards_impl(caller, token)
            except IncentiveError as e:
                metrics.record_rejection("claim_rewards", e)
                logger.warning(f"Claim in {token} by {caller} rejected: {e}")
                raise
            self._commit()

            if receipt.amount > 0:
                metrics.record_claim(token, receipt.amount)
                self.events.emit(REWARDS_CLAIMED, **receipt.model_dump())
            return receipt

    def set_allowed_token(self, caller: str, token: str, allowed: bool) -> None:
        with self._lock:
            try:
                if not token or token == ZERO_ADDRESS:
                    raise InvalidToken(token, "zero address")
                authorize(self.authorizer, caller, Capability.ADMIN_TOKENS)
            except IncentiveError as e:
                metrics.record_rejection("set_allowed_token", e)
                raise

            changed = self.state.is_allowed(token) != allowed
            self.state.set_allowed(token, allowed)
            self._commit()

            if changed:
                logger.info(f"Token {token} {'allowed' if allowed else 'disallowed'} by {caller}")
            self.events.emit(ALLOWED_TOKEN_SET, token=token, allowed=allowed, caller=caller)

    def checkpoint_account(self, token: str, account: str) -> int:
        """
        Settles `account`'s entitlement in `token` against the vault's current
        collateral. Anyone may call it, for any account.

        The first checkpoint enrolls the account: it earns from that moment
        on, never for time before it. Enrolling before the pool exists makes
        the account earn from the first deposit.

        Returns the amount newly banked.
        """
        with self._lock:
            now = self.clock()
            pool = self.state.get_pool(token)
            claim = self.state.get_claim(token, account)

            with self.state.atomic():
                if pool is None:
                    banked = 0
                    claim.last_checkpoint = now
                else:
                    self._advance(pool, now)
                    banked = checkpoint(pool, claim, self.oracle, now)
                    self.state.set_pool(pool)
                self.state.set_claim(claim)
            self._commit()

            self.events.emit(ACCOUNT_CHECKPOINTED, token=token, account=account,
                             banked=banked, total_banked=claim.banked, timestamp=now)
            return banked

    # --- Read-only views ---
    def get_claimable_rewards(self, token: str, account: str) -> int:
        with self._lock:
            pool = self.state.get_pool(token)
            if pool is None:
                return 0
            claim = self.state.get_claim(token, account)
            return earned(pool, claim, self.oracle, self.clock())

    def get_pool_data(self, token: str) -> PoolData:
        with self._lock:
            pool = self.state.get_pool(token)
            return PoolData.from_pool(pool if pool is not None else Pool(token=token))

    def is_allowed_token(self, token: str) -> bool:
        with self._lock:
            return self.state.is_allowed(token)

    def allowed_tokens(self) -> List[str]:
        with self._lock:
            return self.state.allowed_tokens()

    # --- Implementation ---
    def _validate_deposit(self, caller: str, token: str, amount: int, collateral_class: str, now: int) -> None:
        if not token or token == ZERO_ADDRESS:
            raise InvalidToken(token, "zero address")

        if amount <= 0:
            raise ZeroAmount(amount)

        if not collateral_class or not self.oracle.is_collateral_class(collateral_class):
            raise InvalidCollateralType(collateral_class, "not a collateral class of the vault")
        if collateral_class == token:
            raise InvalidCollateralType(collateral_class, "incentive token cannot reward its own collateral")

        pool = self.state.get_pool(token)
        if pool is not None and pool.has_active_period(now) and pool.collateral_class != collateral_class:
            raise InvalidCollateralType(
                collateral_class,
                f"pool is vesting to {pool.collateral_class} until {pool.period_finish}",
            )

        if not self.state.is_allowed(token):
            raise InvalidToken(token, "not on the allowed-token list")

        authorize(self.authorizer, caller, Capability.FUND_POOLS)

    def _deposit_incentives_impl(self, caller: str, token: str, amount: int, collateral_class: str) -> DepositReceipt:
        now = self.clock()
        self._validate_deposit(caller, token, amount, collateral_class, now)

        # 1. Fee split
        protocol_amount, net_amount = split_deposit(amount, self.config.protocol_fee_bps)

        with self.state.atomic():
            # 2. Schedule
            pool = self.state.get_or_create_pool(token)
            opens_class = collateral_class not in pool.reward_per_collateral
            self._advance(pool, now)
            reschedule(pool, net_amount, collateral_class, now, self.config.vesting_duration)
            if opens_class:
                self._enroll_existing(pool, collateral_class)

            # 3. Accounting
            pool.total_deposited = checked(pool.total_deposited + net_amount, "total deposited")
            self.state.set_pool(pool)

            # 4. Transfers last: a fault above never moves tokens, a failed
            # transfer restores the state above
            self._collect(token, caller, amount, protocol_amount)

        logger.info(
            f"Deposit {token}: gross={amount} fee={protocol_amount} net={net_amount} "
            f"by {caller} for {collateral_class}, rate={pool.reward_rate}/s until {pool.period_finish}"
        )
        return DepositReceipt(
            token=token,
            depositor=caller,
            collateral_class=collateral_class,
            gross_amount=amount,
            protocol_amount=protocol_amount,
            net_amount=net_amount,
            reward_rate=pool.reward_rate,
            period_start=pool.period_start,
            period_finish=pool.period_finish,
            timestamp=now,
        )

    def _enroll_existing(self, pool: Pool, collateral_class: str) -> None:
        """Accounts enrolled in the pool start earning in a newly opened class right away."""
        for claim in self.state.get_claims(pool.token):
            enroll(pool, claim, self.oracle, collateral_class)
            self.state.set_claim(claim)

    def _collect(self, token: str, depositor: str, amount: int, protocol_amount: int) -> None:
        """
        Pulls the gross amount into custody, then remits the fee to treasury.
        If the fee leg fails the depositor is refunded before re-raising.
        """
        custody = self.config.custody_address
        self.tokens.transfer(token, depositor, custody, amount)
        if protocol_amount == 0:
            return
        try:
            self.tokens.transfer(token, custody, self.config.treasury_address, protocol_amount)
        except IncentiveError:
            logger.error(f"Treasury transfer of {protocol_amount} {token} failed, refunding {depositor}")
            self.tokens.transfer(token, custody, depositor, amount)
            raise

    def _claim_rewards_impl(self, caller: str, token: str) -> ClaimReceipt:
        now = self.clock()
        pool = self.state.get_pool(token)
        if pool is None:
            if self.config.revert_on_empty_claim:
                raise NothingToClaim(token, caller)
            return ClaimReceipt(token=token, account=caller, amount=0, claimed_to_date=0, timestamp=now)

        with self.state.atomic():
            self._advance(pool, now)
            claim = self.state.get_claim(token, caller)
            checkpoint(pool, claim, self.oracle, now)

            amount = claim.banked
            if amount == 0 and self.config.revert_on_empty_claim:
                raise NothingToClaim(token, caller)

            # Marker first, then the external transfer
            claim.banked = 0
            claim.claimed = checked(claim.claimed + amount, "claimed")
            pool.total_banked = checked(pool.total_banked - amount, "total banked")
            pool.total_claimed = checked(pool.total_claimed + amount, "total claimed")
            self.state.set_claim(claim)
            self.state.set_pool(pool)

            if amount:
                self.tokens.transfer(token, self.config.custody_address, caller, amount)

        if amount:
            logger.info(f"Claim {token}: {amount} to {caller} (claimed to date {claim.claimed})")
        return ClaimReceipt(
            token=token,
            account=caller,
            amount=amount,
            claimed_to_date=claim.claimed,
            timestamp=now,
        )

    def _advance(self, pool: Pool, now: int) -> None:
        total = self.oracle.total_collateral(pool.collateral_class) if pool.collateral_class else 0
        advance_pool(pool, now, total)

    def _commit(self) -> None:
        if self.state.db is not None:
            self.state.persist()
