from pydantic import BaseModel, Field
from typing import Dict, Optional


class Pool(BaseModel):
    """Vesting schedule and accumulator state for one incentive token."""
    token: str
    total_deposited: int = 0       # Cumulative net (post-fee) deposits
    reward_rate: int = 0           # Units vested per second
    period_start: int = 0
    period_finish: int = 0
    last_update_time: int = 0      # Anchor of the current rate slice
    collateral_class: Optional[str] = None  # Class the current schedule pays out to

    # Fixed-point (ACC_PRECISION) reward per unit of collateral, per class
    reward_per_collateral: Dict[str, int] = Field(default_factory=dict)

    total_claimed: int = 0
    total_banked: int = 0          # Settled at checkpoints, not yet paid
    allocated: int = 0             # Vested while the class had collateral outstanding
    unallocated: int = 0           # Vested while the class had no collateral

    def has_active_period(self, now: int) -> bool:
        return self.period_finish > 0 and now < self.period_finish


class ClaimState(BaseModel):
    """Per (pool, account) claim bookkeeping."""
    token: str
    account: str
    claimed: int = 0               # Paid out to date, never decreases
    banked: int = 0                # Settled at a checkpoint, not yet paid

    # Accumulator value last settled against, per class
    paid_per_collateral: Dict[str, int] = Field(default_factory=dict)
    # Collateral read at the last checkpoint, per class
    collateral_snapshot: Dict[str, int] = Field(default_factory=dict)
    last_checkpoint: int = 0


class PoolData(BaseModel):
    token: str
    total_deposited: int
    reward_rate: int
    period_start: int
    period_finish: int
    last_update_time: int
    collateral_class: Optional[str] = None

    @classmethod
    def from_pool(cls, pool: Pool) -> "PoolData":
        return cls(
            token=pool.token,
            total_deposited=pool.total_deposited,
            reward_rate=pool.reward_rate,
            period_start=pool.period_start,
            period_finish=pool.period_finish,
            last_update_time=pool.last_update_time,
            collateral_class=pool.collateral_class,
        )

    def as_tuple(self):
        return (
            self.total_deposited,
            self.reward_rate,
            self.period_start,
            self.period_finish,
            self.last_update_time,
        )


class DepositReceipt(BaseModel):
    token: str
    depositor: str
    collateral_class: str
    gross_amount: int
    protocol_amount: int
    net_amount: int
    reward_rate: int
    period_start: int
    period_finish: int
    timestamp: int


class ClaimReceipt(BaseModel):
    token: str
    account: str
    amount: int
    claimed_to_date: int
    timestamp: int
