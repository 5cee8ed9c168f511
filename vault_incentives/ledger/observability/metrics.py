# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports incentive ledger metrics in Prometheus format.

Metrics:
- Deposits: count, gross / net / protocol-fee volume per token
- Claims: count and claimed volume per token
- Rejected operations by error type
- Pool schedule gauges (reward rate, total deposited, period finish)
"""

from prometheus_client import Counter, Gauge, CollectorRegistry, generate_latest

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# DEPOSIT METRICS
# ═══════════════════════════════════════════════════════════════════

deposits_total = Counter(
    'vault_incentives_deposits_total',
    'Total number of incentive deposits',
    ['token'],
    registry=metrics_registry
)

deposited_gross_total = Counter(
    'vault_incentives_deposited_gross_total',
    'Gross incentive volume deposited (minimal units)',
    ['token'],
    registry=metrics_registry
)

deposited_net_total = Counter(
    'vault_incentives_deposited_net_total',
    'Net incentive volume scheduled for vesting (minimal units)',
    ['token'],
    registry=metrics_registry
)

protocol_fees_total = Counter(
    'vault_incentives_protocol_fees_total',
    'Protocol fees remitted to treasury (minimal units)',
    ['token'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# CLAIM METRICS
# ═══════════════════════════════════════════════════════════════════

claims_total = Counter(
    'vault_incentives_claims_total',
    'Total number of settled claims',
    ['token'],
    registry=metrics_registry
)

claimed_amount_total = Counter(
    'vault_incentives_claimed_amount_total',
    'Rewards paid out to accounts (minimal units)',
    ['token'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# ERROR METRICS
# ═══════════════════════════════════════════════════════════════════

rejected_operations_total = Counter(
    'vault_incentives_rejected_operations_total',
    'Operations aborted before commit',
    ['operation', 'error'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# POOL METRICS
# ═══════════════════════════════════════════════════════════════════

pool_reward_rate = Gauge(
    'vault_incentives_pool_reward_rate',
    'Current reward rate per second',
    ['token'],
    registry=metrics_registry
)

pool_total_deposited = Gauge(
    'vault_incentives_pool_total_deposited',
    'Cumulative net deposits of the pool',
    ['token'],
    registry=metrics_registry
)

pool_period_finish = Gauge(
    'vault_incentives_pool_period_finish',
    'Unix time at which the active vesting window ends',
    ['token'],
    registry=metrics_registry
)

pools_total = Gauge(
    'vault_incentives_pools_total',
    'Number of pools ever funded',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════


def record_deposit(token: str, gross: int, protocol_amount: int, net: int):
    deposits_total.labels(token=token).inc()
    deposited_gross_total.labels(token=token).inc(gross)
    protocol_fees_total.labels(token=token).inc(protocol_amount)
    deposited_net_total.labels(token=token).inc(net)


def record_claim(token: str, amount: int):
    claims_total.labels(token=token).inc()
    claimed_amount_total.labels(token=token).inc(amount)


def record_rejection(operation: str, error: Exception):
    rejected_operations_total.labels(operation=operation, error=type(error).__name__).inc()


def update_pool_metrics(distributor):
    """
    Refresh pool gauges from the distributor's current state.
    Called after each deposit and when metrics are scraped.
    """
    pools = distributor.state.get_all_pools()
    pools_total.set(len(pools))

    for pool in pools:
        pool_reward_rate.labels(token=pool.token).set(pool.reward_rate)
        pool_total_deposited.labels(token=pool.token).set(pool.total_deposited)
        pool_period_finish.labels(token=pool.token).set(pool.period_finish)


def export_metrics() -> bytes:
    return generate_latest(metrics_registry)
