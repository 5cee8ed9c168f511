import argparse
import json
import logging
import os
import sys
from uvicorn import Config, Server
import asyncio
from ...protocol.config.economic_model import NETWORKS
from ...protocol.config.params import SECONDS_PER_DAY, UNIT
from ...protocol.types.common import Capability, IncentiveError
from ..core.access import RoleRegistry
from ..core.clock import ManualClock
from ..core.distributor import IncentiveDistributor
from ..core.oracle import StaticCollateralOracle
from ..core.state import IncentiveState
from ..core.tokens import InMemoryTokenBank
from ..storage.db import StorageDB
from ..rpc import api  # import module to set globals

logger = logging.getLogger(__name__)


def load_genesis(path: str):
    """
    Builds the external collaborators from a genesis file:

    {
      "collateral": {"<class>": {"<account>": amount, ...}, ...},
      "roles": {"FUND_POOLS": [...], "ADMIN_TOKENS": [...]},
      "balances": {"<token>": {"<holder>": amount, ...}, ...}
    }
    """
    with open(path, "r") as f:
        data = json.load(f)

    oracle = StaticCollateralOracle()
    for collateral_class, positions in data.get("collateral", {}).items():
        oracle.register_class(collateral_class)
        for account, amount in positions.items():
            oracle.set_collateral(account, collateral_class, int(amount))

    roles = RoleRegistry({Capability(k): v for k, v in data.get("roles", {}).items()})

    bank = InMemoryTokenBank()
    for token, holders in data.get("balances", {}).items():
        for holder, amount in holders.items():
            bank.mint(token, holder, int(amount))

    return oracle, roles, bank


def build_distributor(args) -> IncentiveDistributor:
    os.makedirs(args.datadir, exist_ok=True)
    genesis_path = os.path.join(args.datadir, "genesis.json")
    if os.path.exists(genesis_path):
        oracle, roles, bank = load_genesis(genesis_path)
        logger.info(f"Loaded genesis from {genesis_path}")
    else:
        logger.warning("No genesis.json found. Starting with an empty vault.")
        oracle, roles, bank = StaticCollateralOracle(), RoleRegistry(), InMemoryTokenBank()

    db = StorageDB(os.path.join(args.datadir, "ledger.db"))
    return IncentiveDistributor(
        oracle=oracle,
        authorizer=roles,
        tokens=bank,
        state=IncentiveState(db),
        config=NETWORKS[args.network],
    )


def cmd_run(args):
    """Serve the read-only RPC over the persisted ledger."""
    api.bind(build_distributor(args))
    config = Config(app=api.app, host=args.host, port=args.port, log_level="info")
    server = Server(config)
    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        pass


def cmd_simulate(args):
    """
    Replays the reference scenario: two holders at 1:9 enroll, one deposit,
    claimable amounts sampled every `--step-days` across the window.
    """
    config = NETWORKS[args.network]
    clock = ManualClock(start=1_700_000_000)
    token, collateral_class = "0xincentive", "0xcollateral"
    funder, admin = "0xfunder", "0xadmin"

    oracle = StaticCollateralOracle({collateral_class})
    oracle.set_collateral("0xalice", collateral_class, 100 * UNIT)
    oracle.set_collateral("0xbob", collateral_class, 900 * UNIT)

    roles = RoleRegistry({Capability.FUND_POOLS: [funder], Capability.ADMIN_TOKENS: [admin]})
    bank = InMemoryTokenBank()
    amount = int(args.amount * UNIT)
    bank.mint(token, funder, amount)

    distributor = IncentiveDistributor(oracle, roles, bank, config=config, clock=clock)
    try:
        distributor.set_allowed_token(admin, token, True)
        for holder in ("0xalice", "0xbob"):
            distributor.checkpoint_account(token, holder)
        receipt = distributor.deposit_incentives(funder, token, amount, collateral_class)
    except IncentiveError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Deposited {amount / UNIT} gross, {receipt.net_amount / UNIT} net, rate {receipt.reward_rate}/s")
    print(f"{'Day':>5} {'0xalice':>22} {'0xbob':>22}")
    print("-" * 51)
    days = config.vesting_duration // SECONDS_PER_DAY
    for day in range(0, days + 1, args.step_days):
        clock.set(receipt.period_start + day * SECONDS_PER_DAY)
        alice = distributor.get_claimable_rewards(token, "0xalice")
        bob = distributor.get_claimable_rewards(token, "0xbob")
        print(f"{day:>5} {alice / UNIT:>22.6f} {bob / UNIT:>22.6f}")


def main():
    parser = argparse.ArgumentParser(description="Vault Incentives Ledger CLI")
    parser.add_argument("--datadir", default="./.vault_incentives", help="Data directory")
    parser.add_argument("--network", default="devnet", choices=sorted(NETWORKS), help="Network parameters")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Run command
    run_parser = subparsers.add_parser("run", help="Serve the RPC")
    run_parser.add_argument("--host", default="0.0.0.0", help="RPC Host")
    run_parser.add_argument("--port", type=int, default=8000, help="RPC Port")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Replay the two-holder reference scenario")
    sim_parser.add_argument("--amount", type=float, default=1000.0, help="Gross deposit in whole tokens")
    sim_parser.add_argument("--step-days", type=int, default=5, help="Sampling interval in days")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "run":
        cmd_run(args)
    elif args.command == "simulate":
        cmd_simulate(args)


if __name__ == "__main__":
    main()
