import pytest

from vault_incentives.ledger.core.access import RoleRegistry
from vault_incentives.ledger.core.clock import ManualClock
from vault_incentives.ledger.core.distributor import IncentiveDistributor
from vault_incentives.ledger.core.events import EventBus
from vault_incentives.ledger.core.oracle import StaticCollateralOracle
from vault_incentives.ledger.core.tokens import InMemoryTokenBank
from vault_incentives.protocol.config.economic_model import IncentiveConfig
from vault_incentives.protocol.config.params import SECONDS_PER_DAY, UNIT
from vault_incentives.protocol.types.common import Capability

T0 = 1_700_000_000
DURATION = 30 * SECONDS_PER_DAY

TOKEN = "0x1ce0000000000000000000000000000000000001"
OTHER_TOKEN = "0x1ce0000000000000000000000000000000000002"
WETH = "0xc011000000000000000000000000000000000001"
WBTC = "0xc011000000000000000000000000000000000002"

FUNDER = "0xf0000000000000000000000000000000000000f1"
ADMIN = "0xad00000000000000000000000000000000000001"
ALICE = "0xa11ce00000000000000000000000000000000001"
BOB = "0xb0b0000000000000000000000000000000000001"
CAROL = "0xca20100000000000000000000000000000000001"


@pytest.fixture
def config():
    return IncentiveConfig(network_id="test", protocol_fee_bps=2500, vesting_duration=DURATION)


@pytest.fixture
def clock():
    return ManualClock(start=T0)


@pytest.fixture
def oracle():
    """Vault with ALICE:BOB = 100:900 in WETH and an empty WBTC class."""
    vault = StaticCollateralOracle({WETH, WBTC})
    vault.set_collateral(ALICE, WETH, 100 * UNIT)
    vault.set_collateral(BOB, WETH, 900 * UNIT)
    return vault


@pytest.fixture
def roles():
    return RoleRegistry({
        Capability.FUND_POOLS: [FUNDER],
        Capability.ADMIN_TOKENS: [ADMIN],
    })


@pytest.fixture
def bank():
    tokens = InMemoryTokenBank()
    tokens.mint(TOKEN, FUNDER, 1_000_000 * UNIT)
    tokens.mint(OTHER_TOKEN, FUNDER, 1_000_000 * UNIT)
    return tokens


@pytest.fixture
def bus():
    events = EventBus()
    yield events
    events.clear()


@pytest.fixture
def ledger(oracle, roles, bank, config, clock, bus):
    distributor = IncentiveDistributor(
        oracle=oracle,
        authorizer=roles,
        tokens=bank,
        config=config,
        clock=clock,
        events=bus,
    )
    distributor.set_allowed_token(ADMIN, TOKEN, True)
    # ALICE and BOB hold their positions before any pool is funded
    for token in (TOKEN, OTHER_TOKEN):
        for account in (ALICE, BOB):
            distributor.checkpoint_account(token, account)
    return distributor
