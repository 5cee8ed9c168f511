from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from typing import Optional
from prometheus_client import CONTENT_TYPE_LATEST
from ..core.distributor import IncentiveDistributor
from ..observability.metrics import export_metrics, update_pool_metrics
import logging

logger = logging.getLogger(__name__)

app = FastAPI(title="Vault Incentives RPC")

# Enable CORS for dashboards
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
distributor: Optional[IncentiveDistributor] = None


def bind(instance: Optional[IncentiveDistributor]) -> None:
    global distributor
    distributor = instance


def _require() -> IncentiveDistributor:
    if not distributor:
        raise HTTPException(status_code=503, detail="Ledger not initialized")
    return distributor


@app.get("/status")
async def get_status():
    d = _require()
    return {
        "network": d.config.network_id,
        "time": d.clock(),
        "protocol_fee_bps": d.config.protocol_fee_bps,
        "vesting_duration": d.config.vesting_duration,
        "pools": len(d.state.get_all_pools()),
        "allowed_tokens": d.allowed_tokens(),
    }


@app.get("/pool/{token}")
async def get_pool(token: str):
    d = _require()
    data = d.get_pool_data(token)
    # Amounts as strings: they routinely exceed 2**53
    return {
        "token": data.token,
        "total_deposited": str(data.total_deposited),
        "reward_rate": str(data.reward_rate),
        "period_start": data.period_start,
        "period_finish": data.period_finish,
        "last_update_time": data.last_update_time,
        "collateral_class": data.collateral_class,
    }


@app.get("/claimable/{token}/{account}")
async def get_claimable(token: str, account: str):
    d = _require()
    return {
        "token": token,
        "account": account,
        "claimable": str(d.get_claimable_rewards(token, account)),
    }


@app.get("/allowed/{token}")
async def get_allowed(token: str):
    d = _require()
    return {"token": token, "allowed": d.is_allowed_token(token)}


@app.get("/metrics")
async def get_metrics():
    if distributor:
        try:
            update_pool_metrics(distributor)
        except Exception as e:
            logger.error(f"Failed to refresh pool metrics: {e}")
    return Response(content=export_metrics(), media_type=CONTENT_TYPE_LATEST)
