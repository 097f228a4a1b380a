from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from typing import Optional
import logging

from ..chaindata import queries
from ..chaindata.chaindata import ChainData
from ..core.events import JobStatusTracker
from ..core.lifecycle import RoundLifecycle
from ..observability.metrics import render_metrics
from ..storage.round_store import RoundStateStore

logger = logging.getLogger(__name__)

app = FastAPI(title="StakeRound Status API")

# Enable CORS for dashboards
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set by the node entry point before serving
store: Optional[RoundStateStore] = None
chaindata: Optional[ChainData] = None
tracker: Optional[JobStatusTracker] = None
lifecycle: Optional[RoundLifecycle] = None
network_prefix: int = 0


def _require_store() -> RoundStateStore:
    if not store:
        raise HTTPException(status_code=503, detail="Node not initialized")
    return store


@app.get("/status")
async def get_status():
    round_store = _require_store()
    return {
        "network_prefix": network_prefix,
        "last_nominated_era": round_store.get_last_nominated_era_index(),
        "round_phase": lifecycle.phase.value if lifecycle else None,
    }


@app.get("/jobs")
async def get_jobs():
    if not tracker:
        raise HTTPException(status_code=503, detail="Node not initialized")
    return {"jobs": [event.model_dump() for event in tracker.all()]}


@app.get("/nominations")
async def get_nominations(limit: int = 50):
    round_store = _require_store()
    limit = max(1, min(limit, 500))
    return {"nominations": [n.model_dump() for n in round_store.get_nominations(limit)]}


@app.get("/groups/{address}/targets")
async def get_group_targets(address: str):
    round_store = _require_store()
    return {
        "bonded_address": address,
        "targets": [t.model_dump() for t in round_store.get_current_targets(address)],
    }


@app.get("/validators/{address}")
def get_validator(address: str):
    if not chaindata:
        raise HTTPException(status_code=503, detail="Node not initialized")

    era, err = chaindata.get_active_era_index()
    if err:
        raise HTTPException(status_code=502, detail=f"Chain unavailable: {err}")

    results = {
        "commission": queries.get_commission(chaindata, address),
        "blocked": queries.get_blocked(chaindata, address),
        "bonded": queries.get_bonded_amount(chaindata, address),
        "reward_destination": queries.get_reward_destination(chaindata, address),
        "next_keys": queries.get_next_keys(chaindata, address),
        "exposure": queries.get_exposure(chaindata, era, address),
    }
    return {
        "address": address,
        "era": era,
        **{name: result.model_dump(mode="json") for name, result in results.items()},
    }


@app.get("/metrics")
async def get_metrics():
    return Response(content=render_metrics(), media_type=CONTENT_TYPE_LATEST)
