import logging
import os

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from controller.models import MetricsSample
from controller.store import StatsStore

# ================= CONFIG =================
HOST = os.getenv("CONTROLLER_HOST", "127.0.0.1")
PORT = int(os.getenv("CONTROLLER_PORT", "8080"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)


def get_store(request: Request) -> StatsStore:
    return request.app.state.store


def create_app(store: StatsStore | None = None) -> FastAPI:
    app = FastAPI(title="agentstats controller")
    app.state.store = store if store is not None else StatsStore()

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/update")
    async def update(
        request: Request, agent: str | None = None, store: StatsStore = Depends(get_store)
    ):
        if not agent:
            raise HTTPException(status_code=400, detail="Missing agent query parameter")

        body = await request.body()
        try:
            sample = MetricsSample.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"Rejected sample from {agent}: {e.error_count()} error(s)")
            raise HTTPException(status_code=400, detail="Invalid metrics payload")

        store.update(agent, sample)
        logger.debug(f"Updated stats for {agent}: {sample}")
        return Response(status_code=200)

    @app.get("/stats")
    async def stats(store: StatsStore = Depends(get_store)):
        snapshot = store.snapshot()
        if snapshot is None:
            return Response(status_code=204)
        return {agent_id: sample.model_dump() for agent_id, sample in snapshot.items()}

    @app.get("/stats/{agent_id}")
    async def agent_stats(agent_id: str, store: StatsStore = Depends(get_store)):
        sample = store.get(agent_id)
        if sample is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return sample.model_dump()

    @app.post("/reset")
    async def reset(store: StatsStore = Depends(get_store)):
        store.reset()
        logger.info("Stats reset")
        return PlainTextResponse("Stats reset")

    return app


def main():
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(message)s')
    logger.info(f"Starting controller on {HOST}:{PORT}")
    # A bind failure makes uvicorn exit; nothing else stops the controller.
    uvicorn.run(create_app(StatsStore()), host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
