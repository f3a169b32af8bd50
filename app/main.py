from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.api.routes import router
from app.config import get_log_level
from app.runtime.startup import flush_state_for_app, init_state_for_app

app = FastAPI(title="playground-state", version="0.1.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(router)
# Configure logging
logging.basicConfig(level=get_log_level())
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    # Must finish before mutating requests are served; until then they get 503.
    await init_state_for_app()


@app.on_event("shutdown")
async def _shutdown() -> None:
    await flush_state_for_app()


@app.get("/")
async def _root() -> dict[str, str]:
    return {"message": "Hello, world! The playground is up."}
