"""FastAPI application wiring the program and execution routers."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from armblocks.api.routes import execution, program

logger = logging.getLogger(__name__)

app = FastAPI(title="ArmBlocks", version="0.1.0")
app.include_router(program.router, prefix="/program", tags=["program"])
app.include_router(execution.router, prefix="/execution", tags=["execution"])


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
