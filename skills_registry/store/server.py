# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Skills Registry Server

Serves a RegistryStore over two paths:

  fast path (stateless reads):
    GET /{processId}~process@1.0/now/{module}/{function}/serialize~json@1.0?params
  message path (reads and writes, one message at a time):
    POST /message  {"process", "action", "params", "from", "timestamp"}

Run with: uvicorn --factory skills_registry.store.server:create_app
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from skills_registry.core.config import Config, get_config
from skills_registry.core.errors import SkillsError

from .info import REGISTRY_NAME, REGISTRY_VERSION
from .registry_store import RegistryStore

logger = logging.getLogger(__name__)

PROCESS_SUFFIX = "~process@1.0"


class MessageRequest(BaseModel):
    """Message-path request body"""
    process: str
    action: str
    params: Dict[str, Any] = Field(default_factory=dict)
    sender: str = Field("anonymous", alias="from")
    timestamp: Optional[int] = None

    model_config = {"populate_by_name": True}


def load_store(snapshot_path: Optional[str]) -> RegistryStore:
    """
    Load a store from its JSON snapshot, persisting after every write.

    Args:
        snapshot_path: Snapshot file, or None for a purely in-memory store

    Returns:
        RegistryStore instance
    """
    if not snapshot_path:
        return RegistryStore()

    path = Path(snapshot_path).expanduser()

    def persist(store: RegistryStore):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(store.snapshot(), indent=2))
        os.replace(tmp, path)

    if path.exists():
        return RegistryStore.from_snapshot(json.loads(path.read_text()), on_write=persist)

    logger.info(f"No registry snapshot at {path}, starting empty")
    return RegistryStore(on_write=persist)


def get_store(request: Request) -> RegistryStore:
    """
    Get registry store from FastAPI app state.

    Raises:
        HTTPException: If store not initialized
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="Registry store not initialized")
    return store


def create_app(store: Optional[RegistryStore] = None, config: Optional[Config] = None) -> FastAPI:
    """
    Build the registry server application.

    Args:
        store: Store to serve (loaded from the configured snapshot if omitted)
        config: Configuration (global config if omitted)

    Returns:
        FastAPI application
    """
    config = config or get_config()

    app = FastAPI(
        title=REGISTRY_NAME,
        description="Skill registry with fast-path reads and a message path for writes",
        version=REGISTRY_VERSION
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store if store is not None else load_store(config.store_snapshot_path)
    app.state.process_id = config.registry_process_id

    @app.exception_handler(SkillsError)
    async def skills_error_handler(request: Request, exc: SkillsError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    def check_process(process_id: str):
        expected = app.state.process_id
        if expected and process_id != expected:
            raise HTTPException(status_code=404, detail=f"Unknown process: {process_id}")

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": REGISTRY_NAME, "version": REGISTRY_VERSION}

    @app.get("/{process_ref}/now/{module_ref}/{function}/serialize~json@1.0")
    async def fast_path_read(process_ref: str, module_ref: str, function: str, request: Request):
        """Stateless read against the current state."""
        if not process_ref.endswith(PROCESS_SUFFIX):
            raise HTTPException(status_code=404, detail=f"Not a process reference: {process_ref}")
        check_process(process_ref[:-len(PROCESS_SUFFIX)])

        params = dict(request.query_params)
        store = get_store(request)
        return await store.query(function, params)

    @app.post("/message")
    async def message(body: MessageRequest, request: Request):
        """Deliver one message; application errors come back as an Error action."""
        check_process(body.process)
        store = get_store(request)
        try:
            data = await store.handle(body.action, body.params, body.sender, body.timestamp)
        except SkillsError as e:
            logger.warning(f"Message {body.action} from {body.sender} rejected: {e.message}")
            return {"action": "Error", "error": e.message, "errorType": type(e).__name__, "details": e.details}
        return {"action": f"{body.action}-Response", "data": data}

    return app
