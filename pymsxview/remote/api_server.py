"""HTTP endpoints for the polling transport."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException

from pymsxview.utils import debug_log

from .machine import MachineError
from .session import RemoteSession


def create_api_server(session: RemoteSession) -> FastAPI:
    app = FastAPI(title="pymsxview remote bridge")
    router = APIRouter(prefix="/api")

    def guarded(action, *args):
        try:
            return action(*args)
        except MachineError as exc:
            debug_log("remote", "machine error: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @router.get("/status")
    def get_status() -> Dict[str, Any]:
        return guarded(session.status)

    @router.get("/program")
    def get_program() -> List[Dict[str, Any]]:
        return guarded(session.program)

    @router.get("/memory")
    def get_memory(hash: Optional[str] = None) -> Dict[str, int]:
        return guarded(session.memory_delta, hash)

    @router.get("/vram")
    def get_vram(hash: Optional[str] = None) -> Dict[str, int]:
        return guarded(session.vram_delta, hash)

    @router.post("/step")
    def post_step() -> Dict[str, Any]:
        return guarded(session.step)

    @router.post("/reset")
    def post_reset() -> Dict[str, Any]:
        return guarded(session.reset)

    app.include_router(router)
    app.state.session = session
    return app


__all__ = ["create_api_server"]
