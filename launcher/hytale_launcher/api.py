from __future__ import annotations
from typing import Any, Dict, Optional
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel
from . import __version__
from .settings import Settings
from .orchestrator import Orchestrator

class ActionResult(BaseModel):
    """Envelope for /check and /setup; `detail` is a machine-readable reason."""
    ok: bool
    detail: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

def create_app(settings: Settings, orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    app = FastAPI(title="Hytale Launcher API", version=__version__)
    orch = orchestrator or Orchestrator(settings)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/state")
    def state():
        record = orch.store.load(orch.layout.server_dir)
        if record is None:
            raise HTTPException(status_code=404, detail="not_installed")
        return record.to_state_dict()

    @app.get("/check", response_model=ActionResult)
    def check():
        result = orch.check()
        return ActionResult(ok=True, detail=result.reason.value, data=result.to_dict())

    @app.post("/setup", response_model=ActionResult)
    def setup(force: bool = Query(default=False, description="If true: reinstall even if up to date")):
        try:
            installed = orch.setup(force=force)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return ActionResult(ok=True, detail="installed" if installed else "up_to_date")

    return app
