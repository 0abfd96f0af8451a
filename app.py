from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

import config
from models import MAX_REFRESH, EngineStatus, RenderedSnapshot, Settings
from render import render_snapshot
from scheduler import UsageEngine

config.setup_logging()

engine = UsageEngine()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await engine.start()
    try:
        yield
    finally:
        await engine.stop()


app = FastAPI(title="Claude Token Widget", lifespan=lifespan)


class SettingsBody(BaseModel):
    refresh_interval_seconds: float = Field(gt=0, le=MAX_REFRESH.total_seconds())
    pinned_on_top: bool = False


class SettingsView(BaseModel):
    refresh_interval_seconds: float
    pinned_on_top: bool


def _view(settings: Settings) -> SettingsView:
    return SettingsView(
        refresh_interval_seconds=settings.refresh_interval.total_seconds(),
        pinned_on_top=settings.pinned_on_top,
    )


@app.get("/api/status", response_model=EngineStatus)
async def status():
    return engine.report()


@app.get("/api/snapshot", response_model=RenderedSnapshot)
async def snapshot():
    return render_snapshot(engine.snapshot, engine.status)


@app.post("/api/refresh", status_code=202)
async def refresh():
    try:
        engine.trigger_manual_refresh()
    except RuntimeError as exc:
        raise HTTPException(503, str(exc))
    return {"queued": True}


@app.get("/api/settings", response_model=SettingsView)
async def get_settings():
    return _view(engine.get_settings())


@app.put("/api/settings", response_model=SettingsView)
async def put_settings(body: SettingsBody):
    settings = engine.set_settings(Settings(
        refresh_interval=timedelta(seconds=body.refresh_interval_seconds),
        pinned_on_top=body.pinned_on_top,
    ))
    return _view(settings)
