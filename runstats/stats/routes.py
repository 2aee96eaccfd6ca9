"""HTTP routes exposing registry snapshots and introspection attributes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from runstats.errors import UnknownAttributeError
from runstats.stats.attributes import StatsAttributes
from runstats.stats.host import HostStats
from runstats.stats.registry import StatsRegistry
from runstats.stats.render import StatsSnapshot

router = APIRouter()


def get_registry(request: Request) -> StatsRegistry:
    registry: StatsRegistry | None = getattr(request.app.state, "stats", None)
    if registry is None:
        raise RuntimeError("Stats registry not configured on application state")
    return registry


def get_host_stats(request: Request) -> HostStats | None:
    return getattr(request.app.state, "host_stats", None)


@router.get("")
def get_stats(
    reset: bool = False,
    registry: StatsRegistry = Depends(get_registry),
    host_stats: HostStats | None = Depends(get_host_stats),
) -> JSONResponse:
    snapshot = StatsSnapshot.collect(registry, reset, host_stats)
    return JSONResponse({"ok": True, "data": snapshot.json_payload()})


@router.get("/text", response_class=PlainTextResponse)
def get_stats_text(
    reset: bool = False,
    registry: StatsRegistry = Depends(get_registry),
    host_stats: HostStats | None = Depends(get_host_stats),
) -> PlainTextResponse:
    snapshot = StatsSnapshot.collect(registry, reset, host_stats)
    return PlainTextResponse("\n".join(snapshot.lines()) + "\n")


@router.get("/attributes")
def list_attributes(registry: StatsRegistry = Depends(get_registry)) -> JSONResponse:
    attributes = StatsAttributes(registry)
    data = [info._asdict() for info in attributes.describe()]
    return JSONResponse({"ok": True, "data": data})


@router.get("/attributes/{name}")
def get_attribute(name: str, registry: StatsRegistry = Depends(get_registry)) -> JSONResponse:
    try:
        value = StatsAttributes(registry).get_attribute(name)
    except UnknownAttributeError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return JSONResponse({"ok": True, "data": {"name": name, "value": value}})
