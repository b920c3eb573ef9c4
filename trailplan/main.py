from __future__ import annotations

from typing import Any, Dict

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from trailplan.agents.destination_gate import check_destination
from trailplan.config import get_allowed_origins
from trailplan.orchestrator import PlanFailure, plan_trip
from trailplan.schemas import DestinationRequest, RouteRequest, TripRequest
from trailplan.tools.polyline import decode_polyline
from trailplan.tools.routing import RouteFailure, RoutingClient

app = FastAPI(title="Trailplan Bike & Trek API")

# Local UIs (Vite dev server, static builds) call the API cross-origin; scope
# this with TRAILPLAN_ALLOWED_ORIGINS when deploying.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validated(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc


@app.post("/api/trip/plan")
async def api_plan(payload: Dict[str, Any] = Body(...)):
    """Vet the destination, then run the generate/validate loop."""
    trip_req: TripRequest = _validated(TripRequest, payload)

    destination = await check_destination(trip_req.country, trip_req.city)
    if not destination.valid:
        return JSONResponse(
            status_code=400,
            content={"success": False, "stage": destination.stage, "reason": destination.reason},
        )

    result = await plan_trip(trip_req)
    body = result.to_payload()
    body["originalRequest"] = trip_req.model_dump(mode="json", by_alias=True)
    if isinstance(result, PlanFailure):
        return JSONResponse(status_code=502, content=body)
    return body


@app.post("/api/trip/destination")
async def api_destination(payload: Dict[str, Any] = Body(...)):
    dest_req: DestinationRequest = _validated(DestinationRequest, payload)
    destination = await check_destination(dest_req.country, dest_req.city)
    if not destination.valid:
        return JSONResponse(
            status_code=400,
            content={"valid": False, "stage": destination.stage, "reason": destination.reason},
        )
    return {
        "valid": True,
        "countryCode": destination.country_code,
        "coordinates": list(destination.coordinates) if destination.coordinates else None,
    }


@app.post("/api/trip/ors-route")
async def api_route(payload: Dict[str, Any] = Body(...)):
    """Route a single segment; the map draws the decoded path."""
    route_req: RouteRequest = _validated(RouteRequest, payload)
    result = await RoutingClient().fetch_route(route_req.start, route_req.end, route_req.profile)
    if isinstance(result, RouteFailure):
        raise HTTPException(status_code=502, detail=result.reason)
    try:
        path = [list(point) for point in decode_polyline(result.geometry)]
    except ValueError as exc:
        raise HTTPException(status_code=502, detail="routing geometry could not be decoded") from exc
    return {
        "distanceMeters": result.distance_meters,
        "durationSeconds": result.duration_seconds,
        "geometry": result.geometry,
        "path": path,
    }


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}
