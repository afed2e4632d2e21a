# main.py
# FastAPI app exposing POST /plan + POST /plan/edit - distributes selected places into a day-by-day route

import os
import logging
import asyncio
from functools import partial
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from models import EditRequest, PlanRequest, PlanResponse, TravelLeg, TravelMode
from utils import TTLCache, build_windows
from planner import Itinerary, TravelTimeOracle, build_schedule
from providers.routes import fetch_route

load_dotenv()

app = FastAPI(title="Trip Planner API", version="0.5.0")
# CORS origins
FRONTEND_LOCAL = "http://localhost:5173"
FRONTEND_PROD = os.getenv("FRONTEND_PROD", "")

origins = [FRONTEND_LOCAL]
if FRONTEND_PROD:
    origins.append(FRONTEND_PROD)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# logging
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("trip-planner")

# config / env
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")

# routes http timeout (seconds)
ROUTES_TIMEOUT_S = float(os.getenv("ROUTES_TIMEOUT_S", "20"))
# how long /plan waits for leg annotation before answering with "computing" legs
ANNOTATE_TIMEOUT_S = float(os.getenv("ANNOTATE_TIMEOUT_S", "15"))
ROUTE_CACHE_TTL_S = int(os.getenv("ROUTE_CACHE_TTL_S", "3600"))

if not GOOGLE_MAPS_API_KEY:
    log.warning("GOOGLE_MAPS_API_KEY not set, travel times will be estimated")

# per process leg cache shared by every plan
oracle = TravelTimeOracle(
    fetch=partial(fetch_route, api_key=GOOGLE_MAPS_API_KEY, timeout=ROUTES_TIMEOUT_S),
    cache=TTLCache(ttl_seconds=ROUTE_CACHE_TTL_S),
)

# global JSON error handling
# - HTTPException -> { "error": <detail> }
# - engine contract breach (ValueError / IndexError) -> 400 { "error": <message> }
# - any other exception -> { "error": "Server error" }
@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    log.warning("HTTP %s: %s", exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

@app.exception_handler(ValueError)
@app.exception_handler(IndexError)
async def bad_input_handler(request: Request, exc: Exception):
    log.warning("rejected %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # log stack once. do not leak details to client
    log.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"error": "Server error"})

# timeout wrapper for slow awaitables
# returns (result, errstr) and never raises
async def run_with_timeout(coro, seconds: float, label: str):
    try:
        result = await asyncio.wait_for(coro, timeout=seconds)
        return result, None
    except asyncio.TimeoutError:
        msg = f"{label} timed out after {seconds}s"
        log.warning(msg)
        return None, msg
    except Exception as e:
        msg = f"{label} error: {e}"
        log.warning(msg)
        return None, msg

async def finish(itinerary: Itinerary) -> PlanResponse:
    """Annotate legs, wait a bounded time, answer with whatever has resolved."""
    itinerary.annotate(oracle)
    await run_with_timeout(itinerary.wait_for_legs(), ANNOTATE_TIMEOUT_S, "routes")
    resp = itinerary.snapshot()
    # legs still in flight are abandoned; the client shows them as computing
    itinerary.discard()
    return resp

def _required(value, name: str, action: str):
    if value is None:
        raise ValueError(f"{name} is required for {action}")
    return value

def apply_edit(itinerary: Itinerary, req: EditRequest) -> None:
    if req.action == "delete":
        itinerary.delete_visit(req.dayIndex, _required(req.position, "position", "delete"))
    elif req.action == "swap":
        itinerary.swap_visits(
            req.dayIndex,
            _required(req.position, "position", "swap"),
            _required(req.otherPosition, "otherPosition", "swap"),
        )
    elif req.action == "move":
        itinerary.move_visit(
            req.dayIndex,
            _required(req.position, "position", "move"),
            _required(req.direction, "direction", "move"),
        )
    elif req.action == "stay":
        itinerary.update_stay(
            req.dayIndex,
            _required(req.position, "position", "stay"),
            _required(req.minutes, "minutes", "stay"),
        )
    elif req.action == "add":
        itinerary.add_visit(req.dayIndex, _required(req.place, "place", "add").to_place())

@app.post("/plan", response_model=PlanResponse)
async def create_plan(req: PlanRequest):
    """
    Distribute the selected places over the configured days, order each day
    and attach travel legs (estimated where the routing provider fails).
    """
    windows = build_windows(req.windows)
    places = [p.to_place() for p in req.places]
    itinerary = build_schedule(places, req.lodgings, windows, req.mode)
    resp = await finish(itinerary)
    if resp.unplaceable:
        log.info("plan: %d place(s) fit no day: %s", len(resp.unplaceable), ", ".join(resp.unplaceable))
    return resp

@app.post("/plan/edit", response_model=PlanResponse)
async def edit_plan(req: EditRequest):
    """Apply one manual edit; only legs whose endpoints changed are re-resolved."""
    itinerary = Itinerary.from_response(req.plan)
    apply_edit(itinerary, req)
    return await finish(itinerary)

@app.get("/routes/compute", response_model=TravelLeg)
async def compute_route(originLat: float, originLng: float, destLat: float, destLng: float,
                        travelMode: TravelMode = "transit"):
    return await oracle.resolve((originLat, originLng), (destLat, destLng), travelMode)

@app.get("/health")
def health():
    return {"ok": True}
