import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, AliasChoices

from .config import LOG_LEVEL, MONITORED_CHARGERS
from .errors import InputError
from .fetcher import make_fetcher
from .registry import load_registry
from .service import ChargerStatusService, build_service

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s | %(levelname)s | %(message)s")


class StatusUpdateReq(BaseModel):
    chargerId: str | None = Field(default=None, validation_alias=AliasChoices("chargerId", "evseId"))
    status: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class OverrideEntry(BaseModel):
    chargerId: str
    status: str
    setAt: str
    source: str


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_app(service: ChargerStatusService | None = None, monitored=None) -> FastAPI:
    if service is None:
        service = build_service(load_registry(), make_fetcher())
    chargers = list(MONITORED_CHARGERS if monitored is None else monitored)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await service.close()

    app = FastAPI(title="Charger Status API", version="1.0.0", lifespan=lifespan)
    app.state.service = service

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logging.info(f">>> {request.method} {request.url.path}")
        try:
            response = await call_next(request)
            logging.info(f"<<< {request.method} {request.url.path} -> {response.status_code}")
            return response
        except Exception:
            logging.exception("Handler crashed")
            raise

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Malformed request"})

    @app.get("/health")
    def health():
        return {"ok": True, "time": _now_iso()}

    @app.get("/charger-status")
    async def get_charger_status(
        chargerId: str | None = None,
        bypassCache: bool = False,
        lang: str | None = None,
    ):
        if not chargerId:
            raise HTTPException(status_code=400, detail="Missing chargerId parameter")
        record = await service.resolve(chargerId, bypass_cache=bypassCache, locale=lang)
        return record.to_payload()

    @app.post("/charger-status")
    async def post_charger_status(req: StatusUpdateReq, lang: str | None = None):
        if not req.chargerId or not req.status:
            raise HTTPException(status_code=400, detail="Missing required fields")
        try:
            record = await service.set_status(req.chargerId, req.status, locale=lang)
        except InputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "message": "Status updated successfully", **record.to_payload()}

    def _override_payload(charger_id, entry):
        return OverrideEntry(
            chargerId=charger_id,
            status=entry.status,
            setAt=entry.set_at.isoformat().replace("+00:00", "Z"),
            source=entry.source,
        ).model_dump()

    @app.get("/charger-status/override")
    async def get_override(chargerId: str | None = None):
        if not chargerId:
            raise HTTPException(status_code=400, detail="Missing chargerId parameter")
        entry = service.overrides.get_status(chargerId)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"No manual status for '{chargerId}'")
        return _override_payload(chargerId, entry)

    @app.get("/charger-status/overrides")
    async def list_overrides():
        entries = service.overrides.all()
        return {"overrides": [_override_payload(cid, e) for cid, e in sorted(entries.items())]}

    @app.get("/chargers")
    async def list_chargers(bypassCache: bool = False, lang: str | None = None):
        records = await service.resolve_many(chargers, bypass_cache=bypassCache, locale=lang)
        return {"chargers": [r.to_payload() for r in records], "refreshedAt": _now_iso()}

    return app
