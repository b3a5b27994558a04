"""HTTP control surface for the web UI."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import relay
from .config import ConfigStore
from .deployer import Deployer
from .errors import DeployError, RelayError, UpstreamError
from .models import LOCAL_TARGET, Config, DeployStatus, Target

logger = logging.getLogger(__name__)

MASKED_KEY_PLACEHOLDER = "__MASKED__"
MASK_KEEP = 8


class TargetRequest(BaseModel):
    target_name: str


class ApiResponse(BaseModel):
    status: str = "ok"
    message: str = ""


def mask_api_key(key: str) -> str:
    # short keys get a fixed sentinel so a truncated value is never saved back
    if len(key) > MASK_KEEP:
        return key[:MASK_KEEP] + "*" * (len(key) - MASK_KEEP)
    if key:
        return MASKED_KEY_PLACEHOLDER
    return key


def is_masked_key(key: str) -> bool:
    if key == MASKED_KEY_PLACEHOLDER:
        return True
    star = key.find("*")
    if star < 1:
        return False
    return key[star:] == "*" * (len(key) - star)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def _find_target(cfg: Config, name: str) -> Target:
    target = cfg.find_target(name)
    if target is None:
        raise HTTPException(status_code=404, detail=f"target not found: {name}")
    return target


def create_app(
    store: ConfigStore,
    deployer: Deployer | None = None,
    relay_client: httpx.Client | None = None,
) -> FastAPI:
    app = FastAPI(title="claude-relay")
    app.state.store = store
    app.state.deployer = deployer or Deployer()

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"invalid request: {where + ': ' if where else ''}{first.get('msg', 'malformed JSON')}"
        return _error(400, message)

    @app.exception_handler(RelayError)
    async def _relay_error(request: Request, exc: RelayError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(502 if isinstance(exc, UpstreamError) else 500, str(exc))

    api = APIRouter(prefix="/api")

    # --- config ---

    @api.get("/config")
    def get_config() -> dict:
        cfg = store.load()
        cfg.api_key = mask_api_key(cfg.api_key)
        return cfg.model_dump(mode="json")

    @api.put("/config", response_model=ApiResponse)
    def put_config(cfg: Config) -> ApiResponse:
        if is_masked_key(cfg.api_key):
            cfg.api_key = store.load().api_key
        store.save(cfg)
        return ApiResponse()

    # --- models ---

    @api.get("/models/detect")
    def detect_models() -> dict:
        cfg = store.load()
        if not cfg.base_url or not cfg.api_key:
            raise HTTPException(status_code=400, detail="base_url and api_key must be configured first")
        found = relay.fetch_models(cfg.base_url, cfg.api_key, client=relay_client)
        opus, sonnet, haiku = relay.suggest_defaults(found)
        return {
            "models": [m.model_dump() for m in found],
            "suggest_mappings": [m.model_dump() for m in relay.suggest_mappings(found)],
            "suggest_opus": opus,
            "suggest_sonnet": sonnet,
            "suggest_haiku": haiku,
        }

    # --- deploy ---

    @api.post("/deploy", response_model=ApiResponse)
    def deploy(req: TargetRequest) -> ApiResponse:
        cfg = store.load()
        target = _find_target(cfg, req.target_name)
        try:
            app.state.deployer.deploy(target, cfg)
        except DeployError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return ApiResponse(message=f"deployed to {target.name}")

    @api.post("/deploy/status", response_model=DeployStatus)
    def deploy_status(req: TargetRequest) -> DeployStatus:
        target = _find_target(store.load(), req.target_name)
        return app.state.deployer.status(target)

    @api.post("/deploy/restore", response_model=ApiResponse)
    def deploy_restore(req: TargetRequest) -> ApiResponse:
        target = _find_target(store.load(), req.target_name)
        try:
            app.state.deployer.restore(target)
        except DeployError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return ApiResponse(message=f"restored {target.name}")

    # --- targets ---

    @api.get("/targets")
    def get_targets() -> list[dict]:
        return [t.model_dump(mode="json") for t in store.load().targets]

    @api.post("/targets", status_code=201, response_model=ApiResponse)
    def add_target(target: Target) -> ApiResponse:
        cfg = store.load()
        if cfg.find_target(target.name) is not None:
            raise HTTPException(status_code=409, detail=f"target already exists: {target.name}")
        cfg.targets.append(target)
        store.save(cfg)
        return ApiResponse()

    @api.delete("/targets/{name}", response_model=ApiResponse)
    def delete_target(name: str) -> ApiResponse:
        if name == LOCAL_TARGET:
            raise HTTPException(status_code=400, detail="cannot delete local target")
        cfg = store.load()
        if cfg.find_target(name) is None:
            raise HTTPException(status_code=404, detail="target not found")
        cfg.targets = [t for t in cfg.targets if t.name != name]
        store.save(cfg)
        return ApiResponse()

    app.include_router(api)
    return app
