from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
import os
import logging

from client_mod_routes import router as client_mods_router
from config import APP_NAME, APP_VERSION, LOG_LEVEL

logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME, version=APP_VERSION)

# ---- CORS Configuration ----
_origins_env = os.getenv("ALLOWED_ORIGINS", "*")
# Strip surrounding quotes that may appear due to docker-compose quoting (e.g. "http://a,http://b")
if (_origins_env.startswith('"') and _origins_env.endswith('"')) or (_origins_env.startswith("'") and _origins_env.endswith("'")):
    _origins_env = _origins_env[1:-1]
_origins_regex_env = os.getenv("ALLOWED_ORIGIN_REGEX")
# Priority: explicit regex > explicit list > wildcard fallback
if _origins_regex_env:
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=_origins_regex_env,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=600,
    )
    logger.info(f"[CORS] Configured with allow_origin_regex={_origins_regex_env}")
elif _origins_env.strip() == "*":
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=600,
    )
    logger.info("[CORS] Configured with allow_origin_regex=.*")
else:
    allow_list = [o.strip().strip('"').strip("'") for o in _origins_env.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=600,
    )
    logger.info(f"[CORS] Configured with allow_origins={allow_list}")

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(client_mods_router)
# /api alias so a UI served from the same origin can keep all calls under one prefix
app.include_router(client_mods_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"{APP_NAME} {APP_VERSION} ready")


@app.get("/health")
@app.get("/api/health")
async def health():
    return {"status": "ok", "app": APP_NAME, "version": APP_VERSION}
