# apps/api/main.py
from __future__ import annotations

import logging
from typing import Callable, Iterable

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

import config
from csrf import issue_csrf
from errors import AppError
from health import collect_health_status
from routes_homefeed import router as homefeed_router
from routes_interactions import router as interactions_router
from routes_uploads import router as uploads_router
from routes_users import router as users_router
from routes_videos import router as videos_router
from schemas import CsrfOut
from storage import ensure_bucket

logging.basicConfig(
    level=config.settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Reels API")

log = logging.getLogger("api.main")


StartupTask = tuple[str, Callable[[], None], bool]

STARTUP_TASKS: tuple[StartupTask, ...] = (
    ("object_storage", ensure_bucket, False),
)


def _run_startup_tasks(tasks: Iterable[StartupTask]) -> None:
    for name, task, optional in tasks:
        try:
            task()
            log.debug("Startup task '%s' completed", name)
        except Exception as exc:
            if optional:
                log.info("Optional startup task '%s' failed: %s", name, exc)
            else:
                log.warning("Startup task '%s' failed: %s", name, exc)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(interactions_router)
app.include_router(uploads_router)
app.include_router(videos_router)
app.include_router(users_router)
app.include_router(homefeed_router)


@app.exception_handler(AppError)
async def _app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log.warning("request_failed path=%s status=%d: %s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(HTTPException)
async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("startup")
def _startup() -> None:
    _run_startup_tasks(STARTUP_TASKS)


@app.get("/csrf", response_model=CsrfOut)
def csrf_token(response: Response):
    return CsrfOut(csrf_token=issue_csrf(response))


@app.get("/healthz")
async def healthz():
    return await collect_health_status()


# Run: uvicorn main:app --reload --port 8000
