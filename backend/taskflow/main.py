import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from . import config
from .auth import LoginRequired
from .database import init_db
from .logging_config import setup_logging
from .routes.auth import router as auth_router
from .routes.tasks import router as tasks_router
from .routes.team import router as team_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    init_db()
    logger.info("TaskFlow started")
    yield


app = FastAPI(title="TaskFlow API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(tasks_router)
app.include_router(team_router)


@app.exception_handler(LoginRequired)
async def login_required(_request: Request, _exc: LoginRequired):
    return RedirectResponse(url=config.LOGIN_URL, status_code=303)

@app.exception_handler(SQLAlchemyError)
async def store_failure(request: Request, exc: SQLAlchemyError):
    logger.error(f"Store failure on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=503, content={"error": "Failed to load data"})


@app.get("/login")
def login_page():
    return {"detail": "Login required", "login": "/api/auth/login", "signup": "/api/auth/signup"}

@app.get("/health")
def health():
    return {"status": "ok"}


def main():
    uvicorn.run("taskflow.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
