"""
PsExec Bridge - Application factory.
Wires config, artifact pools, the remote runner and the auth gate into one
FastAPI app. Tests pass their own config and a fake RemoteProcess.
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .artifacts import ArtifactManager
from .auth import AuthGate
from .config import BridgeConfig
from .errors import BridgeError
from .executor import RemoteCommandRunner, RemoteProcess
from .handlers import FileOperations
from .router import router

logger = logging.getLogger(__name__)


async def _sweep_previews_forever(artifacts: ArtifactManager, interval_s: int) -> None:
    while True:
        await asyncio.sleep(interval_s)
        await asyncio.to_thread(artifacts.sweep_previews)


def create_app(config: BridgeConfig, process: Optional[RemoteProcess] = None) -> FastAPI:
    artifacts = ArtifactManager(config)
    artifacts.ensure_dirs()
    runner = RemoteCommandRunner(config, artifacts, process=process)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        artifacts.startup_sweep()
        sweeper = asyncio.create_task(
            _sweep_previews_forever(artifacts, config.preview_sweep_interval_s)
        )
        logger.info("PsExec bridge ready (artifacts in %s)", config.data_dir)
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(title="PsExec File Bridge", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.auth = AuthGate(config)
    app.state.ops = FileOperations(config, runner, artifacts)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Disposition"],
        max_age=86400,
    )

    @app.exception_handler(BridgeError)
    async def bridge_error(request: Request, exc: BridgeError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(router)
    app.mount("/previews", StaticFiles(directory=str(config.previews_dir)), name="previews")
    return app
