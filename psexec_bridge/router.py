"""
PsExec Bridge - FastAPI router.
Mount with:
    from psexec_bridge.router import router
    app.include_router(router)

Endpoints:
    POST   /auth/login
    GET    /auth/verify
    GET    /list
    GET    /search
    GET    /download
    GET    /preview
    DELETE /preview/{name}
    GET    /fileinfo
    POST   /upload
    POST   /mkdir
    POST   /rename
    DELETE /delete
    GET    /health
"""
import urllib.parse
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from . import __version__
from .artifacts import Artifact, ArtifactManager
from .auth import AuthCredential, require_user
from .errors import MissingArgument, PathNotFound
from .handlers import FileOperations
from .models import (
    DeleteRequest, DeleteResponse, FileInfoResponse, ListResponse, LoginRequest,
    LoginResponse, MkdirRequest, MkdirResponse, PreviewResponse, RenameRequest,
    RenameResponse, SearchResponse, UploadResponse,
)

router = APIRouter()

DOWNLOAD_CHUNK = 64 * 1024


def _ops(request: Request) -> FileOperations:
    return request.app.state.ops


def _content_disposition(filename: str) -> str:
    try:
        filename.encode("ascii")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{urllib.parse.quote(filename, safe='')}"


def _stream_and_release(artifacts: ArtifactManager, artifact: Artifact):
    # finally also runs when the client disconnects and the generator is closed
    try:
        with artifact.path.open("rb") as f:
            while True:
                chunk = f.read(DOWNLOAD_CHUNK)
                if not chunk:
                    break
                yield chunk
    finally:
        artifacts.release(artifact)


# ─── Auth ─────────────────────────────────────────────────────────────────────

@router.post("/auth/login", response_model=LoginResponse)
def login(req: LoginRequest, request: Request):
    token = request.app.state.auth.login(req.username, req.password)
    return LoginResponse(token=token, username=req.username)


@router.get("/auth/verify")
def verify(user: AuthCredential = Depends(require_user)):
    return {"valid": True, "user": user.to_dict()}


@router.get("/health")
def health():
    return {"status": "ok", "version": __version__}


# ─── Read operations ──────────────────────────────────────────────────────────

@router.get("/list", response_model=ListResponse)
def list_directory(request: Request, path: Optional[str] = Query(None),
                   user: AuthCredential = Depends(require_user)):
    return _ops(request).list_directory(path)


@router.get("/search", response_model=SearchResponse)
def search(request: Request, query: Optional[str] = Query(None), path: Optional[str] = Query(None),
           user: AuthCredential = Depends(require_user)):
    return _ops(request).search(query, path)


@router.get("/fileinfo", response_model=FileInfoResponse)
def file_info(request: Request, path: Optional[str] = Query(None),
              user: AuthCredential = Depends(require_user)):
    return _ops(request).file_info(path)


@router.get("/download")
def download(request: Request, path: Optional[str] = Query(None),
             user: AuthCredential = Depends(require_user)):
    ops = _ops(request)
    staged = ops.download(path)
    return StreamingResponse(
        _stream_and_release(ops.artifacts, staged.artifact),
        media_type="application/octet-stream",
        headers={"Content-Disposition": _content_disposition(staged.filename)},
        background=BackgroundTask(ops.artifacts.release, staged.artifact),
    )


@router.get("/preview", response_model=PreviewResponse, response_model_exclude_none=True)
def preview(request: Request, path: Optional[str] = Query(None),
            user: AuthCredential = Depends(require_user)):
    return _ops(request).preview(path)


@router.delete("/preview/{name}")
def discard_preview(name: str, request: Request, user: AuthCredential = Depends(require_user)):
    if not _ops(request).discard_preview(name):
        raise PathNotFound("Preview not found", details=name)
    return {"success": True, "name": name}


# ─── Write operations ─────────────────────────────────────────────────────────

@router.post("/upload", response_model=UploadResponse, response_model_exclude_none=True)
def upload(request: Request,
           files: Optional[List[UploadFile]] = File(None),
           target_directory: Optional[str] = Form(None, alias="targetDirectory"),
           user: AuthCredential = Depends(require_user)):
    if not files:
        raise MissingArgument("No files uploaded")
    return _ops(request).upload([(f.filename, f.file) for f in files], target_directory)


@router.post("/mkdir", response_model=MkdirResponse)
def make_directory(req: MkdirRequest, request: Request,
                   user: AuthCredential = Depends(require_user)):
    return _ops(request).make_directory(req.path, req.name)


@router.post("/rename", response_model=RenameResponse)
def rename(req: RenameRequest, request: Request,
           user: AuthCredential = Depends(require_user)):
    return _ops(request).rename(req.path, req.new_name)


@router.delete("/delete", response_model=DeleteResponse)
def delete(request: Request, req: Optional[DeleteRequest] = None,
           user: AuthCredential = Depends(require_user)):
    return _ops(request).delete(req.path if req else None)
