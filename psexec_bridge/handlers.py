"""
PsExec Bridge - Operation handlers.

Each operation is one pipeline: validate -> remote command -> parse or
stream -> release artifacts. Nothing is shared between requests except
the artifact directories, and those are partitioned by generated names.
"""
import logging
import ntpath
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Tuple

from . import paths
from .artifacts import Artifact, ArtifactManager, Role
from .command_builder import contents_of
from .config import BridgeConfig
from .errors import (
    BridgeError, CopyMissing, ExecutionFailed, InvalidName, MissingArgument,
    PathNotFound, PayloadTooLarge, UnsupportedType,
)
from .executor import RemoteCommandRunner
from .listing import find_entry, parse_directory_listing
from .models import (
    DeleteResponse, FileInfoResponse, ListResponse, MkdirResponse, PreviewResponse,
    RenameResponse, SearchResponse, SearchResult, UploadedFile, UploadResponse,
)

logger = logging.getLogger(__name__)

# ─── Preview allowlists ───────────────────────────────────────────────────────

TEXT_EXTENSIONS = frozenset({
    "txt", "md", "json", "xml", "csv", "log",
    "js", "jsx", "ts", "tsx", "html", "css", "py", "java", "c", "cpp", "cs",
})
BINARY_EXTENSIONS = frozenset({
    "jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "pdf",
})
TRUNCATION_NOTICE = "...\n\n[File truncated due to size]"

# dir exits 1 when a search pattern matches nothing
SEARCH_OK_CODES = (0, 1)
COPY_CHUNK = 1024 * 1024


@dataclass
class StagedDownload:
    artifact: Artifact
    filename: str


class FileOperations:
    def __init__(self, config: BridgeConfig, runner: RemoteCommandRunner,
                 artifacts: ArtifactManager):
        self.config = config
        self.runner = runner
        self.artifacts = artifacts

    # ─── Read operations ──────────────────────────────────────────────────────

    def list_directory(self, raw_path: Optional[str]) -> ListResponse:
        path = paths.validate_path(raw_path or self.config.default_path)
        output = self.runner.run("list", {"path": path}, capture=True).captured_output
        try:
            items = parse_directory_listing(output)
        except Exception as e:
            logger.exception("Listing for %s could not be parsed", path)
            return ListResponse(path=path, items=[], raw_output=output, parse_error=str(e))
        return ListResponse(path=path, items=items, raw_output=output)

    def search(self, query: Optional[str], raw_path: Optional[str]) -> SearchResponse:
        fragment = paths.validate_query(query)
        root = paths.validate_path(raw_path or self.config.default_path)
        pattern = paths.join(root, f"*{fragment}*")

        output = self.runner.run(
            "search", {"pattern": pattern}, capture=True, ok_codes=SEARCH_OK_CODES
        ).captured_output

        results = []
        prefix = root.rstrip("\\").lower()
        for line in output.splitlines():
            found = line.strip()
            if not found:
                continue
            relative = found
            if found.lower().startswith(prefix):
                relative = found[len(prefix):].lstrip("\\")
            results.append(SearchResult(
                name=ntpath.basename(found),
                path=found,
                is_directory=not ntpath.splitext(found)[1],
                relative_path=relative,
            ))
        return SearchResponse(query=fragment, path=root, results=results, count=len(results))

    def file_info(self, raw_path: Optional[str]) -> FileInfoResponse:
        path = paths.validate_path(raw_path)
        output = self.runner.run("fileinfo", {"path": path}, capture=True).captured_output
        return FileInfoResponse(file_info=find_entry(output, path), raw_output=output)

    def download(self, raw_path: Optional[str]) -> StagedDownload:
        """Copy the remote file into staging. The caller must release the artifact."""
        path = paths.validate_path(raw_path, what="file path")
        artifact = self.artifacts.allocate(Role.DOWNLOAD)
        try:
            self._copy_in(path, artifact)
        except BaseException:
            self.artifacts.release(artifact)
            raise
        return StagedDownload(artifact=artifact, filename=paths.basename(path))

    def preview(self, raw_path: Optional[str]) -> PreviewResponse:
        path = paths.validate_path(raw_path, what="file path")
        name = paths.basename(path)
        ext = paths.extension(name)
        if ext not in TEXT_EXTENSIONS and ext not in BINARY_EXTENSIONS:
            raise UnsupportedType(details=f"Extension {ext or '(none)'!r} is not previewable")

        artifact = self.artifacts.allocate(Role.PREVIEW, ext)
        keep = False
        try:
            self._copy_in(path, artifact)
            if ext in BINARY_EXTENSIONS:
                keep = True
                return PreviewResponse(
                    type="binary", url=self.artifacts.preview_url(artifact),
                    extension=ext, name=name,
                )
            content = artifact.path.read_text(encoding="utf-8", errors="replace")
            limit = self.config.preview_max_chars
            truncated = len(content) > limit
            if truncated:
                content = content[:limit] + TRUNCATION_NOTICE
            return PreviewResponse(
                type="text", content=content, truncated=truncated,
                extension=ext, name=name,
            )
        finally:
            if not keep:
                self.artifacts.release(artifact)

    def discard_preview(self, name: str) -> bool:
        artifact = self.artifacts.preview_artifact(name)
        if artifact is None:
            return False
        self.artifacts.release(artifact)
        return True

    # ─── Write operations ─────────────────────────────────────────────────────

    def upload(self, files: List[Tuple[str, BinaryIO]], raw_target: Optional[str]) -> UploadResponse:
        if not files:
            raise MissingArgument("No files uploaded")
        if not raw_target:
            raise MissingArgument("Target directory is required")
        target = paths.validate_path(raw_target, what="target directory")
        names = [self._upload_name(filename) for filename, _ in files]

        self.runner.run("ensure_dir", {"contents": contents_of(target), "path": target})

        results = []
        for name, (_, stream) in zip(names, files):
            target_path = paths.join(target, name)
            try:
                size = self._upload_one(stream, target_path)
            except BridgeError as e:
                if self.config.upload_fail_fast:
                    raise
                logger.warning("Upload of %s failed: %s", target_path, e.message)
                results.append(UploadedFile(
                    filename=name, target_path=target_path, size=0,
                    error=e.details or e.message,
                ))
                continue
            results.append(UploadedFile(filename=name, target_path=target_path, size=size))

        failed = sum(1 for r in results if r.error)
        if failed:
            message = f"{len(results) - failed} of {len(results)} file(s) uploaded"
        else:
            message = f"{len(results)} file(s) uploaded successfully"
        return UploadResponse(success=failed == 0, message=message, files=results)

    def make_directory(self, raw_path: Optional[str], name: Optional[str]) -> MkdirResponse:
        if not raw_path or not name:
            raise MissingArgument("Directory path and name are required")
        parent = paths.validate_path(raw_path)
        name = paths.validate_name(name, what="directory name")
        full = paths.validate_path(paths.join(parent, name))
        self.runner.run("mkdir", {"path": full})
        return MkdirResponse(success=True, message="Directory created successfully", path=full)

    def rename(self, raw_path: Optional[str], new_name: Optional[str]) -> RenameResponse:
        if not raw_path or not new_name:
            raise MissingArgument("Path and new name are required")
        old = paths.validate_path(raw_path)
        new_name = paths.validate_name(new_name, what="new name")
        new_path = paths.join(paths.parent(old), new_name)
        self.runner.run("rename", {"path": old, "name": new_name})
        return RenameResponse(
            success=True, message="Item renamed successfully", old_path=old, new_path=new_path,
        )

    def delete(self, raw_path: Optional[str]) -> DeleteResponse:
        if not raw_path:
            raise MissingArgument("Path is required")
        path = paths.validate_path(raw_path)
        kind = self.probe(path)
        if kind == "directory":
            self.runner.run("rmdir", {"path": path})
        else:
            self.runner.run("del", {"path": path})
        return DeleteResponse(
            success=True,
            message=f"{kind.capitalize()} deleted successfully",
            path=path,
            kind=kind,
        )

    def probe(self, path: paths.ValidatedPath) -> str:
        """Ask the remote host whether ``path`` is a directory or a file."""
        output = self.runner.run(
            "probe", {"contents": contents_of(path), "path": path}, capture=True
        ).captured_output
        answer = output.strip().lower()
        if answer == "missing":
            raise PathNotFound(details=path)
        if answer not in ("directory", "file"):
            raise ExecutionFailed("Unexpected probe output", stderr_text=output)
        return answer

    # ─── Helpers ──────────────────────────────────────────────────────────────

    def _copy_in(self, source: paths.ValidatedPath, artifact: Artifact) -> None:
        self.runner.run("copy", {"source": source, "dest": artifact.path})
        if not artifact.path.exists():
            raise CopyMissing(details=source)

    def _upload_name(self, filename: Optional[str]) -> str:
        name = ntpath.basename((filename or "").replace("/", "\\"))
        if not name:
            raise InvalidName("Uploaded file has no name")
        return paths.validate_name(name, what="file name")

    def _upload_one(self, stream: BinaryIO, target_path: str) -> int:
        with self.artifacts.managed(Role.UPLOAD, paths.extension(target_path)) as staged:
            size = self._stage(stream, staged)
            self.runner.run("copy", {"source": staged.path, "dest": target_path})
        logger.info("Uploaded %d byte(s) to %s", size, target_path)
        return size

    def _stage(self, stream: BinaryIO, staged: Artifact) -> int:
        limit = self.config.upload_max_bytes
        written = 0
        with open(staged.path, "wb") as out:
            while True:
                chunk = stream.read(COPY_CHUNK)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise PayloadTooLarge(details=f"Limit is {limit} bytes")
                out.write(chunk)
        return written
