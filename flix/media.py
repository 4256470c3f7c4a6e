"""Chunked video uploads and byte-range streaming from the media folders."""
from __future__ import annotations
import logging
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator
from django.conf import settings
from django.core.files.uploadedfile import UploadedFile
from django.http import HttpResponse, StreamingHttpResponse
from .backend_log import log_backend_action
from .models import Movie, media_folder_for

logger = logging.getLogger(__name__)

STREAM_BLOCK_SIZE = 64 * 1024
VIDEO_CONTENT_TYPE = "video/mp4"
RANGE_PATTERN = re.compile(r"bytes=(\d*)-(\d*)")
UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9._-]")


class RangeNotSatisfiable(ValueError):
    """The requested byte range does not overlap the file."""


def safe_identifier(value: str) -> str:
    """Reduce ``value`` to characters that are safe inside a file name."""

    cleaned = UNSAFE_CHARACTERS.sub("_", str(value or "")).strip("._")
    if not cleaned:
        raise ValueError("Missing parameters")
    return cleaned


def temp_folder(base: Path) -> Path:
    return base / "temp"


@dataclass
class ChunkResult:
    chunk_index: int
    completed: bool
    file_path: Path | None = None
    video_id: str | None = None


class ChunkedUpload:
    """One file arriving as ``total_chunks`` numbered pieces."""

    def __init__(
        self,
        file_id: str,
        file_name: str,
        total_chunks: int,
        video_type: str = Movie.Type.MOVIE,
        generated_id: str | None = None,
    ) -> None:
        if total_chunks < 1:
            raise ValueError("Invalid chunk count")
        extension = Path(file_name or "").suffix.lower()
        if extension not in settings.VIDEO_EXTENSIONS:
            raise ValueError("Unsupported file type")
        self.file_id = safe_identifier(file_id)
        self.generated_id = safe_identifier(generated_id or file_id)
        self.extension = extension
        self.total_chunks = total_chunks
        self.base = media_folder_for(video_type)

    def chunk_path(self, index: int) -> Path:
        return temp_folder(self.base) / f"{self.file_id}_{index}"

    @property
    def target_path(self) -> Path:
        return self.base / f"{self.generated_id}{self.extension}"

    def is_complete(self) -> bool:
        return all(self.chunk_path(index).exists() for index in range(self.total_chunks))

    def save_chunk(self, index: int, chunk: UploadedFile) -> ChunkResult:
        if not 0 <= index < self.total_chunks:
            raise ValueError("Invalid chunk index")
        path = self.chunk_path(index)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as destination:
            for piece in chunk.chunks():
                destination.write(piece)

        if not self.is_complete():
            return ChunkResult(chunk_index=index, completed=False)

        target = self.assemble()
        log_backend_action(
            "upload_completed",
            {"fileId": self.file_id, "videoId": self.generated_id, "chunks": self.total_chunks},
            "info",
        )
        return ChunkResult(chunk_index=index, completed=True, file_path=target, video_id=self.generated_id)

    def assemble(self) -> Path:
        """Concatenate the chunks in index order and remove them."""

        target = self.target_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as destination:
            for index in range(self.total_chunks):
                with self.chunk_path(index).open("rb") as source:
                    shutil.copyfileobj(source, destination)
        for index in range(self.total_chunks):
            self.chunk_path(index).unlink(missing_ok=True)
        return target


def store_upload(uploaded: UploadedFile, video_type: str = Movie.Type.MOVIE) -> Path:
    """Save a complete uploaded file into the media folder of ``video_type``."""

    original = Path(uploaded.name or "")
    extension = original.suffix.lower()
    if extension not in settings.VIDEO_EXTENSIONS:
        raise ValueError("Unsupported file type")
    base = media_folder_for(video_type)
    base.mkdir(parents=True, exist_ok=True)
    target = base / f"{safe_identifier(original.stem)}{extension}"
    with target.open("wb") as destination:
        for piece in uploaded.chunks():
            destination.write(piece)
    log_backend_action("upload_single", {"file": target.name}, "info")
    return target


def cleanup_temp_folders(max_age_minutes: int | None = None) -> list[Path]:
    """Delete upload chunks older than ``max_age_minutes`` and return them."""

    if max_age_minutes is None:
        max_age_minutes = settings.UPLOAD_TEMP_MAX_AGE_MINUTES
    cutoff = time.time() - max_age_minutes * 60
    removed: list[Path] = []
    for title_type in (Movie.Type.MOVIE, Movie.Type.SERIE):
        folder = temp_folder(media_folder_for(title_type))
        if not folder.is_dir():
            continue
        for entry in folder.iterdir():
            if entry.is_file() and entry.stat().st_mtime < cutoff:
                entry.unlink()
                removed.append(entry)
    if removed:
        log_backend_action("upload_temp_cleanup", {"removed": len(removed)}, "info")
    return removed


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def parse_range(header: str, size: int) -> ByteRange:
    """Parse a single ``bytes=start-end`` range against a file of ``size`` bytes."""

    match = RANGE_PATTERN.fullmatch(header.strip())
    if not match or match.group(1) == match.group(2) == "":
        raise RangeNotSatisfiable(header)
    first, last = match.groups()

    if first == "":
        suffix = int(last)
        if suffix == 0:
            raise RangeNotSatisfiable(header)
        start, end = max(size - suffix, 0), size - 1
    else:
        start = int(first)
        end = int(last) if last else size - 1
        end = min(end, size - 1)

    if start >= size or start > end:
        raise RangeNotSatisfiable(header)
    return ByteRange(start, end)


def iter_file(path: Path, start: int, length: int, block_size: int = STREAM_BLOCK_SIZE) -> Iterator[bytes]:
    with path.open("rb") as handle:
        handle.seek(start)
        remaining = length
        while remaining > 0:
            data = handle.read(min(block_size, remaining))
            if not data:
                break
            remaining -= len(data)
            yield data


def stream_file(path: Path, range_header: str | None, limit: int | None = None) -> HttpResponse:
    """Build a full (200) or partial (206) response for ``path``.

    ``limit`` caps the visible size of the file, as for billboard previews.
    """

    size = path.stat().st_size
    if limit is not None:
        size = min(size, limit)

    if not range_header:
        response = StreamingHttpResponse(iter_file(path, 0, size), content_type=VIDEO_CONTENT_TYPE)
        response["Content-Length"] = str(size)
        response["Accept-Ranges"] = "bytes"
        return response

    try:
        byte_range = parse_range(range_header, size)
    except RangeNotSatisfiable:
        response = HttpResponse(status=416)
        response["Content-Range"] = f"bytes */{size}"
        return response

    response = StreamingHttpResponse(
        iter_file(path, byte_range.start, byte_range.length), status=206, content_type=VIDEO_CONTENT_TYPE
    )
    response["Content-Range"] = f"bytes {byte_range.start}-{byte_range.end}/{size}"
    response["Accept-Ranges"] = "bytes"
    response["Content-Length"] = str(byte_range.length)
    return response
