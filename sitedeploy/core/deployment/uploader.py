"""
Upload pipeline: walk a build directory and put every file in a bucket.

One producer walks the tree and feeds UploadTasks into a bounded queue;
a fixed number of workers drain it. Every filesystem call goes through
asyncio.to_thread so a slow disk doesn't stall the event loop.

The walk uses an explicit stack of pending directories rather than
recursion, so very deep trees are limited by memory, not stack depth.

Failures are collected, not raised on the spot: one unreadable file
shouldn't stop the rest of the site going up. Once every worker has
finished, the pipeline raises UploadError if anything failed.

Special entries:
- symlink to a file: uploaded (with the target's bytes) under the link's key
- symlink to a directory: skipped, so a link loop can't make the walk endless
- broken symlink: recorded as a FilesystemError failure
- sockets, FIFOs, devices: skipped
- empty directories: nothing to upload
"""

import asyncio
import logging
import mimetypes
import os
import stat
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import (
    DeploymentError,
    FilesystemError,
    StoreError,
    UploadCancelled,
    UploadError,
)
from .models import DEFAULT_CONTENT_TYPE, UploadFailure, UploadReport, UploadTask
from .storage import ObjectStoreClient

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 8


# ---------------------------------------------------------------------------
# Content types and object keys
# ---------------------------------------------------------------------------

# A fresh MimeTypes() only loads Python's built-in table, not /etc/mime.types,
# so the same file gets the same type on every machine.
_MIME_TYPES = mimetypes.MimeTypes()

# Web asset types missing from older built-in tables
_EXTRA_TYPES = {
    ".mjs": "text/javascript",
    ".map": "application/json",
    ".webmanifest": "application/manifest+json",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".wasm": "application/wasm",
    ".webp": "image/webp",
    ".avif": "image/avif",
}

for _ext, _type in _EXTRA_TYPES.items():
    if _MIME_TYPES.guess_type(f"file{_ext}", strict=False)[0] is None:
        _MIME_TYPES.add_type(_type, _ext)

# guess_type reports "app.css.gz" as text/css + gzip encoding. We don't set
# Content-Encoding, so serve compressed files as the archive type instead.
_ENCODING_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "br": "application/x-brotli",
}


def resolve_content_type(path: str) -> str:
    """
    Media type for a file, from its extension.

    Falls back to application/octet-stream for unknown extensions.
    """
    content_type, encoding = _MIME_TYPES.guess_type(os.path.basename(path), strict=False)

    if encoding is not None:
        return _ENCODING_TYPES.get(encoding, DEFAULT_CONTENT_TYPE)

    return content_type or DEFAULT_CONTENT_TYPE


def derive_remote_key(local_path: str, root_path: str) -> str:
    """
    Object key for a file: its path relative to root, with forward slashes.

    Raises ValueError for paths outside root.
    """
    relative = os.path.relpath(local_path, root_path)

    if relative == os.curdir or relative.split(os.sep)[0] == os.pardir:
        raise ValueError(f"{local_path} is not inside {root_path}")

    key = relative.replace(os.sep, "/")
    if os.altsep:
        key = key.replace(os.altsep, "/")

    return key.lstrip("/")


def build_upload_task(local_path: str, root_path: str) -> UploadTask:
    return UploadTask(
        local_path=local_path,
        remote_key=derive_remote_key(local_path, root_path),
        content_type=resolve_content_type(local_path),
    )


# ---------------------------------------------------------------------------
# Filesystem helpers (run in worker threads)
# ---------------------------------------------------------------------------

class EntryKind(Enum):
    DIRECTORY = "directory"
    FILE = "file"
    LINKED_DIRECTORY = "linked_directory"
    OTHER = "other"


def _list_directory(directory: str) -> list[str]:
    return sorted(os.listdir(directory))


def _classify(path: str) -> EntryKind:
    """Stat an entry. Raises OSError, including for broken symlinks."""
    mode = os.lstat(path).st_mode

    if stat.S_ISLNK(mode):
        target_mode = os.stat(path).st_mode
        if stat.S_ISDIR(target_mode):
            return EntryKind.LINKED_DIRECTORY
        if stat.S_ISREG(target_mode):
            return EntryKind.FILE
        return EntryKind.OTHER

    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.OTHER


def _read_file(path: str) -> bytes:
    return Path(path).read_bytes()


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class UploadPipeline:
    """
    Uploads a directory tree with a bounded number of concurrent puts.

    Args:
        store: Object store to put files into
        concurrency: Number of upload workers (at most this many puts in flight)
        cancel_event: Once set, no new uploads start; in-flight ones finish
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self._store = store
        self._concurrency = concurrency
        self._cancel_event = cancel_event

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def upload(self, root_path: str, bucket_name: str) -> UploadReport:
        """
        Upload every regular file under root_path to bucket_name.

        Returns the report when every file went up. Raises UploadError
        (carrying the same report) if any file failed, or UploadCancelled
        if the cancel event was set before the walk finished.
        """
        report = UploadReport()
        queue: asyncio.Queue[Optional[UploadTask]] = asyncio.Queue(
            maxsize=self._concurrency * 2
        )

        producer = asyncio.create_task(self._walk(root_path, queue, report))
        workers = [
            asyncio.create_task(self._worker(queue, bucket_name, report))
            for _ in range(self._concurrency)
        ]
        tasks = [producer, *workers]

        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(
            "Upload finished",
            extra={
                "bucket": bucket_name,
                "uploaded": len(report.uploaded),
                "failed": len(report.failures),
                "skipped": len(report.skipped),
                "cancelled": report.cancelled,
            }
        )

        if report.interrupted:
            raise UploadCancelled(report)
        if report.failures:
            raise UploadError(report)

        return report

    def _is_cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    async def _walk(
        self,
        root_path: str,
        queue: "asyncio.Queue[Optional[UploadTask]]",
        report: UploadReport,
    ) -> None:
        """Producer: push one UploadTask per regular file, then a stop marker per worker."""
        pending = deque([root_path])

        while pending:
            if self._is_cancelled():
                report.interrupted = True
                break

            directory = pending.pop()

            try:
                names = await asyncio.to_thread(_list_directory, directory)
            except OSError as e:
                self._record_failure(report, directory, FilesystemError(directory, e))
                continue

            for name in names:
                if self._is_cancelled():
                    report.interrupted = True
                    break

                path = os.path.join(directory, name)

                try:
                    kind = await asyncio.to_thread(_classify, path)
                except OSError as e:
                    self._record_failure(report, path, FilesystemError(path, e))
                    continue

                if kind is EntryKind.DIRECTORY:
                    pending.append(path)
                elif kind is EntryKind.FILE:
                    await queue.put(build_upload_task(path, root_path))
                else:
                    logger.warning(
                        "Skipping %s (not a regular file or directory)",
                        path,
                        extra={"path": path, "kind": kind.value},
                    )
                    report.skipped.append(path)

        for _ in range(self._concurrency):
            await queue.put(None)

    async def _worker(
        self,
        queue: "asyncio.Queue[Optional[UploadTask]]",
        bucket_name: str,
        report: UploadReport,
    ) -> None:
        while True:
            task = await queue.get()
            if task is None:
                return

            if self._is_cancelled():
                report.cancelled += 1
                report.interrupted = True
                continue

            await self._upload_file(task, bucket_name, report)

    async def _upload_file(
        self,
        task: UploadTask,
        bucket_name: str,
        report: UploadReport,
    ) -> None:
        logger.info("Uploading file %s to bucket %s...", task.remote_key, bucket_name)

        try:
            body = await asyncio.to_thread(_read_file, task.local_path)
        except OSError as e:
            self._record_failure(
                report, task.local_path, FilesystemError(task.local_path, e), task.remote_key
            )
            return

        try:
            await self._store.put_object(
                bucket_name,
                task.remote_key,
                body,
                task.content_type,
            )
        except StoreError as e:
            self._record_failure(report, task.local_path, e, task.remote_key)
            return

        logger.debug(
            "Uploaded file",
            extra={
                "key": task.remote_key,
                "content_type": task.content_type,
                "size_bytes": len(body),
            }
        )
        report.uploaded.append(task)

    def _record_failure(
        self,
        report: UploadReport,
        path: str,
        error: DeploymentError,
        remote_key: Optional[str] = None,
    ) -> None:
        logger.error(
            "Failed to upload %s",
            path,
            extra={"path": path, "key": remote_key, "error": str(error)},
        )
        report.failures.append(UploadFailure(path, error, remote_key))
