# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Content retrieval for resolved references.

Fetchers return the text of an action manifest or workflow file and raise
:class:`~actionref.errors.FetchError` on any failure, empty content included.
:class:`ContentStore` keeps one downloaded file per reference on disk.
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Callable, Optional, Protocol

import requests

from ..constants import ACTION_MANIFESTS, CACHE_FILE_SUFFIX, TAG_SEPARATOR, YAML_EXTENSIONS
from ..errors import FetchError
from ..metrics import timed_fetch
from .parser import ReferenceDescriptor

LOGGER = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


class Fetcher(Protocol):
    def fetch(self, descriptor: ReferenceDescriptor) -> str:
        ...


class HttpFetcher:
    """Fetch remote content with ``requests``; bounded by *timeout* seconds."""

    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session

    def fetch(self, descriptor: ReferenceDescriptor) -> str:
        url = descriptor.download_location
        get = self.session.get if self.session is not None else requests.get
        LOGGER.debug("Downloading %s", url)
        try:
            with timed_fetch("http"):
                response = get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(url, str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise FetchError(url, f"HTTP {response.status_code}")
        if not response.text or not response.text.strip():
            raise FetchError(url, "empty content")
        return response.text


class LocalFetcher:
    """Read ``./``-prefixed references from the workspace filesystem.

    A reference to a directory is read through the action manifest inside it
    (``action.yml``, then ``action.yaml``). Paths that escape *workspace_root*
    are refused.
    """

    def __init__(self, workspace_root: Path):
        self.workspace_root = Path(workspace_root)

    def _target(self, location: str) -> Path:
        root = self.workspace_root.resolve()
        path = (root / location.split(TAG_SEPARATOR, 1)[0]).resolve()
        if root != path and root not in path.parents:
            raise FetchError(location, "path is outside the workspace")
        if path.is_dir() or not path.name.endswith(YAML_EXTENSIONS):
            for manifest in ACTION_MANIFESTS:
                candidate = path / manifest
                if candidate.is_file():
                    return candidate
        return path

    def fetch(self, descriptor: ReferenceDescriptor) -> str:
        location = descriptor.download_location
        path = self._target(location)
        try:
            with timed_fetch("local"):
                content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FetchError(location, exc.strerror or str(exc)) from exc
        if not content.strip():
            raise FetchError(location, "empty content")
        return content


class DefaultFetcher:
    """Route local references to the filesystem and the rest to HTTP."""

    def __init__(self, http: HttpFetcher, local: LocalFetcher):
        self.http = http
        self.local = local

    def fetch(self, descriptor: ReferenceDescriptor) -> str:
        if descriptor.is_local:
            return self.local.fetch(descriptor)
        return self.http.fetch(descriptor)


class ContentStore:
    """One cached file per reference under *cache_dir*.

    A file's modification time is stamped from *clock* on write, so age
    checks in :meth:`read` compare two readings of the same clock.
    """

    def __init__(self, cache_dir: Path, clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir)
        self.clock = clock

    def path_for(self, descriptor: ReferenceDescriptor) -> Path:
        stem = _UNSAFE_CHARS_RE.sub("_", descriptor.cache_id).strip("_") or "reference"
        return self.cache_dir / f"{stem}-{descriptor.storage_key}{CACHE_FILE_SUFFIX}"

    def read(
        self,
        descriptor: ReferenceDescriptor,
        max_age: Optional[float] = None,
        now: Optional[float] = None,
    ) -> Optional[str]:
        """Return cached content, or None when absent, empty or older than *max_age* seconds."""
        path = self.path_for(descriptor)
        try:
            if max_age is not None:
                age = (self.clock() if now is None else now) - path.stat().st_mtime
                if age > max_age:
                    LOGGER.debug("Cached content %s is stale (%.0fs old)", path, age)
                    return None
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            LOGGER.warning("Unable to read cached content %s", path, exc_info=True)
            return None
        return content if content.strip() else None

    def write(self, descriptor: ReferenceDescriptor, content: str) -> Optional[Path]:
        path = self.path_for(descriptor)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            stamp = self.clock()
            os.utime(path, (stamp, stamp))
        except OSError:
            LOGGER.warning("Unable to write cached content %s", path, exc_info=True)
            return None
        return path

    def delete(self, descriptor: ReferenceDescriptor) -> bool:
        """Remove the cached file; returns whether a file was deleted. Never raises."""
        path = self.path_for(descriptor)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            LOGGER.warning("Unable to delete cached content %s", path, exc_info=True)
            return False
        LOGGER.debug("Deleted cached content %s", path)
        return True
