# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Time-bounded cache of resolved references.

Each raw ``uses:`` string maps to one :class:`ResolvedEntry`. Lookup and
replacement happen under a single lock, so concurrent callers asking for the
same new or expired reference always receive the same entry. Replacing an
expired entry deletes its downloaded file and drops its parsed document
context first.

A resolution only lands through :meth:`ResolutionCache.commit`, which runs
under the same lock and refuses entries that were invalidated or replaced
while their fetch was in flight.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..constants import DEFAULT_GITHUB_HOST, DEFAULT_RAW_CONTENT_HOST
from ..metrics import record_eviction
from ..model.context import DocumentContextRegistry
from .fetch import ContentStore
from .parser import ReferenceDescriptor, parse_reference

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one resolution attempt; replaced as a whole, never mutated."""

    inputs: Mapping[str, str] = field(default_factory=dict)
    outputs: Mapping[str, str] = field(default_factory=dict)
    is_available: bool = False
    expires_at: float = 0.0
    tags: Tuple[str, ...] = ()


class ResolvedEntry:
    """A parsed reference plus its current :class:`ResolutionResult`.

    ``expires_at == 0`` means no resolution has been attempted yet; such an
    entry is never considered expired. Unparsable references are created
    with the failure retention instead, so they age out like failed lookups.
    """

    def __init__(self, descriptor: ReferenceDescriptor, result: Optional[ResolutionResult] = None):
        self.descriptor = descriptor
        self.lock = threading.Lock()
        self._result = result if result is not None else ResolutionResult()
        self._invalidated = False

    def __repr__(self) -> str:
        return (
            f"ResolvedEntry({self.descriptor.raw_reference!r}, "
            f"available={self.is_available}, expires_at={self.expires_at})"
        )

    @property
    def raw_reference(self) -> str:
        return self.descriptor.raw_reference

    @property
    def result(self) -> ResolutionResult:
        return self._result

    def publish(self, result: ResolutionResult) -> None:
        self._result = result

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    def invalidate(self) -> None:
        self._invalidated = True
        self._result = ResolutionResult(is_available=False)

    @property
    def inputs(self) -> Mapping[str, str]:
        return self._result.inputs

    @property
    def outputs(self) -> Mapping[str, str]:
        return self._result.outputs

    @property
    def is_available(self) -> bool:
        return self._result.is_available

    @property
    def expires_at(self) -> float:
        return self._result.expires_at

    @property
    def tags(self) -> Tuple[str, ...]:
        return self._result.tags

    def is_expired(self, now: float) -> bool:
        expires_at = self._result.expires_at
        return expires_at != 0 and expires_at < now

    def in_retry_window(self, now: float) -> bool:
        """True while a failed resolution is still within its negative-cache retention."""
        return not self.is_available and self.expires_at > now


class ResolutionCache:
    """Map of raw reference string to :class:`ResolvedEntry`.

    Pass an instance to every resolution call instead of sharing module
    state; use ``close()`` (or a ``with`` block) to tear it down.
    """

    def __init__(
        self,
        store: ContentStore,
        contexts: Optional[DocumentContextRegistry] = None,
        clock: Clock = time.time,
        raw_content_host: str = DEFAULT_RAW_CONTENT_HOST,
        github_host: str = DEFAULT_GITHUB_HOST,
        failure_ttl_s: float = 10 * 60.0,
    ):
        self.store = store
        self.contexts = contexts if contexts is not None else DocumentContextRegistry()
        self.clock = clock
        self.raw_content_host = raw_content_host
        self.github_host = github_host
        self.failure_ttl_s = failure_ttl_s
        self._lock = threading.Lock()
        self._entries: Dict[str, ResolvedEntry] = {}

    def __enter__(self) -> "ResolutionCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, raw_reference: str) -> bool:
        with self._lock:
            return raw_reference in self._entries

    def get(self, raw_reference: str) -> Optional[ResolvedEntry]:
        with self._lock:
            return self._entries.get(raw_reference)

    def entries(self) -> List[ResolvedEntry]:
        with self._lock:
            return list(self._entries.values())

    def get_or_create(self, raw_reference: Optional[str]) -> ResolvedEntry:
        """Return the live entry for *raw_reference*, creating or replacing it if needed.

        Creating an entry also sweeps out every other expired entry.
        """
        key = raw_reference.strip() if isinstance(raw_reference, str) else ""
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(now):
                return entry
            self._purge_expired(now)
            descriptor = parse_reference(
                key, raw_content_host=self.raw_content_host, github_host=self.github_host
            )
            result = None
            if not descriptor.is_resolvable:
                result = ResolutionResult(is_available=False, expires_at=now + self.failure_ttl_s)
            entry = ResolvedEntry(descriptor, result)
            self._entries[key] = entry
            return entry

    def purge_expired(self) -> int:
        """Evict every expired entry; returns how many were removed."""
        now = self.clock()
        with self._lock:
            return self._purge_expired(now)

    def _purge_expired(self, now: float) -> int:
        expired = [entry for entry in self._entries.values() if entry.is_expired(now)]
        for entry in expired:
            LOGGER.debug(
                "Reference %r expired at %.0f; evicting", entry.raw_reference, entry.expires_at
            )
            del self._entries[entry.raw_reference]
            self._discard(entry)
            record_eviction("expired")
        return len(expired)

    def is_current(self, entry: ResolvedEntry) -> bool:
        """True while *entry* is the installed, non-invalidated entry for its key."""
        return not entry.invalidated and self._entries.get(entry.raw_reference) is entry

    def commit(self, entry: ResolvedEntry, apply: Callable[[], None]) -> bool:
        """Run *apply* under the cache lock if *entry* is still current.

        Returns False, without calling *apply*, when the entry was invalidated
        or replaced since it was handed out.
        """
        with self._lock:
            if not self.is_current(entry):
                return False
            apply()
            return True

    def delete_cache(self, entry: ResolvedEntry) -> None:
        """Invalidate *entry*: mark it unavailable, forget it and delete its file.

        A resolution of *entry* still in flight will not be committed.
        """
        with self._lock:
            entry.invalidate()
            key = entry.raw_reference
            if self._entries.get(key) is entry:
                del self._entries[key]
            self._discard(entry)
        record_eviction("invalidated")

    def _discard(self, entry: ResolvedEntry) -> None:
        self.contexts.remove(entry.descriptor.document_id)
        if entry.descriptor.is_resolvable:
            self.store.delete(entry.descriptor)

    def clear(self) -> None:
        """Forget every entry and document context; cached files stay on disk."""
        with self._lock:
            self._entries.clear()
        self.contexts.clear()

    def close(self) -> None:
        self.clear()
