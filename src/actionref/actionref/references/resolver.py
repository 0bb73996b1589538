# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Resolve cached references into their declared inputs and outputs.

Resolution performs blocking I/O; call it from worker threads (see
:meth:`Resolver.resolve_all`) rather than from an interactive thread.
Failures never propagate: the entry is published as unavailable with the
short failure retention and the cause is logged.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import ActionRefConfig, get_config
from ..constants import FIELD_INPUTS, FIELD_ON, FIELD_OUTPUTS, FIELD_RUNS
from ..errors import ContentParseError, FetchError
from ..logconfig import ReferenceContext
from ..metrics import record_resolution
from ..model.builder import build_tree
from ..model.context import DocumentContext
from ..model.tree import Node
from .cache import ResolutionCache, ResolutionResult, ResolvedEntry
from .fetch import ContentStore, DefaultFetcher, Fetcher, HttpFetcher, LocalFetcher
from .parser import ReferenceDescriptor

LOGGER = logging.getLogger(__name__)


def require_block(root: Node, descriptor: ReferenceDescriptor) -> None:
    """Raise :class:`ContentParseError` unless *root* has the top-level block its kind needs.

    Action manifests need ``runs``; workflows need an ``on`` trigger block.
    """
    block = FIELD_RUNS if descriptor.is_action else FIELD_ON
    if root.child(block) is None:
        raise ContentParseError(f"{descriptor.document_id}: missing top-level '{block}' block")


def extract_parameters(root: Node, block: str, is_action: bool) -> Dict[str, str]:
    """Map parameter name to description for every entry of a *block* section.

    Action manifests accept any ``inputs``/``outputs`` section. Workflows only
    accept sections sitting under a trigger, i.e. ``on.<event>.<block>``.
    Entries without an identifier are skipped; the first of duplicates wins.
    """

    def in_block(node: Node) -> bool:
        section = node.parent
        if section is None or section.key != block:
            return False
        if is_action:
            return True
        event = section.parent
        trigger = event.parent if event is not None else None
        return trigger is not None and trigger.key == FIELD_ON

    result: Dict[str, str] = {}
    for node in root.find_child_nodes(in_block):
        ident = node.key_or_id_or_name
        if ident and ident not in result:
            result[ident] = node.description or ""
    return result


class Resolver:
    """Fetches, parses and extracts parameters for cache entries."""

    def __init__(
        self,
        cache: ResolutionCache,
        fetcher: Fetcher,
        store: Optional[ContentStore] = None,
        success_ttl_s: float = 24 * 60 * 60.0,
        failure_ttl_s: float = 10 * 60.0,
        max_workers: int = 4,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.store = store if store is not None else cache.store
        self.success_ttl_s = success_ttl_s
        self.failure_ttl_s = failure_ttl_s
        self.max_workers = max_workers

    @classmethod
    def from_config(
        cls, config: Optional[ActionRefConfig] = None, cache: Optional[ResolutionCache] = None
    ) -> "Resolver":
        """Wire a resolver, its cache and default fetchers from *config*."""
        config = config or get_config()
        if cache is None:
            cache = ResolutionCache(
                ContentStore(config.cache_dir),
                raw_content_host=config.raw_content_host,
                github_host=config.github_host,
                failure_ttl_s=config.failure_ttl_s,
            )
        fetcher = DefaultFetcher(
            HttpFetcher(timeout=config.fetch_timeout_s),
            LocalFetcher(config.workspace_root),
        )
        return cls(
            cache,
            fetcher,
            success_ttl_s=config.success_ttl_s,
            failure_ttl_s=config.failure_ttl_s,
            max_workers=config.max_workers,
        )

    def resolve(self, entry: ResolvedEntry) -> ResolvedEntry:
        """Populate *entry*; a no-op when it is available, unparsable, invalidated or recently failed.

        The outcome is committed only if *entry* is still the cache's entry
        for its reference once loading finishes. A handle invalidated or
        replaced meanwhile is left as it is, and nothing is stored for it.
        """
        if entry.is_available or not entry.descriptor.is_resolvable:
            record_resolution("skipped")
            return entry

        with entry.lock:
            if (
                entry.is_available
                or entry.invalidated
                or entry.in_retry_window(self.cache.clock())
            ):
                record_resolution("skipped")
                return entry
            descriptor = entry.descriptor
            with ReferenceContext.bind(descriptor.raw_reference, descriptor.document_id):
                self._load(entry)
        return entry

    def resolve_reference(self, raw_reference: str) -> ResolvedEntry:
        return self.resolve(self.cache.get_or_create(raw_reference))

    def resolve_all(
        self, raw_references: Iterable[str], max_workers: Optional[int] = None
    ) -> List[ResolvedEntry]:
        """Resolve several references concurrently, preserving input order."""
        entries = [self.cache.get_or_create(raw) for raw in raw_references]
        if not entries:
            return []
        workers = min(max_workers or self.max_workers, len(entries))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.resolve, entries))

    def _content(self, descriptor: ReferenceDescriptor) -> Tuple[str, bool]:
        """Return the document text and whether it still has to be stored."""
        if descriptor.is_local:
            return self.fetcher.fetch(descriptor), False
        content = self.store.read(descriptor, max_age=self.success_ttl_s)
        if content is not None:
            LOGGER.debug("Using cached content for %s", descriptor.raw_reference)
            return content, False
        content = self.fetcher.fetch(descriptor)
        if not content or not content.strip():
            raise FetchError(descriptor.download_location, "empty content")
        return content, True

    def _document(self, descriptor: ReferenceDescriptor) -> Tuple[DocumentContext, Optional[str]]:
        """Return the parsed document and, when freshly fetched, the text to store."""
        context = self.cache.contexts.get(descriptor.document_id)
        if context is not None:
            return context, None
        content, fetched = self._content(descriptor)
        try:
            tree = build_tree(content, name=descriptor.document_id, require_mapping=True)
            require_block(tree.root, descriptor)
        except ContentParseError:
            if not fetched and not descriptor.is_local:
                self.store.delete(descriptor)
            raise
        return tree.context.init(), content if fetched else None

    def _load(self, entry: ResolvedEntry) -> None:
        descriptor = entry.descriptor
        now = self.cache.clock()
        try:
            context, fetched = self._document(descriptor)
        except (FetchError, ContentParseError) as exc:
            LOGGER.warning(
                "Failed to resolve [%s]: %s", descriptor.raw_reference, exc, exc_info=True
            )
            failure = ResolutionResult(is_available=False, expires_at=now + self.failure_ttl_s)
            if self.cache.commit(entry, lambda: entry.publish(failure)):
                record_resolution("unavailable")
            else:
                self._discarded(entry)
            return

        root = context.root
        result = ResolutionResult(
            inputs=extract_parameters(root, FIELD_INPUTS, descriptor.is_action),
            outputs=extract_parameters(root, FIELD_OUTPUTS, descriptor.is_action),
            is_available=True,
            expires_at=now + self.success_ttl_s,
        )

        def apply():
            if fetched is not None:
                self.store.write(descriptor, fetched)
            self.cache.contexts.put(descriptor.document_id, context)
            entry.publish(result)

        if not self.cache.commit(entry, apply):
            self._discarded(entry)
            return
        LOGGER.info(
            "Resolved [%s]: %d inputs, %d outputs",
            descriptor.raw_reference,
            len(result.inputs),
            len(result.outputs),
        )
        record_resolution("available")

    @staticmethod
    def _discarded(entry: ResolvedEntry) -> None:
        LOGGER.debug(
            "Dropping resolution of [%s]: entry was invalidated or replaced", entry.raw_reference
        )
        record_resolution("skipped")
