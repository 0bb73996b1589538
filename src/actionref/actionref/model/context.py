# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Per-document cache of navigation results, plus a registry of contexts."""

import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from ..constants import FIELD_INPUTS, FIELD_ON, FIELD_OUTPUTS, FIELD_SECRETS, FIELD_USES

if TYPE_CHECKING:
    from .tree import Node


def _trigger_block_children(root: "Node", block: str) -> Dict[str, "Node"]:
    """Return ``on.<event>.<block>.<name>`` nodes keyed by name (first wins)."""
    result: Dict[str, "Node"] = {}
    on = root.child(FIELD_ON)
    if on is None:
        return result
    for event in on.children:
        section = event.child(block)
        if section is None:
            continue
        for item in section.children:
            ident = item.key_or_id_or_name
            if ident and ident not in result:
                result[ident] = item
    return result


class DocumentContext:
    """Navigation results for one document, computed once and cached.

    Owned by the document's root node. Every accessor is lazy; ``init()``
    computes all of them eagerly, which is what callers sharing a context
    across threads should do before publishing it.
    """

    def __init__(self, root: "Node"):
        self._root_index = root.index
        self._tree = root.tree
        self._lock = threading.Lock()
        self._cache: Dict[str, Any] = {}

    @property
    def root(self) -> "Node":
        return self._tree.node(self._root_index)

    def _cached(self, name: str, compute: Callable[[], Any]) -> Any:
        with self._lock:
            if name not in self._cache:
                self._cache[name] = compute()
            return self._cache[name]

    @property
    def jobs(self) -> Dict[str, "Node"]:
        def compute() -> Dict[str, "Node"]:
            jobs: Dict[str, "Node"] = {}
            for job in self.root.list_jobs():
                ident = job.key_or_id_or_name
                if ident and ident not in jobs:
                    jobs[ident] = job
            return jobs

        return self._cached("jobs", compute)

    @property
    def steps(self) -> List["Node"]:
        return self._cached("steps", self.root.list_steps)

    @property
    def inputs(self) -> Dict[str, "Node"]:
        return self._cached("inputs", lambda: _trigger_block_children(self.root, FIELD_INPUTS))

    @property
    def outputs(self) -> Dict[str, "Node"]:
        return self._cached("outputs", lambda: _trigger_block_children(self.root, FIELD_OUTPUTS))

    @property
    def secrets(self) -> Dict[str, "Node"]:
        return self._cached("secrets", lambda: _trigger_block_children(self.root, FIELD_SECRETS))

    @property
    def references(self) -> List["Node"]:
        """Every ``uses`` node in the document, in document order."""
        return self._cached(
            "references",
            lambda: self.root.find_child_nodes(lambda n: n.key == FIELD_USES and bool(n.scalar)),
        )

    def dependencies(self, job_id: str) -> List[str]:
        """Sorted ids of the jobs that *job_id* needs."""
        job = self.jobs.get(job_id)
        if job is None:
            return []
        needs = job.child("needs")
        return sorted(needs.dependency_ids()) if needs is not None else []

    def init(self) -> "DocumentContext":
        self.jobs
        self.steps
        self.inputs
        self.outputs
        self.secrets
        self.references
        return self


class DocumentContextRegistry:
    """Thread-safe map from document id (``name_ref``) to its context."""

    def __init__(self):
        self._lock = threading.Lock()
        self._contexts: Dict[str, DocumentContext] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)

    def __contains__(self, document_id: str) -> bool:
        with self._lock:
            return document_id in self._contexts

    def get(self, document_id: str) -> Optional[DocumentContext]:
        with self._lock:
            return self._contexts.get(document_id)

    def put(self, document_id: str, context: DocumentContext) -> None:
        with self._lock:
            self._contexts[document_id] = context

    def remove(self, document_id: str) -> Optional[DocumentContext]:
        with self._lock:
            return self._contexts.pop(document_id, None)

    def clear(self) -> None:
        with self._lock:
            self._contexts.clear()
