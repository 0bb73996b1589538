# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Positional tree over a parsed YAML document.

Nodes live in a :class:`Tree` arena and are addressed by index; parent and
child links are indices into the arena, so a tree holds no reference cycles.
:class:`Node` is a cheap view ``(tree, index)`` carrying all navigation.

Construction happens once, single-threaded, through :meth:`Tree.add`. After
:meth:`Tree.freeze` the tree is read-only and may be traversed concurrently.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from ..constants import (
    FIELD_DEFAULT,
    FIELD_DESC,
    FIELD_DESCRIPTION,
    FIELD_ID,
    FIELD_JOBS,
    FIELD_NAME,
    FIELD_NEEDS,
    FIELD_ON,
    FIELD_OUTPUTS,
    FIELD_REQUIRED,
    FIELD_STEPS,
    FIELD_TYPE,
    FIELD_USES,
    FIELD_WITH,
)
from ..errors import TreeFrozenError
from .context import DocumentContext

StructuralKey = Tuple[int, int, Optional[str], Optional[str]]
NodePredicate = Callable[["Node"], bool]


def remove_quotes(text: Optional[str]) -> Optional[str]:
    """Strip one pair of matching surrounding quotes from *text*."""
    if text is None:
        return None
    stripped = text.strip()
    if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in ("'", '"'):
        return stripped[1:-1]
    return stripped


@dataclass
class NodeRecord:
    start_offset: int
    end_offset: int
    key: Optional[str] = None
    text: Optional[str] = None
    value: Optional[str] = None
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    @property
    def structural_key(self) -> StructuralKey:
        return (self.start_offset, self.end_offset, self.key, self.text)


class Tree:
    """Arena of :class:`NodeRecord` objects; index 0 is the document root."""

    def __init__(self, source: str = "", name: Optional[str] = None):
        self.source = source
        self.name = name
        self._records: List[NodeRecord] = [NodeRecord(0, len(source))]
        self._child_index: Dict[int, Dict[StructuralKey, int]] = {0: {}}
        self._frozen = False
        self._line_starts: Optional[List[int]] = None
        self.context = DocumentContext(self.root)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Tree(name={self.name!r}, nodes={len(self)}, frozen={self._frozen})"

    @property
    def root(self) -> "Node":
        return Node(self, 0)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def record(self, index: int) -> NodeRecord:
        return self._records[index]

    def node(self, index: int) -> "Node":
        if not 0 <= index < len(self._records):
            raise IndexError(f"node index {index} out of range")
        return Node(self, index)

    def add(
        self,
        start_offset: int,
        end_offset: int,
        key: Optional[str] = None,
        text: Optional[str] = None,
        value: Optional[str] = None,
        parent: int = 0,
    ) -> int:
        """Append a node under *parent* and return its index.

        A child structurally equal (same offsets, key and text) to one already
        under *parent* is not added twice; the existing index is returned.
        """
        if self._frozen:
            raise TreeFrozenError("tree is frozen; nodes can only be added during construction")
        if not 0 <= parent < len(self._records):
            raise IndexError(f"parent index {parent} out of range")

        record = NodeRecord(start_offset, end_offset, key, text, value, parent)
        siblings = self._child_index[parent]
        existing = siblings.get(record.structural_key)
        if existing is not None:
            return existing

        index = len(self._records)
        self._records.append(record)
        self._child_index[index] = {}
        siblings[record.structural_key] = index
        self._records[parent].children.append(index)
        return index

    def freeze(self) -> "Tree":
        self._frozen = True
        self._child_index.clear()
        return self

    def line_of(self, offset: int) -> int:
        """Return the 1-based source line containing *offset*."""
        if self._line_starts is None:
            starts = [0]
            starts.extend(i + 1 for i, ch in enumerate(self.source) if ch == "\n")
            self._line_starts = starts
        return bisect_right(self._line_starts, offset)


class Node:
    """View on one record of a :class:`Tree` with navigation helpers."""

    __slots__ = ("tree", "index")

    def __init__(self, tree: Tree, index: int):
        self.tree = tree
        self.index = index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.tree is other.tree and self.index == other.index

    def __hash__(self) -> int:
        return hash((id(self.tree), self.index))

    def __repr__(self) -> str:
        return (
            f"Node(key={self.key_or_id_or_name!r}, text={self.text_no_quotes!r}, "
            f"children={len(self._record.children)})"
        )

    # ── Record accessors ──────────────────────────────────────────────────

    @property
    def _record(self) -> NodeRecord:
        return self.tree.record(self.index)

    @property
    def start_offset(self) -> int:
        return self._record.start_offset

    @property
    def end_offset(self) -> int:
        return self._record.end_offset

    @property
    def key(self) -> Optional[str]:
        return self._record.key

    @property
    def text(self) -> Optional[str]:
        return self._record.text

    @property
    def value(self) -> Optional[str]:
        return self._record.value

    @property
    def parent(self) -> Optional["Node"]:
        parent = self._record.parent
        return None if parent is None else Node(self.tree, parent)

    @property
    def children(self) -> List["Node"]:
        return [Node(self.tree, i) for i in self._record.children]

    @property
    def text_range(self) -> Optional[Tuple[int, int]]:
        start, end = self.start_offset, self.end_offset
        return (start, end) if start > -1 and end >= start else None

    @property
    def line(self) -> Optional[int]:
        return self.tree.line_of(self.start_offset) if self.text_range else None

    @property
    def root(self) -> "Node":
        return self.tree.root

    @property
    def context(self) -> DocumentContext:
        return self.tree.context

    @property
    def child_index(self) -> int:
        parent = self._record.parent
        if parent is None:
            return -1
        return self.tree.record(parent).children.index(self.index)

    # ── Scalar helpers ────────────────────────────────────────────────────

    @property
    def text_no_quotes(self) -> Optional[str]:
        return remove_quotes(self.text)

    @property
    def scalar(self) -> Optional[str]:
        """Parsed scalar value, falling back to the unquoted raw text."""
        value = self.value
        return value if value is not None else self.text_no_quotes

    @property
    def child_text(self) -> Optional[str]:
        children = self._record.children
        return self.tree.record(children[0]).text if children else None

    @property
    def child_text_no_quotes(self) -> Optional[str]:
        return remove_quotes(self.child_text)

    @property
    def text_or_child_text(self) -> Optional[str]:
        text = self.text
        return text if text is not None else self.child_text

    @property
    def text_or_child_text_no_quotes(self) -> Optional[str]:
        return remove_quotes(self.text_or_child_text)

    def _child_scalar(self, *keys: str) -> Optional[str]:
        for key in keys:
            child = self.child(key)
            if child is not None:
                return child.scalar
        return None

    @property
    def id(self) -> Optional[str]:
        return self._child_scalar(FIELD_ID)

    @property
    def name(self) -> Optional[str]:
        return self._child_scalar(FIELD_NAME)

    @property
    def uses(self) -> Optional[str]:
        return self._child_scalar(FIELD_USES)

    @property
    def type(self) -> Optional[str]:
        return self._child_scalar(FIELD_TYPE)

    @property
    def description(self) -> Optional[str]:
        return self._child_scalar(FIELD_DESCRIPTION, FIELD_DESC)

    @property
    def required(self) -> bool:
        return (self._child_scalar(FIELD_REQUIRED) or "").lower() == "true"

    @property
    def default(self) -> Optional[str]:
        return self._child_scalar(FIELD_DEFAULT)

    @property
    def key_or_id_or_name(self) -> Optional[str]:
        key = self.key
        if key is not None:
            return key
        node_id = self.id
        return node_id if node_id is not None else self.name

    @property
    def uses_or_name(self) -> Optional[str]:
        uses = self.uses
        return uses if uses is not None else self.name

    @property
    def path(self) -> str:
        """Dotted key-path from the root, e.g. ``jobs.build.steps[0]``."""
        parts: List[str] = []
        node: Optional[Node] = self
        while node is not None and node.parent is not None:
            ident = node.key_or_id_or_name
            parts.append(f".{ident}" if ident is not None else f"[{node.child_index}]")
            node = node.parent
        return "".join(reversed(parts)).lstrip(".")

    # ── Navigation ────────────────────────────────────────────────────────

    def all_nodes(self) -> Iterator["Node"]:
        """Yield this node and every descendant in document (pre-)order."""
        stack = [self.index]
        while stack:
            index = stack.pop()
            yield Node(self.tree, index)
            stack.extend(reversed(self.tree.record(index).children))

    def find_child_nodes(self, predicate: NodePredicate) -> List["Node"]:
        """Return every node of this subtree (self included) matching *predicate*."""
        return [node for node in self.all_nodes() if predicate(node)]

    def child(self, key: Optional[str]) -> Optional["Node"]:
        """Return the first direct child whose key equals *key*, ignoring case."""
        if key is None:
            return None
        wanted = key.lower()
        for child in self.children:
            if child.key is not None and child.key.lower() == wanted:
                return child
        return None

    def child_where(self, predicate: NodePredicate) -> Optional["Node"]:
        return next((child for child in self.children if predicate(child)), None)

    def child_by_id(self, node_id: Optional[str]) -> Optional["Node"]:
        if node_id is None:
            return None
        wanted = node_id.lower()
        return self.child_where(lambda c: c.id is not None and c.id.lower() == wanted)

    def find_parent(self, predicate: NodePredicate) -> Optional["Node"]:
        """Return the nearest strict ancestor matching *predicate*."""
        node = self.parent
        while node is not None:
            if predicate(node):
                return node
            node = node.parent
        return None

    def find_parent_key(self, key: Optional[str]) -> Optional["Node"]:
        if key is None:
            return None
        wanted = key.lower()
        return self.find_parent(lambda p: p.key is not None and p.key.lower() == wanted)

    # ── Workflow-specific filters ─────────────────────────────────────────

    def _parent_key_is(self, key: str) -> bool:
        parent = self.parent
        return parent is not None and parent.key == key

    def find_parent_job(self) -> Optional["Node"]:
        return self.find_parent(lambda job: job._parent_key_is(FIELD_JOBS))

    def find_parent_step(self) -> Optional["Node"]:
        return self.find_parent(lambda step: step._parent_key_is(FIELD_STEPS))

    def find_parent_outputs(self) -> Optional["Node"]:
        return self.find_parent(lambda node: node.key == FIELD_OUTPUTS)

    def find_parent_with(self) -> Optional["Node"]:
        return self.find_parent(lambda node: node.key == FIELD_WITH)

    def find_parent_on(self) -> Optional["Node"]:
        return self.find_parent(lambda node: node.key == FIELD_ON)

    def list_steps(self) -> List["Node"]:
        return self.find_child_nodes(lambda step: step._parent_key_is(FIELD_STEPS))

    def list_jobs(self) -> List["Node"]:
        return self.find_child_nodes(lambda job: job._parent_key_is(FIELD_JOBS))

    def dependency_ids(self) -> Set[str]:
        """Job ids listed by a ``needs`` node, scalar or sequence form."""
        result: Set[str] = set()
        if self.key != FIELD_NEEDS:
            return result
        candidates = [self.text_or_child_text_no_quotes]
        candidates.extend(child.text_or_child_text_no_quotes for child in self.children)
        result.update(c for c in candidates if c)
        return result
