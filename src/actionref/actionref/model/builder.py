# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Build a positional :class:`Tree` from YAML text using PyYAML's node graph.

``yaml.compose`` keeps every node's start and end character offsets, so the
tree can map each key, scalar and sequence item back to its source range.
Keys are taken from the composed scalar, which keeps ``on`` a string instead
of the boolean the YAML 1.1 loader would construct.
"""

import logging
from typing import List, Optional, Tuple

import yaml

from ..errors import ContentParseError
from .tree import Tree

LOGGER = logging.getLogger(__name__)

_Pending = Tuple[yaml.Node, int, Tuple[int, ...]]


def _scalar_fields(source: str, node: yaml.Node) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(raw text, parsed value)`` for a scalar node, or ``(None, None)``."""
    if not isinstance(node, yaml.ScalarNode):
        return None, None
    start, end = node.start_mark.index, node.end_mark.index
    if start == end and node.value == "":
        # key with no value, e.g. ``needs:``
        return None, None
    return source[start:end], node.value


def _key_text(source: str, node: yaml.Node) -> str:
    if isinstance(node, yaml.ScalarNode):
        return str(node.value)
    return source[node.start_mark.index:node.end_mark.index]


def build_tree(content: str, name: Optional[str] = None, require_mapping: bool = False) -> Tree:
    """Parse *content* and return a frozen :class:`Tree`.

    Mapping pairs become nodes keyed by the mapping key, spanning from the key
    to the end of the value; a scalar value is stored on the pair node itself,
    a mapping or sequence value contributes its entries as children. Sequence
    items become keyless nodes.

    Raises :class:`ContentParseError` when *content* is not valid YAML, or, if
    *require_mapping* is set, when the document is not a mapping.
    """
    try:
        document = yaml.compose(content)
    except yaml.YAMLError as exc:
        raise ContentParseError(f"Invalid YAML in {name or 'document'}: {exc}") from exc

    if require_mapping and not isinstance(document, yaml.MappingNode):
        raise ContentParseError(f"{name or 'document'} is not a YAML mapping")

    tree = Tree(content, name=name)
    if document is None:
        return tree.freeze()

    pending: List[_Pending] = []
    if isinstance(document, yaml.ScalarNode):
        text, value = _scalar_fields(content, document)
        if text is not None:
            tree.add(document.start_mark.index, document.end_mark.index, text=text, value=value)
    else:
        pending.append((document, 0, ()))

    while pending:
        collection, parent, ancestors = pending.pop()
        if id(collection) in ancestors:
            LOGGER.debug("Skipping recursive alias at offset %d", collection.start_mark.index)
            continue
        chain = ancestors + (id(collection),)

        if isinstance(collection, yaml.MappingNode):
            for key_node, value_node in collection.value:
                text, value = _scalar_fields(content, value_node)
                end = max(value_node.end_mark.index, key_node.end_mark.index)
                index = tree.add(
                    key_node.start_mark.index,
                    end,
                    key=_key_text(content, key_node),
                    text=text,
                    value=value,
                    parent=parent,
                )
                if isinstance(value_node, yaml.CollectionNode):
                    pending.append((value_node, index, chain))
        elif isinstance(collection, yaml.SequenceNode):
            for item in collection.value:
                text, value = _scalar_fields(content, item)
                index = tree.add(
                    item.start_mark.index,
                    item.end_mark.index,
                    text=text,
                    value=value,
                    parent=parent,
                )
                if isinstance(item, yaml.CollectionNode):
                    pending.append((item, index, chain))

    return tree.freeze()
