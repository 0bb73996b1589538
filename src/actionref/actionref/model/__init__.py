# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Positional tree model for workflow and action YAML documents.

Public API
----------
Tree                      Arena of nodes for one parsed document.
Node                      Navigable view on one tree node.
build_tree                Parse YAML text into a frozen Tree.
DocumentContext           Cached navigation results owned by a root node.
DocumentContextRegistry   Thread-safe map of document id to DocumentContext.
remove_quotes             Strip matching surrounding quotes from raw text.
"""

from .builder import build_tree
from .context import DocumentContext, DocumentContextRegistry
from .tree import Node, NodeRecord, Tree, remove_quotes

__all__ = [
    "Tree",
    "Node",
    "NodeRecord",
    "build_tree",
    "DocumentContext",
    "DocumentContextRegistry",
    "remove_quotes",
]
