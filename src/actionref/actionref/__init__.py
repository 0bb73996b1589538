# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Model CI workflow YAML as positional trees and resolve ``uses:`` references."""

from .model import Node, Tree, build_tree
from .references import ResolutionCache, Resolver, parse_reference

__version__ = "0.1.0"

__all__ = ["Node", "Tree", "build_tree", "ResolutionCache", "Resolver", "parse_reference"]
