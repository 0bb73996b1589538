# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Reference parsing, fetching, caching and resolution."""

from .cache import ResolutionCache, ResolutionResult, ResolvedEntry
from .fetch import ContentStore, DefaultFetcher, Fetcher, HttpFetcher, LocalFetcher
from .parser import ReferenceDescriptor, ReferenceKind, parse_reference
from .resolver import Resolver, extract_parameters

__all__ = [
    "ContentStore",
    "DefaultFetcher",
    "Fetcher",
    "HttpFetcher",
    "LocalFetcher",
    "ReferenceDescriptor",
    "ReferenceKind",
    "ResolutionCache",
    "ResolutionResult",
    "ResolvedEntry",
    "Resolver",
    "extract_parameters",
    "parse_reference",
]
