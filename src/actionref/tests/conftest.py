# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import pytest

from actionref.references.cache import ResolutionCache
from actionref.references.fetch import ContentStore

from .samples import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock) -> ContentStore:
    return ContentStore(tmp_path / "cache", clock=clock)


@pytest.fixture
def cache(store, clock):
    with ResolutionCache(store, clock=clock) as resolution_cache:
        yield resolution_cache
