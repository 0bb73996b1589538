# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Sample documents and test doubles shared by the test modules."""

import threading
import time
from typing import Dict, List, Optional, Union

from actionref.errors import FetchError
from actionref.references.parser import ReferenceDescriptor

WORKFLOW = """\
name: CI
on:
  workflow_call:
    inputs:
      target:
        description: Build target
        required: true
      "quoted":
        desc: Short form
    outputs:
      artifact:
        description: Artifact name
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - name: Setup
        id: setup
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"
  test:
    needs: build
    steps:
      - run: pytest
  deploy:
    needs: [build, test]
    uses: org/repo/.github/workflows/deploy.yml@main
"""

ACTION_MANIFEST = """\
name: Setup tool
description: Installs the tool
inputs:
  version:
    description: Version to install
    default: latest
  token:
    required: true
outputs:
  path:
    description: Install location
runs:
  using: node20
  main: index.js
"""


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: Optional[float] = None):
        self.now = time.time() if now is None else now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeFetcher:
    """Serves canned content keyed by raw reference; records every call."""

    def __init__(self, responses: Dict[str, Union[str, Exception]]):
        self.responses = responses
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch(self, descriptor: ReferenceDescriptor) -> str:
        with self._lock:
            self.calls.append(descriptor.raw_reference)
        response = self.responses.get(descriptor.raw_reference)
        if response is None:
            raise FetchError(descriptor.download_location, "HTTP 404")
        if isinstance(response, Exception):
            raise response
        return response
