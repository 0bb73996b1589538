# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Parse ``uses:`` reference strings into structured descriptors.

Supported shapes::

    owner/repo@ref                               action at the repository root
    owner/repo/path/to/action@ref                nested action
    owner/repo/.github/workflows/file.yml@ref    reusable workflow
    ./.github/actions/dir                        local action or workflow

Anything else (no ``@``, no ``owner/`` before the ``@``) is ``UNPARSABLE``.
Parsing never raises.
"""

import hashlib
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from ..constants import (
    BROWSE_ACTION_URL,
    BROWSE_WORKFLOW_URL,
    CONTROL_DIR,
    DEFAULT_GITHUB_HOST,
    DEFAULT_RAW_CONTENT_HOST,
    LOCAL_PREFIX,
    MARKETPLACE_URL,
    RAW_ACTION_URL,
    RAW_WORKFLOW_URL,
    TAG_SEPARATOR,
    TREE_URL,
    YAML_EXTENSIONS,
)


class ReferenceKind(str, Enum):
    ACTION = "action"
    REUSABLE_WORKFLOW = "reusable_workflow"
    LOCAL_PATH = "local_path"
    UNPARSABLE = "unparsable"


@dataclass(frozen=True)
class ReferenceDescriptor:
    """Immutable result of parsing one reference string."""

    raw_reference: str
    kind: ReferenceKind
    slug: str = ""
    ref: str = ""
    subpath: str = ""
    name: str = ""
    is_local: bool = False
    download_location: str = ""
    raw_content_host: str = field(default=DEFAULT_RAW_CONTENT_HOST, repr=False, compare=False)
    github_host: str = field(default=DEFAULT_GITHUB_HOST, repr=False, compare=False)

    @property
    def is_resolvable(self) -> bool:
        return self.kind != ReferenceKind.UNPARSABLE and bool(self.download_location)

    @property
    def is_action(self) -> bool:
        """True when the target is an action manifest rather than a workflow file."""
        if self.kind == ReferenceKind.LOCAL_PATH:
            return not self.name.endswith(YAML_EXTENSIONS)
        return self.kind == ReferenceKind.ACTION

    @property
    def cache_id(self) -> str:
        """Human-readable ``name_ref`` identity, also the stem of the cached file."""
        return f"{self.name}_{self.ref}"

    @property
    def document_id(self) -> str:
        """Registry key for parsed documents, ``slug[/subpath]/name_ref``."""
        if self.is_local or not self.slug:
            return self.raw_reference
        return f"{self.slug}{self.subpath}/{self.cache_id}"

    @property
    def storage_key(self) -> str:
        """Stable digest of the raw reference, used to keep cache file names unique."""
        return hashlib.sha1(self.raw_reference.encode("utf-8")).hexdigest()[:12]

    @property
    def marketplace_url(self) -> Optional[str]:
        if not self.slug or self.is_local:
            return None
        return MARKETPLACE_URL.format(host=self.github_host, slug=self.slug)

    @property
    def tree_url(self) -> Optional[str]:
        if not (self.slug and self.ref) or self.is_local:
            return None
        return TREE_URL.format(host=self.github_host, slug=self.slug, ref=self.ref)

    @property
    def browse_url(self) -> Optional[str]:
        return self._url(self.github_host, BROWSE_ACTION_URL, BROWSE_WORKFLOW_URL)

    @property
    def raw_url(self) -> Optional[str]:
        return self._url(self.raw_content_host, RAW_ACTION_URL, RAW_WORKFLOW_URL)

    def _url(self, host: str, action_template: str, workflow_template: str) -> Optional[str]:
        if not (self.slug and self.ref) or self.is_local:
            return None
        if self.kind == ReferenceKind.ACTION:
            return action_template.format(
                host=host, slug=self.slug, ref=self.ref, subpath=self.subpath
            )
        if self.kind == ReferenceKind.REUSABLE_WORKFLOW:
            return workflow_template.format(
                host=host, slug=self.slug, ref=self.ref, name=self.name
            )
        return None


def _is_local(raw: str) -> bool:
    return raw.startswith(LOCAL_PREFIX) and CONTROL_DIR in raw


def parse_reference(
    raw: Optional[str],
    raw_content_host: str = DEFAULT_RAW_CONTENT_HOST,
    github_host: str = DEFAULT_GITHUB_HOST,
) -> ReferenceDescriptor:
    """Parse a ``uses:`` value into a :class:`ReferenceDescriptor`."""
    hosts = dict(raw_content_host=raw_content_host.rstrip("/"), github_host=github_host.rstrip("/"))
    if not isinstance(raw, str) or not raw.strip():
        return ReferenceDescriptor(raw_reference=raw if isinstance(raw, str) else "",
                                   kind=ReferenceKind.UNPARSABLE, **hosts)

    raw = raw.strip()
    is_local = _is_local(raw)
    tag = raw.find(TAG_SEPARATOR)
    first_slash = raw.find("/")
    second_slash = raw.find("/", first_slash + 1) if first_slash != -1 else -1

    if tag == -1 and is_local:
        path = raw.rstrip("/")
        return ReferenceDescriptor(
            raw_reference=raw,
            kind=ReferenceKind.LOCAL_PATH,
            name=path[path.rfind("/") + 1:],
            is_local=True,
            download_location=raw,
            **hosts,
        )

    # no tag separator, or no "owner/" before it
    if tag == -1 or first_slash == -1 or tag < first_slash:
        return ReferenceDescriptor(raw_reference=raw, kind=ReferenceKind.UNPARSABLE,
                                   is_local=is_local, **hosts)

    ref = raw[tag + 1:]
    has_subpath = second_slash != -1 and second_slash < tag
    slug = raw[:second_slash] if has_subpath else raw[:tag]
    path_part = raw[:tag]

    if any(ext in path_part for ext in YAML_EXTENSIONS):
        descriptor = ReferenceDescriptor(
            raw_reference=raw,
            kind=ReferenceKind.REUSABLE_WORKFLOW,
            slug=slug,
            ref=ref,
            name=raw[raw.rfind("/", 0, tag) + 1:tag],
            is_local=is_local,
            **hosts,
        )
    else:
        descriptor = ReferenceDescriptor(
            raw_reference=raw,
            kind=ReferenceKind.ACTION,
            slug=slug,
            ref=ref,
            subpath="/" + raw[second_slash + 1:tag] if has_subpath else "",
            name=raw[first_slash + 1:second_slash if has_subpath else tag],
            is_local=is_local,
            **hosts,
        )

    location = raw if is_local else descriptor.raw_url
    return replace(descriptor, download_location=location or "")
