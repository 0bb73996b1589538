# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import dataclasses

import pytest

from actionref.references.parser import ReferenceKind, parse_reference


class TestActionReferences:
    def test_root_action(self):
        d = parse_reference("actions/checkout@v4")
        assert d.kind == ReferenceKind.ACTION
        assert d.slug == "actions/checkout"
        assert d.ref == "v4"
        assert d.subpath == ""
        assert d.name == "checkout"
        assert not d.is_local
        assert d.download_location == "https://raw.githubusercontent.com/actions/checkout/v4/action.yml"

    def test_nested_action(self):
        d = parse_reference("actions/checkout/sub@v4")
        assert d.kind == ReferenceKind.ACTION
        assert d.slug == "actions/checkout"
        assert d.subpath == "/sub"
        assert d.name == "checkout"
        assert d.download_location == (
            "https://raw.githubusercontent.com/actions/checkout/v4/sub/action.yml"
        )

    def test_deeply_nested_action(self):
        d = parse_reference("org/repo/path/to/action@main")
        assert d.slug == "org/repo"
        assert d.subpath == "/path/to/action"
        assert d.raw_url.endswith("/org/repo/main/path/to/action/action.yml")

    def test_ref_may_contain_slashes(self):
        d = parse_reference("org/repo@release/v1")
        assert d.slug == "org/repo"
        assert d.ref == "release/v1"
        assert d.subpath == ""

    def test_commit_sha_ref(self):
        sha = "8f4b7f84864484a7bf31766abe9204da3cbe65b3"
        d = parse_reference(f"actions/checkout@{sha}")
        assert d.ref == sha
        assert d.cache_id == f"checkout_{sha}"

    def test_urls(self):
        d = parse_reference("actions/checkout/sub@v4")
        assert d.marketplace_url == "https://github.com/marketplace/actions/checkout"
        assert d.tree_url == "https://github.com/actions/checkout/tree/v4"
        assert d.browse_url == "https://github.com/actions/checkout/blob/v4/sub/action.yml"

    def test_identities(self):
        d = parse_reference("actions/checkout/sub@v4")
        assert d.cache_id == "checkout_v4"
        assert d.document_id == "actions/checkout/sub/checkout_v4"
        assert d.document_id != parse_reference("other/checkout@v4").document_id

    def test_whitespace_is_stripped(self):
        d = parse_reference("  actions/checkout@v4 \n")
        assert d.raw_reference == "actions/checkout@v4"
        assert d.ref == "v4"


class TestReusableWorkflowReferences:
    def test_workflow(self):
        d = parse_reference("org/repo/.github/workflows/ci.yml@main")
        assert d.kind == ReferenceKind.REUSABLE_WORKFLOW
        assert d.slug == "org/repo"
        assert d.ref == "main"
        assert d.name == "ci.yml"
        assert d.download_location.endswith("/org/repo/main/.github/workflows/ci.yml")
        assert not d.is_action

    def test_yaml_extension(self):
        d = parse_reference("org/repo/.github/workflows/deploy.yaml@v2")
        assert d.kind == ReferenceKind.REUSABLE_WORKFLOW
        assert d.name == "deploy.yaml"

    def test_browse_url(self):
        d = parse_reference("org/repo/.github/workflows/ci.yml@main")
        assert d.browse_url == "https://github.com/org/repo/blob/main/.github/workflows/ci.yml"

    def test_extension_in_ref_does_not_make_a_workflow(self):
        d = parse_reference("org/tool@build.yml")
        assert d.kind == ReferenceKind.ACTION


class TestLocalReferences:
    def test_local_action_directory(self):
        raw = "./.github/actions/local"
        d = parse_reference(raw)
        assert d.is_local
        assert d.kind == ReferenceKind.LOCAL_PATH
        assert d.download_location == raw
        assert d.name == "local"
        assert d.is_action
        assert d.is_resolvable

    def test_local_workflow(self):
        d = parse_reference("./.github/workflows/build.yml")
        assert d.is_local
        assert d.name == "build.yml"
        assert not d.is_action

    def test_local_never_derives_urls(self):
        d = parse_reference("./.github/actions/local")
        assert d.raw_url is None
        assert d.browse_url is None
        assert d.marketplace_url is None

    def test_local_with_tag_keeps_literal_location(self):
        raw = "./.github/workflows/build.yml@main"
        d = parse_reference(raw)
        assert d.is_local
        assert d.download_location == raw

    def test_relative_path_outside_control_dir_is_unparsable(self):
        d = parse_reference("./actions/local")
        assert not d.is_local
        assert d.kind == ReferenceKind.UNPARSABLE


class TestUnparsableReferences:
    @pytest.mark.parametrize("raw", ["no-at-sign", "@v1/repo", "checkout@v4", "docker://alpine:3.8"])
    def test_unparsable(self, raw):
        d = parse_reference(raw)
        assert d.kind == ReferenceKind.UNPARSABLE
        assert d.slug == ""
        assert d.ref == ""
        assert d.download_location == ""
        assert not d.is_resolvable

    @pytest.mark.parametrize("raw", [None, "", "   ", 42])
    def test_blank_or_non_string(self, raw):
        d = parse_reference(raw)
        assert d.kind == ReferenceKind.UNPARSABLE
        assert not d.is_resolvable


class TestDescriptor:
    def test_descriptor_is_immutable(self):
        d = parse_reference("actions/checkout@v4")
        with pytest.raises(dataclasses.FrozenInstanceError):
            d.ref = "v5"

    def test_equal_inputs_give_equal_descriptors(self):
        assert parse_reference("actions/checkout@v4") == parse_reference("actions/checkout@v4")

    def test_storage_key_is_stable(self):
        a = parse_reference("actions/checkout@v4")
        b = parse_reference("actions/checkout@v4")
        assert a.storage_key == b.storage_key
        assert a.storage_key != parse_reference("other/checkout@v4").storage_key

    def test_custom_hosts(self):
        d = parse_reference(
            "actions/checkout@v4",
            raw_content_host="http://localhost:8080/",
            github_host="https://ghe.example.com",
        )
        assert d.download_location == "http://localhost:8080/actions/checkout/v4/action.yml"
        assert d.marketplace_url == "https://ghe.example.com/marketplace/actions/checkout"
