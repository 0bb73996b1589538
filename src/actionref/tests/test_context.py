# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import threading

from actionref.model.builder import build_tree
from actionref.model.context import DocumentContextRegistry

from .samples import ACTION_MANIFEST, WORKFLOW


class TestDocumentContext:
    def test_root_owns_context(self):
        root = build_tree(WORKFLOW).root
        assert root.context is root.tree.context
        assert root.context.root == root

    def test_jobs(self):
        context = build_tree(WORKFLOW).context
        assert list(context.jobs) == ["build", "test", "deploy"]

    def test_steps(self):
        context = build_tree(WORKFLOW).context
        assert len(context.steps) == 3

    def test_trigger_inputs_outputs(self):
        context = build_tree(WORKFLOW).context
        assert list(context.inputs) == ["target", "quoted"]
        assert list(context.outputs) == ["artifact"]
        assert context.secrets == {}

    def test_references_in_document_order(self):
        context = build_tree(WORKFLOW).context
        assert [n.scalar for n in context.references] == [
            "actions/checkout@v4",
            "actions/setup-python@v5",
            "org/repo/.github/workflows/deploy.yml@main",
        ]

    def test_dependencies(self):
        context = build_tree(WORKFLOW).context
        assert context.dependencies("deploy") == ["build", "test"]
        assert context.dependencies("test") == ["build"]
        assert context.dependencies("build") == []
        assert context.dependencies("missing") == []

    def test_action_manifest_has_no_trigger_blocks(self):
        context = build_tree(ACTION_MANIFEST).context
        assert context.inputs == {}
        assert context.jobs == {}

    def test_results_are_cached(self):
        context = build_tree(WORKFLOW).context
        assert context.jobs is context.jobs

    def test_init_returns_self(self):
        context = build_tree(WORKFLOW).context
        assert context.init() is context

    def test_concurrent_access_computes_once(self):
        context = build_tree(WORKFLOW).context
        results = []

        def read():
            results.append(context.jobs)

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(r is results[0] for r in results)


class TestDocumentContextRegistry:
    def test_put_get_remove(self):
        registry = DocumentContextRegistry()
        context = build_tree(ACTION_MANIFEST).context
        registry.put("org/tool/tool_v1", context)
        assert "org/tool/tool_v1" in registry
        assert registry.get("org/tool/tool_v1") is context
        assert len(registry) == 1
        assert registry.remove("org/tool/tool_v1") is context
        assert registry.get("org/tool/tool_v1") is None
        assert registry.remove("org/tool/tool_v1") is None

    def test_clear(self):
        registry = DocumentContextRegistry()
        registry.put("a", build_tree(ACTION_MANIFEST).context)
        registry.put("b", build_tree(WORKFLOW).context)
        registry.clear()
        assert len(registry) == 0
