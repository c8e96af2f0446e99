"""Tests for CLI dispatch, error handling, and argument parsing."""

import json

import pytest

from codeweight.cli import _out, build_parser, main


@pytest.fixture
def graph_file(order_document, tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(order_document), encoding="utf-8")
    return str(path)


def _run(capsys, *argv) -> tuple[int, dict]:
    code = main(list(argv))
    return code, json.loads(capsys.readouterr().out)


class TestOutErrorHandling:
    def test_out_success(self, capsys):
        assert _out({"ok": True}) == 0
        assert json.loads(capsys.readouterr().out)["ok"] is True

    def test_out_error_dict(self, capsys):
        assert _out({"error": "Something went wrong"}) == 1

    def test_out_error_in_nested_dict_no_false_positive(self, capsys):
        assert _out({"data": {"error": "nested"}}) == 0


class TestParserStructure:
    def test_score_defaults(self):
        args = build_parser().parse_args(["score", "--graph", "g.json"])
        assert args.backend == "memory"
        assert args.workers is None
        assert args.lenient is False

    def test_query_requires_method(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["query", "callers", "--class", "OrderService"])

    def test_chain_arguments(self):
        args = build_parser().parse_args(["query", "chain", "--from", "A.b", "--to", "C.d"])
        assert (args.query_cmd, args.source, args.target) == ("chain", "A.b", "C.d")

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1


class TestGraphCommands:
    def test_stats(self, capsys, graph_file):
        code, data = _run(capsys, "stats", "--graph", graph_file)
        assert code == 0
        assert data["project"] == "shop"
        assert data["total_classes"] == 3
        assert data["total_trees"] == 1
        assert data["layer_distribution"] == {"CONTROLLER": 1, "SERVICE": 1, "REPOSITORY": 1}

    def test_validate_ok(self, capsys, graph_file):
        code, data = _run(capsys, "validate", "--graph", graph_file)
        assert code == 0
        assert data["valid"] is True

    def test_validate_reports_dangling(self, capsys, order_document, tmp_path):
        order_document["edges"].append({"id": "e3", "from_method_id": "m_save", "to_method_id": "m_ghost"})
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(order_document), encoding="utf-8")
        code, data = _run(capsys, "validate", "--graph", str(path))
        assert code == 1
        assert data["issues"][0]["kind"] == "dangling_method"

    def test_export_to_stdout(self, capsys, graph_file):
        code = main(["export", "--graph", graph_file, "--generated-at", "fixed"])
        out = capsys.readouterr().out
        assert code == 0
        assert "// Generated at: fixed" in out
        assert "// Classes: 3" in out

    def test_export_to_file(self, capsys, graph_file, tmp_path):
        target = tmp_path / "out" / "graph.cypher"
        code, data = _run(capsys, "export", "--graph", graph_file, "--out", str(target))
        assert code == 0
        assert data["written"] == str(target)
        assert target.exists()

    def test_trees_with_core_paths(self, capsys, graph_file):
        code, data = _run(capsys, "trees", "--graph", graph_file, "--core-paths")
        assert code == 0
        assert data["trees"][0]["tree_number"] == "T001"
        assert len(data["core_paths"]) == 2

    def test_missing_graph_file(self, capsys, tmp_path):
        code, data = _run(capsys, "stats", "--graph", str(tmp_path / "nope.json"))
        assert code == 1
        assert data["type"] == "IngestError"


class TestQueryCommands:
    def test_chain(self, capsys, graph_file):
        code, data = _run(
            capsys, "query", "chain", "--graph", graph_file,
            "--from", "OrderController.placeOrder", "--to", "OrderRepository.save",
        )
        assert code == 0
        assert data["found"] is True
        assert data["path_length"] == 2

    def test_chain_rejects_bad_reference(self, capsys, graph_file):
        code, data = _run(capsys, "query", "chain", "--graph", graph_file, "--from", "nodot", "--to", "A.b")
        assert code == 1

    def test_callers(self, capsys, graph_file):
        code, data = _run(
            capsys, "query", "callers", "--graph", graph_file, "--class", "OrderService", "--method", "createOrder",
        )
        assert code == 0
        assert data["total_callers"] == 1

    def test_memory_backend_needs_graph(self, capsys):
        code, data = _run(capsys, "query", "architecture", "--class", "OrderService")
        assert code == 1
        assert "--graph" in data["error"]

    def test_neo4j_backend_is_closed(self, capsys, monkeypatch):
        from codeweight.adapters import neo4j_store
        from test_neo4j_store import FakeDriver

        driver = FakeDriver()
        real = neo4j_store.Neo4jQueryService
        monkeypatch.setattr(neo4j_store, "Neo4jQueryService", lambda cfg: real(cfg, driver=driver))
        code, data = _run(
            capsys, "query", "callers", "--backend", "neo4j", "--class", "OrderService", "--method", "createOrder",
        )
        assert code == 0
        assert data["total_callers"] == 0
        assert driver.closed


class TestScoreCommand:
    def test_scores_core_paths(self, capsys, graph_file):
        code, data = _run(capsys, "score", "--graph", graph_file, "--workers", "2")
        assert code == 0
        assert data["total_paths"] == 2
        assert data["timed_out"] == []
        assert all(0 <= s["intent_weight"] <= 100 for s in data["scored"])

    def test_explicit_paths_and_changes(self, capsys, graph_file, tmp_path):
        paths = tmp_path / "paths.json"
        paths.write_text(json.dumps([{
            "id": "checkout",
            "methods": ["OrderController.placeOrder", "OrderService.createOrder"],
            "related_changes": ["src/OrderController.java"],
        }]), encoding="utf-8")
        changes = tmp_path / "changes.json"
        changes.write_text(json.dumps({
            "changed_files": [{"path": "src/OrderController.java", "added_lines": 30}],
        }), encoding="utf-8")
        code, data = _run(capsys, "score", "--graph", graph_file, "--paths", str(paths), "--changes", str(changes))
        assert code == 0
        [scored] = data["scored"]
        assert scored["path_id"] == "checkout"
        assert scored["intent_components"]["git"] > 0
