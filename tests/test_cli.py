"""Tests for the command-line interface."""

import json
import logging
from unittest.mock import patch

import pytest

from casegraph.cli import main


@pytest.fixture(autouse=True)
def restore_root_logger(monkeypatch):
    """Keep CLI logging setup from leaking into other tests."""
    monkeypatch.delenv("CASEGRAPH_SNAPSHOT_PATH", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestAnalyzeCommand:
    def test_all(self, snapshot_file, tmp_path):
        output = tmp_path / "analysis.json"

        assert main(["analyze", str(snapshot_file), "-o", str(output)]) == 0

        results = json.loads(output.read_text())["results"]
        assert set(results) == {"entityScores", "relationPatterns", "clusters", "suggestedRelations"}

    def test_single_type(self, snapshot_file, tmp_path):
        output = tmp_path / "clusters.json"

        main(["analyze", str(snapshot_file), "--type", "clusters", "-o", str(output)])

        clusters = json.loads(output.read_text())["results"]["clusters"]
        assert [len(c["entities"]) for c in clusters] == [4, 1]

    def test_missing_snapshot(self, tmp_path, capsys):
        assert main(["analyze", str(tmp_path / "missing.json")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_type_rejected(self, snapshot_file):
        with pytest.raises(SystemExit):
            main(["analyze", str(snapshot_file), "--type", "centrality"])


class TestSearchCommand:
    def test_search(self, snapshot_file, capsys):
        assert main(["search", str(snapshot_file), "know", "--limit", "2"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["query"] == "know"
        assert [e["id"] for e in data["results"]] == ["bob", "alice"]

    def test_no_relations(self, snapshot_file, capsys):
        main(["search", str(snapshot_file), "know", "--no-relations"])

        assert json.loads(capsys.readouterr().out)["results"] == []


class TestLayoutCommand:
    def test_layout(self, snapshot_file, tmp_path):
        output = tmp_path / "layout.json"

        assert main(["layout", str(snapshot_file), "-o", str(output)]) == 0

        data = json.loads(output.read_text())
        assert len(data["nodes"]) == 9
        assert len(data["edges"]) == 8


class TestOtherCommands:
    def test_graphml(self, snapshot_file, tmp_path):
        output = tmp_path / "graph.graphml"

        assert main(["graphml", str(snapshot_file), "-o", str(output)]) == 0
        assert output.exists()

    def test_generate_config(self, capsys):
        assert main(["generate-config"]) == 0

        assert json.loads(capsys.readouterr().out)["layout"]["node_spacing"] == 250

    def test_serve(self, snapshot_file):
        with patch("casegraph.api.server.uvicorn.run") as run:
            assert main(["serve", "--snapshot", str(snapshot_file), "--port", "8123"]) == 0

        assert run.call_args.kwargs["port"] == 8123

    def test_no_command(self, capsys):
        assert main([]) == 1


class TestTableOutput:
    def test_analyze_table(self, snapshot_file, capsys):
        assert main(["analyze", str(snapshot_file), "--type", "clusters", "--table"]) == 0

        out = capsys.readouterr().out
        assert "Clusters" in out
        assert "cluster-1" in out

    def test_search_table(self, snapshot_file, capsys):
        assert main(["search", str(snapshot_file), "alice", "--table"]) == 0

        assert "alice" in capsys.readouterr().out

    def test_markup_in_values_printed_literally(self, tmp_path, capsys):
        snapshot = tmp_path / "brackets.json"
        snapshot.write_text(json.dumps({
            "entities": [
                {"id": "[bold]a", "type_text_data_id": "t1"},
                {"id": "b", "type_text_data_id": "t2"},
            ],
            "relations": [
                {"id": "r1", "subject_entity_id": "[bold]a", "predicate": "[/x]", "object_entity_id": "b"},
            ],
        }))

        assert main(["analyze", str(snapshot), "--table"]) == 0

        out = capsys.readouterr().out
        assert "[/x]" in out
        assert "[bold]a" in out


class TestCommandLogging:
    """Log lines go to stderr so stdout stays parseable."""

    def test_invalid_snapshot_logged_to_stderr(self, tmp_path, capsys):
        snapshot = tmp_path / "broken.json"
        snapshot.write_text("{not json")

        assert main(["analyze", str(snapshot)]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "snapshot_invalid_json" in captured.err

    def test_json_logs_carry_command(self, snapshot_file, tmp_path, capsys):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"logging": {"format": "json"}}))

        assert main(["-c", str(config_file), "-v", "search", str(snapshot_file), "alice"]) == 0

        captured = capsys.readouterr()
        assert json.loads(captured.out)["query"] == "alice"
        records = [json.loads(line) for line in captured.err.splitlines() if line.startswith("{")]
        loaded = next(r for r in records if r["message"] == "snapshot_loaded")
        assert loaded["command"] == "search"
        assert loaded["entity_count"] == 5

    def test_non_object_rows_reported(self, tmp_path, capsys):
        snapshot = tmp_path / "rows.json"
        snapshot.write_text(json.dumps({"entities": ["alice"], "relations": []}))

        assert main(["analyze", str(snapshot)]) == 1
        assert "must be a JSON object" in capsys.readouterr().err
