"""
CLI Command Integration Tests.

Tests for CLI command operations including:
- lift for JSON, CSV, relational and plan-declared inputs
- SHACL report files and strict exit codes
- shacl shape generation
- Error handling and exit code mapping

Run with: pytest tests/cli/test_cli_commands.py -v
"""

import json
import sqlite3
import subprocess
from unittest.mock import patch

import pytest
from rdflib import Graph, Literal, URIRef

from fixtures import (
    CYCLE_A_YAML,
    CYCLE_B_YAML,
    PERSON_SCHEMA,
    SHAPE_EXAMPLE_SCHEMA,
    THING_PLAN_YAML,
)
from semlift.cli import helpers
from semlift.cli.commands import exit_code_for, load_plan_provider, main
from semlift.constants import ExitCode
from semlift.core.cancellation import OperationCancelledException
from semlift.core.errors import (
    ConfigurationError,
    ExternalProcessFailure,
    FetchError,
    ImportCycleError,
    ProtocolError,
    ResourceNotFoundError,
    SchemaViolation,
    SemliftError,
)
from semlift.plugins import OgcBblocksProvider

VOCAB = "https://example.com/vocab#"
THING = URIRef("https://example.com/thing/abc")

SHAPES = f"""
@prefix sh: <http://www.w3.org/ns/shacl#> .
@prefix ex: <{VOCAB}> .

ex:ThingShape a sh:NodeShape ;
    sh:targetSubjectsOf ex:code ;
    sh:property [ sh:path ex:label ; sh:minCount 1 ] .
"""

SHACL_PLAN_YAML = THING_PLAN_YAML + """
additionalSteps:
  - type: shacl
    ref: shapes.ttl
"""


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Private cache directory and fresh logging handlers per test."""
    monkeypatch.setenv("SEMLIFT_CACHE_DIR", str(tmp_path / "cache"))
    yield
    helpers._clear_managed_handlers()
    helpers._LOGGING_SIGNATURE = None


@pytest.fixture
def workspace(plan_dir):
    (plan_dir / "things.yaml").write_text(THING_PLAN_YAML)
    (plan_dir / "shacl.yaml").write_text(SHACL_PLAN_YAML)
    (plan_dir / "shapes.ttl").write_text(SHAPES)
    (plan_dir / "thing.json").write_text(json.dumps({"type": "thing", "code": "abc"}))
    return plan_dir


def read_graph(path, fmt="turtle"):
    graph = Graph()
    graph.parse(str(path), format=fmt)
    return graph


@pytest.mark.integration
class TestLiftCommand:

    def test_json_to_file(self, workspace):
        out = workspace / "out" / "thing.ttl"
        code = main([
            "lift", "--input-format", "json", "--plan", str(workspace / "things.yaml"),
            "--out", str(out), str(workspace / "thing.json"),
        ])

        assert code == ExitCode.SUCCESS
        assert (THING, URIRef(VOCAB + "code"), Literal("abc")) in read_graph(out)

    def test_json_to_stdout(self, workspace, capsysbinary):
        code = main([
            "lift", "-f", "json", "-p", str(workspace / "things.yaml"),
            "-i", str(workspace / "thing.json"), "--rdf-lang", "nt",
        ])

        assert code == ExitCode.SUCCESS
        assert b"<https://example.com/thing/abc>" in capsysbinary.readouterr().out

    def test_csv_input(self, workspace):
        (workspace / "rows.csv").write_text("type,code,count\nthing,abc,3\n")
        out = workspace / "rows.ttl"
        code = main([
            "lift", "-f", "csv", "-p", str(workspace / "things.yaml"), "--out", str(out),
            "--csv-infer-types", "false", str(workspace / "rows.csv"),
        ])

        assert code == ExitCode.SUCCESS
        graph = read_graph(out)
        assert (None, URIRef(VOCAB + "count"), Literal("3")) in graph

    def test_db_input(self, workspace, tmp_path):
        db_path = tmp_path / "things.db"
        connection = sqlite3.connect(str(db_path))
        connection.execute("CREATE TABLE things (id TEXT, code TEXT)")
        connection.execute("INSERT INTO things VALUES ('urn:thing:1', 'abc')")
        connection.commit()
        connection.close()
        plan = workspace / "db.yaml"
        plan.write_text('context:\n  inline: {"@vocab": "https://example.com/vocab#", id: "@id"}\n')
        out = workspace / "db.ttl"

        code = main([
            "lift", "-f", "db", "-p", str(plan), "--db-url", f"sqlite:///{db_path}",
            "--db-table", "things", "--out", str(out),
        ])

        assert code == ExitCode.SUCCESS
        assert (URIRef("urn:thing:1"), URIRef(VOCAB + "code"), Literal("abc")) in read_graph(out)

    def test_id_rules_override(self, workspace):
        (workspace / "rules.yaml").write_text("- {path: /id, template: 'urn:thing:{code}'}\n")
        out = workspace / "thing.ttl"
        code = main([
            "lift", "-f", "json", "-p", str(workspace / "things.yaml"), "--out", str(out),
            "--id-rules", str(workspace / "rules.yaml"), str(workspace / "thing.json"),
        ])

        assert code == ExitCode.SUCCESS
        assert URIRef("urn:thing:abc") in set(read_graph(out).subjects())

    def test_config_file_sets_output_form(self, workspace, tmp_path):
        config_path = tmp_path / "semlift.json"
        config_path.write_text(json.dumps({"lift": {"output": "ntriples"}, "logging": {"level": "WARNING"}}))
        out = workspace / "thing.nt"
        code = main([
            "lift", "-f", "json", "-p", str(workspace / "things.yaml"), "--out", str(out),
            "--config", str(config_path), str(workspace / "thing.json"),
        ])

        assert code == ExitCode.SUCCESS
        assert (THING, URIRef(VOCAB + "code"), Literal("abc")) in read_graph(out, "nt")


@pytest.mark.integration
class TestShaclReports:

    def test_report_written_next_to_output(self, workspace):
        out = workspace / "thing.ttl"
        code = main([
            "lift", "-f", "json", "-p", str(workspace / "shacl.yaml"), "--out", str(out),
            str(workspace / "thing.json"),
        ])

        assert code == ExitCode.SUCCESS
        report = read_graph(workspace / "thing.ttl.shacl.ttl")
        assert (None, URIRef("http://www.w3.org/ns/shacl#conforms"), Literal(False)) in report

    def test_strict_non_conforming_exit_code(self, workspace, capsys):
        out = workspace / "thing.ttl"
        code = main([
            "lift", "-f", "json", "-p", str(workspace / "shacl.yaml"), "--out", str(out),
            "--strict", str(workspace / "thing.json"),
        ])

        assert code == ExitCode.VALIDATION_ERROR
        assert out.exists()
        assert (workspace / "thing.ttl.shacl.ttl").exists()
        assert "✗ SHACL validation failed" in capsys.readouterr().err


@pytest.mark.unit
class TestLiftErrors:

    def test_strict_schema_failure(self, workspace, capsys):
        (workspace / "schema.json").write_text(json.dumps(PERSON_SCHEMA))
        plan = workspace / "schema.yaml"
        plan.write_text(THING_PLAN_YAML + "additionalSteps:\n  - {type: json-schema, ref: schema.json}\n")

        code = main(["lift", "-f", "json", "-p", str(plan), str(workspace / "thing.json")])

        assert code == ExitCode.VALIDATION_ERROR
        assert "JSON Schema validation failed" in capsys.readouterr().err

    def test_missing_plan(self, workspace):
        code = main(["lift", "-f", "json", "-p", str(workspace / "nope.yaml"), str(workspace / "thing.json")])
        assert code == ExitCode.FILE_NOT_FOUND

    def test_missing_input_file(self, workspace):
        code = main(["lift", "-f", "json", "-p", str(workspace / "things.yaml"), str(workspace / "nope.json")])
        assert code == ExitCode.FILE_NOT_FOUND

    def test_import_cycle(self, workspace):
        (workspace / "cycle-a.yaml").write_text(CYCLE_A_YAML)
        (workspace / "cycle-b.yaml").write_text(CYCLE_B_YAML)
        code = main(["lift", "-f", "json", "-p", str(workspace / "cycle-a.yaml"), str(workspace / "thing.json")])
        assert code == ExitCode.CONFIG_ERROR

    def test_plan_input_without_declared_input(self, workspace, capsys):
        code = main(["lift", "-f", "plan", "-p", str(workspace / "things.yaml")])
        assert code == ExitCode.CONFIG_ERROR
        assert "declares no input" in capsys.readouterr().err

    def test_db_without_url(self, workspace):
        code = main(["lift", "-f", "db", "-p", str(workspace / "things.yaml"), "--db-table", "t"])
        assert code == ExitCode.CONFIG_ERROR

    def test_jq_failure(self, workspace):
        plan = workspace / "jq.yaml"
        plan.write_text(THING_PLAN_YAML + "additionalSteps:\n  - {type: jq, code: '.['}\n")
        failed = subprocess.CompletedProcess(args=[], returncode=3, stdout=b"", stderr=b"syntax error")

        with patch("semlift.steps.jq.subprocess.run", return_value=failed):
            code = main(["lift", "-f", "json", "-p", str(plan), str(workspace / "thing.json")])

        assert code == ExitCode.EXTERNAL_PROCESS_ERROR

    def test_unknown_plan_provider(self, workspace):
        code = main([
            "lift", "-f", "json", "-p", str(workspace / "things.yaml"),
            "--plan-provider", "not-a-provider", str(workspace / "thing.json"),
        ])
        assert code == ExitCode.CONFIG_ERROR

    def test_no_command(self, capsys):
        assert main([]) == ExitCode.ERROR
        assert "usage" in capsys.readouterr().out.lower()


@pytest.mark.integration
class TestShaclCommand:

    def test_generate_shapes(self, tmp_path):
        schema = tmp_path / "person.schema.json"
        schema.write_text(json.dumps(SHAPE_EXAMPLE_SCHEMA))
        out = tmp_path / "person.shacl.ttl"

        code = main([
            "shacl", "--schema", str(schema), "--out", str(out),
            "--target-class", "https://example.com/Person",
        ])

        assert code == ExitCode.SUCCESS
        graph = read_graph(out)
        root = URIRef("urn:semlift:shape#Person")
        assert (root, URIRef("http://www.w3.org/ns/shacl#targetClass"), URIRef("https://example.com/Person")) in graph

    def test_context_and_namespaces(self, tmp_path):
        schema = tmp_path / "s.json"
        schema.write_text(json.dumps({"properties": {"name": {"type": "string"}, "age": {"type": "integer"}}}))
        context = tmp_path / "c.jsonld"
        context.write_text(json.dumps({"@context": {"name": "https://schema.org/name"}}))
        out = tmp_path / "shapes.ttl"

        code = main([
            "shacl", "-s", str(schema), "--context", str(context), "--out", str(out),
            "--target-namespace", "https://shapes.example/", "--property-namespace", "https://props.example/",
            "--shape-name", "Thing", "--no-labels",
        ])

        assert code == ExitCode.SUCCESS
        graph = read_graph(out)
        paths = set(graph.objects(None, URIRef("http://www.w3.org/ns/shacl#path")))
        assert paths == {URIRef("https://schema.org/name"), URIRef("https://props.example/age")}
        assert (URIRef("https://shapes.example/Thing"), None, None) in graph
        assert not list(graph.objects(None, URIRef("http://www.w3.org/2000/01/rdf-schema#label")))

    def test_invalid_schema(self, tmp_path):
        schema = tmp_path / "s.json"
        schema.write_text("[1, 2]")
        assert main(["shacl", "-s", str(schema)]) == ExitCode.CONFIG_ERROR


@pytest.mark.unit
class TestExitCodes:

    @pytest.mark.parametrize("error,expected", [
        (SchemaViolation(["x"]), ExitCode.VALIDATION_ERROR),
        (ConfigurationError("x"), ExitCode.CONFIG_ERROR),
        (ImportCycleError("a"), ExitCode.CONFIG_ERROR),
        (ResourceNotFoundError("a"), ExitCode.FILE_NOT_FOUND),
        (FileNotFoundError("a"), ExitCode.FILE_NOT_FOUND),
        (FetchError("u", "down", 503), ExitCode.FETCH_ERROR),
        (ProtocolError("bad"), ExitCode.FETCH_ERROR),
        (ExternalProcessFailure(1, "boom"), ExitCode.EXTERNAL_PROCESS_ERROR),
        (OperationCancelledException(), ExitCode.CANCELLED),
        (SemliftError("other"), ExitCode.ERROR),
    ])
    def test_mapping(self, error, expected):
        assert exit_code_for(error) == expected


@pytest.mark.unit
class TestPlanProviderLoading:

    def test_builtin(self, memory_resolver):
        assert isinstance(load_plan_provider("ogc-bblocks", memory_resolver), OgcBblocksProvider)

    def test_not_a_provider(self, memory_resolver):
        with pytest.raises(ConfigurationError, match="must be a PlanProvider"):
            load_plan_provider("fixtures.sample_transforms:UppercaseName", memory_resolver)

    def test_missing_module(self, memory_resolver):
        with pytest.raises(ConfigurationError, match="Cannot load plan provider"):
            load_plan_provider("no_such_module_xyz:Provider", memory_resolver)
