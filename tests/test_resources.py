"""
Tests for resource references and statement transformers.
"""

import pytest

from sessionkit.config import SessionConfiguration
from sessionkit.config.statements import MappedStatement
from sessionkit.errors import ParseFailure
from sessionkit.resources import (
    BytesResource,
    FileResource,
    PackageResource,
    ResourceRef,
    resolve_mapper_locations,
    resource_from_location,
)
from sessionkit.runtime import KeywordCaseTransformer, chain_transformers
from sessionkit.scripting import SqlSource


class TestResources:
    """Tests for ResourceRef implementations."""

    def test_location_parsing(self):
        assert resource_from_location("myapp.mappers:user.json") == PackageResource(
            "myapp.mappers", "user.json"
        )
        assert resource_from_location("mappers/user.json") == FileResource("mappers/user.json")

    def test_package_resource(self, make_package):
        pkg = make_package({"mappers/user.json": '{"namespace": "u", "statements": []}'})

        resource = PackageResource(f"{pkg}.mappers", "user.json")

        assert isinstance(resource, ResourceRef)
        with resource.open() as stream:
            assert b'"namespace"' in stream.read()

    def test_missing_package_is_unreadable(self):
        with pytest.raises(FileNotFoundError):
            PackageResource("no_such_package_for_resources", "x.json").open()

    def test_resolve_mapper_locations_sorted(self, tmp_path):
        (tmp_path / "b.json").write_text("{}")
        (tmp_path / "a.json").write_text("{}")
        (tmp_path / "notes.txt").write_text("")

        refs = resolve_mapper_locations(tmp_path)

        assert [ref.path.name for ref in refs] == ["a.json", "b.json"]

    def test_resolve_missing_directory(self, tmp_path, caplog):
        assert resolve_mapper_locations(tmp_path / "absent") == []
        assert "not found" in caplog.text

    def test_bytes_resource_accepts_text(self):
        with BytesResource("select 1").open() as stream:
            assert stream.read() == b"select 1"


def _statement(sql):
    return MappedStatement(
        id="find",
        namespace="app.M",
        kind="select",
        sql_source=SqlSource(sql=sql, driver="raw"),
        resource="m.json",
    )


class TestStatementTransformers:
    """Tests for finalize-time statement transformers."""

    def test_keywords_uppercased_outside_quotes(self):
        statement = _statement('select "from", name from t where note = \'and or\' order by name')

        result = KeywordCaseTransformer().transform(statement, SessionConfiguration())

        assert result.sql == 'SELECT "from", name FROM t WHERE note = \'and or\' ORDER BY name'

    def test_unchanged_statement_returned_as_is(self):
        statement = _statement("SELECT 1")

        assert KeywordCaseTransformer().transform(statement, SessionConfiguration()) is statement

    def test_chain_applies_in_order(self):
        class Suffix:
            def __init__(self, text):
                self.text = text

            def transform(self, statement, configuration):
                return statement.with_sql(statement.sql + self.text)

        rewrite = chain_transformers([Suffix(" a"), Suffix(" b")], SessionConfiguration())

        assert rewrite(_statement("select 1")).sql == "select 1 a b"

    def test_chain_wraps_failures(self):
        class Broken:
            def transform(self, statement, configuration):
                raise KeyError("boom")

        rewrite = chain_transformers([Broken()], SessionConfiguration())

        with pytest.raises(ParseFailure, match="app.M.find") as exc_info:
            rewrite(_statement("select 1"))

        assert exc_info.value.resource == "m.json"
