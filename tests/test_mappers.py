"""
Tests for MapperLoader.
"""

import json
from unittest.mock import MagicMock

import pytest

from sessionkit.config import SessionConfiguration
from sessionkit.errors import ParseFailure, ResourceUnreadable
from sessionkit.parsing import JsonMapperParser
from sessionkit.resources import BytesResource, FileResource, resolve_mapper_locations
from sessionkit.runtime import MapperLoader


def _mapper(namespace, *statement_ids):
    document = {
        "namespace": namespace,
        "statements": [
            {"id": sid, "kind": "select", "sql": f"select '{sid}'"} for sid in statement_ids
        ],
    }
    return BytesResource(json.dumps(document), identity=f"{namespace}.json")


class TestMapperLoader:
    """Tests for MapperLoader."""

    def test_not_specified_logs_debug(self, caplog):
        loader = MapperLoader(MagicMock())

        with caplog.at_level("DEBUG", logger="sessionkit.runtime"):
            assert loader.load(SessionConfiguration(), None) == 0

        assert "was not specified" in caplog.text

    def test_empty_list_logs_warning(self, caplog):
        loader = MapperLoader(MagicMock())

        with caplog.at_level("WARNING", logger="sessionkit.runtime"):
            assert loader.load(SessionConfiguration(), []) == 0

        assert "matching resources are not found" in caplog.text
        assert caplog.records[-1].levelname == "WARNING"

    def test_none_entries_skipped_and_order_kept(self):
        parser = MagicMock()
        configuration = SessionConfiguration()
        refs = [_mapper("a"), None, _mapper("b")]

        assert MapperLoader(parser).load(configuration, refs) == 2

        identities = [c.args[2] for c in parser.parse_mapper.call_args_list]
        assert identities == ["a.json", "b.json"]

    def test_parse_failure_aborts_remaining(self):
        parser = MagicMock()
        parser.parse_mapper.side_effect = [None, ValueError("broken"), None]
        refs = [_mapper("a"), _mapper("b"), _mapper("c")]

        with pytest.raises(ParseFailure) as exc_info:
            MapperLoader(parser).load(SessionConfiguration(), refs)

        assert exc_info.value.resource == "b.json"
        assert parser.parse_mapper.call_count == 2

    def test_unreadable_resource(self, tmp_path):
        parser = MagicMock()
        refs = [FileResource(tmp_path / "gone.json"), _mapper("a")]

        with pytest.raises(ResourceUnreadable):
            MapperLoader(parser).load(SessionConfiguration(), refs)

        parser.parse_mapper.assert_not_called()

    def test_loads_json_mappers_from_directory(self, write_json, tmp_path):
        write_json("mappers/orders.json", {
            "namespace": "app.OrderMapper",
            "statements": [{"id": "findAll", "kind": "select", "sql": "select * from orders"}],
        })
        write_json("mappers/users.json", {
            "namespace": "app.UserMapper",
            "statements": [{"id": "findAll", "kind": "select", "sql": "select * from users"}],
        })
        configuration = SessionConfiguration()

        refs = resolve_mapper_locations(tmp_path / "mappers")
        MapperLoader(JsonMapperParser()).load(configuration, refs)

        assert sorted(configuration.statements) == ["app.OrderMapper.findAll", "app.UserMapper.findAll"]
        assert len(configuration.loaded_resources) == 2

    def test_duplicate_statement_across_mappers_is_parse_failure(self):
        configuration = SessionConfiguration()
        duplicate = {
            "namespace": "app.M",
            "statements": [{"id": "x", "kind": "select", "sql": "select 2"}],
        }
        refs = [_mapper("app.M", "x"), BytesResource(json.dumps(duplicate), identity="other.json")]

        with pytest.raises(ParseFailure) as exc_info:
            MapperLoader(JsonMapperParser()).load(configuration, refs)

        assert exc_info.value.resource == "other.json"
        assert "already defined" in str(exc_info.value)
