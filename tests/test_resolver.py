"""
Tests for source resolution.

Tests for:
- SourceResolver classification and conflicts
- Property override precedence
- PendingParse one-shot behaviour and error wrapping
"""

from unittest.mock import MagicMock

import pytest

from sessionkit.config import SessionConfiguration
from sessionkit.errors import (
    ConfigConflict,
    LifecycleError,
    MissingRequired,
    ParseFailure,
    ResourceUnreadable,
)
from sessionkit.resources import BytesResource, FileResource
from sessionkit.runtime import PendingParse, SourceKind, SourceResolver


@pytest.fixture
def parser():
    return MagicMock(spec=["parse_descriptor"])


@pytest.fixture
def descriptor():
    return BytesResource(b"{}", identity="session.json")


class TestSourceResolver:
    """Tests for SourceResolver."""

    def test_both_sources_conflict(self, parser, descriptor):
        resolver = SourceResolver(parser)

        with pytest.raises(ConfigConflict, match="can not be specified together"):
            resolver.resolve(SessionConfiguration(), descriptor)

        parser.parse_descriptor.assert_not_called()

    def test_classify(self, descriptor):
        resolver = SourceResolver()

        assert resolver.classify(SessionConfiguration(), None) is SourceKind.EXPLICIT
        assert resolver.classify(None, descriptor) is SourceKind.DESCRIPTOR
        assert resolver.classify(None, None) is SourceKind.DEFAULT

    def test_explicit_configuration_returned_with_overrides_winning(self):
        explicit = SessionConfiguration(variables={"schema": "old", "keep": "yes"})

        configuration, pending = SourceResolver().resolve(explicit, None, {"schema": "new"})

        assert configuration is explicit
        assert pending is None
        assert configuration.variables == {"schema": "new", "keep": "yes"}

    def test_explicit_configuration_claimed_once(self):
        explicit = SessionConfiguration()
        resolver = SourceResolver()

        resolver.resolve(explicit, None)

        assert explicit.claimed
        with pytest.raises(LifecycleError, match="already used"):
            resolver.resolve(explicit, None)

    def test_frozen_explicit_configuration_rejected(self):
        explicit = SessionConfiguration()
        explicit.freeze()

        with pytest.raises(LifecycleError):
            SourceResolver().resolve(explicit, None, {"schema": "main"})

    def test_descriptor_parse_is_deferred(self, parser, descriptor):
        configuration, pending = SourceResolver(parser).resolve(None, descriptor, {"schema": "main"})

        assert isinstance(pending, PendingParse)
        assert pending.identity == "session.json"
        assert configuration.variables == {"schema": "main"}
        parser.parse_descriptor.assert_not_called()

    def test_descriptor_without_parser(self, descriptor):
        with pytest.raises(MissingRequired):
            SourceResolver().resolve(None, descriptor)

    def test_default_configuration(self, caplog):
        with caplog.at_level("DEBUG", logger="sessionkit.runtime"):
            configuration, pending = SourceResolver().resolve(None, None, {"a": 1})

        assert pending is None
        assert configuration.variables == {"a": 1}
        assert "using default configuration" in caplog.text


class TestPendingParse:
    """Tests for PendingParse."""

    def test_runs_parser_once(self, parser, descriptor):
        configuration = SessionConfiguration()
        pending = PendingParse(descriptor, parser, {"schema": "main"})

        pending(configuration)

        assert pending.done
        parser.parse_descriptor.assert_called_once()
        stream, passed_configuration, overrides = parser.parse_descriptor.call_args.args
        assert passed_configuration is configuration
        assert overrides == {"schema": "main"}

        with pytest.raises(LifecycleError):
            pending(configuration)

    def test_unreadable_descriptor(self, parser, tmp_path):
        pending = PendingParse(FileResource(tmp_path / "missing.json"), parser, None)

        with pytest.raises(ResourceUnreadable) as exc_info:
            pending(SessionConfiguration())

        assert "missing.json" in exc_info.value.resource
        assert isinstance(exc_info.value.cause, FileNotFoundError)
        parser.parse_descriptor.assert_not_called()

    def test_parser_failure_wrapped(self, parser, descriptor):
        parser.parse_descriptor.side_effect = ValueError("bad token")
        pending = PendingParse(descriptor, parser, None)

        with pytest.raises(ParseFailure) as exc_info:
            pending(SessionConfiguration())

        assert exc_info.value.resource == "session.json"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert str(exc_info.value).startswith("[session.json]")
