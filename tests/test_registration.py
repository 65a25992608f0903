"""
Tests for the registration pipeline.

Tests for:
- Explicit alias, handler, plugin, driver and cache registration
- Scanned registrations and precedence of explicit entries
- Malformed input
"""

import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from sessionkit.config import SessionConfiguration, TypeHandler, alias, mapped_types
from sessionkit.errors import ConfigurationFrozen, RegistrationError
from sessionkit.runtime import RegistrationPipeline
from sessionkit.scripting import RawLanguageDriver, SqlSource, TemplateLanguageDriver

# =============================================================================
# Fixtures
# =============================================================================


@alias("thing")
class FirstThing:
    pass


@alias("thing")
class SecondThing:
    pass


@mapped_types(Decimal)
class MoneyHandler(TypeHandler):
    def to_sql(self, value):
        return str(value)

    def from_sql(self, value):
        return Decimal(value)


class UnmappedHandler(TypeHandler):
    def to_sql(self, value):
        return value

    def from_sql(self, value):
        return value


class RecordingPlugin:
    def __init__(self, name):
        self.name = name

    def intercept(self, invocation):
        return invocation()


class ShoutDriver(RawLanguageDriver):
    name = "shout"

    def create_sql_source(self, configuration, script):
        return SqlSource(sql=script.upper(), driver=self.name)


class SimpleCache:
    def __init__(self, cache_id):
        self.id = cache_id


@pytest.fixture
def configuration():
    return SessionConfiguration()


@pytest.fixture
def pipeline():
    return RegistrationPipeline()


# =============================================================================
# Aliases
# =============================================================================


class TestAliases:
    """Tests for alias registration."""

    def test_explicit_aliases_applied_in_order(self, configuration, pipeline):
        count = pipeline.apply_aliases(configuration, [FirstThing, SecondThing])

        assert count == 2
        assert configuration.type_alias_registry.resolve_alias("THING") is SecondThing

    def test_class_name_is_default_alias(self, configuration, pipeline):
        pipeline.apply_aliases(configuration, [MoneyHandler])

        assert configuration.type_alias_registry.resolve_alias("moneyhandler") is MoneyHandler

    def test_none_entry_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError, match=r"type_aliases\[1\] is None"):
            pipeline.apply_aliases(configuration, [FirstThing, None])

    def test_string_instead_of_list_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError, match="must be a list"):
            pipeline.apply_aliases(configuration, "FirstThing")

    def test_non_type_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError):
            pipeline.apply_aliases(configuration, [object()])

    def test_scanned_then_explicit(self, configuration, pipeline, make_package):
        pkg = make_package(
            {
                "models/user.py": (
                    "from sessionkit.config import alias\n\n"
                    "@alias('thing')\nclass User:\n    pass\n\n"
                    "class Order:\n    pass\n"
                ),
            }
        )

        count = pipeline.apply_aliases(configuration, [FirstThing], package=f"{pkg}.models")

        registry = configuration.type_alias_registry
        assert count == 3
        assert registry.resolve_alias("order").__module__ == f"{pkg}.models.user"
        assert registry.resolve_alias("thing") is FirstThing
        assert len(pipeline.scan_results) == 1

    def test_scan_failures_do_not_abort(self, configuration, pipeline, make_package):
        pkg = make_package(
            {
                "models/bad.py": "import no_such_module_for_alias\n\nclass Bad:\n    pass\n",
                "models/good.py": "class Good:\n    pass\n",
            }
        )

        pipeline.apply_aliases(configuration, package=f"{pkg}.models")

        assert "good" in configuration.type_alias_registry
        assert "bad" not in configuration.type_alias_registry
        assert pipeline.scan_results[0].failed_candidates == [f"{pkg}.models.bad.Bad"]


# =============================================================================
# Handlers
# =============================================================================


class TestHandlers:
    """Tests for type handler registration."""

    def test_instance_registration(self, configuration, pipeline):
        handler = MoneyHandler()

        pipeline.apply_handlers(configuration, [handler])

        assert configuration.type_handler_registry.get_handler(Decimal) is handler

    def test_class_instantiated_through_object_factory(self, configuration, pipeline):
        factory = MagicMock()
        factory.create.side_effect = lambda cls: cls()
        pipeline.apply_factories(configuration, object_factory=factory)

        pipeline.apply_handlers(configuration, [MoneyHandler])

        factory.create.assert_called_once_with(MoneyHandler)
        assert isinstance(configuration.type_handler_registry.get_handler(Decimal), MoneyHandler)

    def test_handler_without_mapped_type_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError, match="no mapped types"):
            pipeline.apply_handlers(configuration, [UnmappedHandler])

    def test_none_handler_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError):
            pipeline.apply_handlers(configuration, [None])

    def test_scanned_handlers(self, configuration, pipeline, make_package):
        pkg = make_package(
            {
                "handlers/dates.py": (
                    "import datetime\n"
                    "from sessionkit.config import TypeHandler\n\n"
                    "class DateHandler(TypeHandler):\n"
                    "    python_type = datetime.date\n\n"
                    "    def to_sql(self, value):\n        return value.isoformat()\n\n"
                    "    def from_sql(self, value):\n"
                    "        return datetime.date.fromisoformat(value)\n"
                ),
            }
        )

        count = pipeline.apply_handlers(configuration, package=f"{pkg}.handlers")

        assert count == 1
        assert configuration.type_handler_registry.has_handler(datetime.date)


# =============================================================================
# Plugins, drivers, cache
# =============================================================================


class TestPlugins:
    """Tests for plugin registration."""

    def test_caller_order_preserved(self, configuration, pipeline):
        plugins = [RecordingPlugin("a"), RecordingPlugin("b"), RecordingPlugin("c")]

        pipeline.apply_plugins(configuration, plugins)

        assert [p.name for p in configuration.interceptor_chain.interceptors] == ["a", "b", "c"]

    def test_plugin_without_intercept_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError, match="intercept"):
            pipeline.apply_plugins(configuration, [object()])


class TestDrivers:
    """Tests for auxiliary driver registration."""

    def test_drivers_registered_without_changing_default(self, configuration, pipeline):
        pipeline.apply_drivers(configuration, [ShoutDriver, TemplateLanguageDriver()])

        registry = configuration.language_registry
        assert ShoutDriver in registry.drivers
        assert TemplateLanguageDriver in registry.drivers
        assert configuration.default_language_driver is RawLanguageDriver

    def test_non_driver_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError, match="Not a language driver"):
            pipeline.apply_drivers(configuration, [FirstThing])

    def test_default_must_be_driver_class(self, configuration):
        registry = configuration.language_registry

        with pytest.raises(RegistrationError, match="LanguageDriver class"):
            registry.set_default(TemplateLanguageDriver())
        with pytest.raises(RegistrationError):
            registry.set_default(FirstThing)

        assert registry.default_driver_class is RawLanguageDriver


class TestCache:
    """Tests for cache registration."""

    def test_cache_registered_by_id(self, configuration, pipeline):
        cache = SimpleCache("users")

        assert pipeline.apply_cache(configuration, cache) is True
        assert configuration.get_cache("users") is cache

    def test_no_cache(self, configuration, pipeline):
        assert pipeline.apply_cache(configuration, None) is False
        assert dict(configuration.caches) == {}

    def test_cache_without_id_rejected(self, configuration, pipeline):
        with pytest.raises(RegistrationError, match="id"):
            pipeline.apply_cache(configuration, SimpleCache(""))


class TestFrozen:
    """Registration against a frozen configuration."""

    def test_every_registration_rejected(self, configuration, pipeline):
        configuration.freeze()

        with pytest.raises(ConfigurationFrozen):
            pipeline.apply_aliases(configuration, [FirstThing])
        with pytest.raises(ConfigurationFrozen):
            pipeline.apply_handlers(configuration, [MoneyHandler()])
        with pytest.raises(ConfigurationFrozen):
            pipeline.apply_plugins(configuration, [RecordingPlugin("a")])
        with pytest.raises(ConfigurationFrozen):
            pipeline.apply_drivers(configuration, [ShoutDriver])
        with pytest.raises(ConfigurationFrozen):
            pipeline.apply_cache(configuration, SimpleCache("users"))

    def test_frozen_is_a_registration_error(self, configuration, pipeline):
        configuration.freeze()

        with pytest.raises(RegistrationError):
            pipeline.apply_factories(configuration, vfs=object())
