"""
JSON Descriptor and Mapper Parsers.

Default grammar for sessionkit, backed by the pydantic documents in
sessionkit.config.schemas.

Descriptor flow:
    1. Merge document properties with caller overrides (overrides win)
    2. Substitute ${name} placeholders in every other string value
    3. Validate into DescriptorDocument
    4. Apply settings, aliases, handlers, plugins, environment
    5. Parse referenced mappers immediately

Mapper flow:
    1. Skip resources already loaded into this configuration
    2. Select statement variants for the configuration's database id
    3. Compile SQL with the statement's driver (or the default driver)
    4. Add MappedStatements

Database-id selection:
    A statement tagged with the current database id replaces a generic
    one with the same id. Statements for other vendors are skipped.
    Without a database id only generic statements load.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from string import Template
from typing import TYPE_CHECKING, Any, BinaryIO

from sessionkit.config.registry import import_string
from sessionkit.config.schemas import (
    DescriptorDocument,
    MapperDocument,
    StatementDefinition,
)
from sessionkit.config.statements import MappedStatement
from sessionkit.environment import Environment
from sessionkit.resources import resource_from_location

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration

logger = logging.getLogger(__name__)


def substitute_placeholders(value: Any, variables: Mapping[str, Any]) -> Any:
    """Recursively substitute ${name} in strings; unknown names stay as-is."""
    if isinstance(value, str):
        return Template(value).safe_substitute({k: str(v) for k, v in variables.items()})
    if isinstance(value, list):
        return [substitute_placeholders(item, variables) for item in value]
    if isinstance(value, dict):
        return {key: substitute_placeholders(item, variables) for key, item in value.items()}
    return value


# =============================================================================
# Mapper parser
# =============================================================================


class JsonMapperParser:
    """Parses JSON mapper documents."""

    def parse_mapper(
        self,
        stream: BinaryIO,
        configuration: SessionConfiguration,
        identity: str,
    ) -> None:
        if configuration.is_resource_loaded(identity):
            logger.debug(f"[json_mapper] Already loaded, skipping: {identity}")
            return

        document = MapperDocument.model_validate(json.load(stream))
        selected = self._select_statements(document.statements, configuration.database_id)

        for definition in selected:
            statement = self._build_statement(definition, document, configuration, identity)
            configuration.add_statement(statement)

        configuration.add_loaded_resource(identity)
        logger.debug(
            f"[json_mapper] Parsed {identity} | namespace={document.namespace} | "
            f"statements={len(selected)}"
        )

    @staticmethod
    def _select_statements(
        statements: list[StatementDefinition],
        database_id: str | None,
    ) -> list[StatementDefinition]:
        selected: dict[str, StatementDefinition] = {}

        for statement in statements:
            if statement.database_id is not None and statement.database_id != database_id:
                continue

            existing = selected.get(statement.id)
            if existing is None:
                selected[statement.id] = statement
            elif existing.database_id is None and statement.database_id is not None:
                selected[statement.id] = statement
            elif existing.database_id is not None and statement.database_id is None:
                continue
            else:
                raise ValueError(f"Duplicate statement id '{statement.id}'")

        return list(selected.values())

    @staticmethod
    def _build_statement(
        definition: StatementDefinition,
        document: MapperDocument,
        configuration: SessionConfiguration,
        identity: str,
    ) -> MappedStatement:
        registry = configuration.language_registry
        if definition.lang:
            driver_class = registry.resolve(definition.lang)
            if registry.get(driver_class) is None:
                registry.register(driver_class)
        else:
            driver_class = registry.default_driver_class

        driver = registry.get(driver_class)
        sql_source = driver.create_sql_source(configuration, definition.sql)

        result_type = None
        if definition.result_type:
            result_type = configuration.type_alias_registry.resolve_alias(definition.result_type)

        return MappedStatement(
            id=definition.id,
            namespace=document.namespace,
            kind=definition.kind,
            sql_source=sql_source,
            database_id=definition.database_id,
            resource=identity,
            result_type=result_type,
            lang=driver_class.__name__,
        )


# =============================================================================
# Descriptor parser
# =============================================================================


class JsonDescriptorParser:
    """
    Parses JSON descriptor documents.

    Example:
        parser = JsonDescriptorParser()
        with FileResource("session.json").open() as stream:
            parser.parse_descriptor(stream, configuration, {"schema": "main"})
    """

    def __init__(self, mapper_parser: JsonMapperParser | None = None):
        self._mapper_parser = mapper_parser or JsonMapperParser()

    def parse_descriptor(
        self,
        stream: BinaryIO,
        configuration: SessionConfiguration,
        property_overrides: Mapping[str, Any] | None,
    ) -> None:
        raw = json.load(stream)
        if not isinstance(raw, dict):
            raise ValueError("Descriptor root must be a JSON object")

        properties = {**raw.get("properties", {}), **(property_overrides or {})}
        configuration.merge_variables(properties)

        body = {key: value for key, value in raw.items() if key != "properties"}
        document = DescriptorDocument.model_validate(
            {"properties": properties, **substitute_placeholders(body, configuration.variables)}
        )

        self._apply_settings(document, configuration)
        self._apply_aliases(document, configuration)

        for path in document.type_handlers:
            configuration.type_handler_registry.register(import_string(path))

        for plugin in document.plugins:
            plugin_class = configuration.type_alias_registry.resolve_alias(plugin.type)
            instance = configuration.object_factory.create(plugin_class)
            if plugin.properties and callable(getattr(instance, "set_properties", None)):
                instance.set_properties(dict(plugin.properties))
            configuration.interceptor_chain.add(instance)

        if document.environment is not None:
            configuration.environment = Environment(name=document.environment.id)

        for location in document.mappers:
            resource = resource_from_location(location)
            with resource.open() as mapper_stream:
                self._mapper_parser.parse_mapper(mapper_stream, configuration, resource.identity)

        logger.debug(
            f"[json_descriptor] Parsed descriptor | aliases={len(document.type_aliases)} | "
            f"handlers={len(document.type_handlers)} | plugins={len(document.plugins)} | "
            f"mappers={len(document.mappers)}"
        )

    @staticmethod
    def _apply_settings(document: DescriptorDocument, configuration: SessionConfiguration) -> None:
        settings = document.settings.model_dump(exclude_none=True)
        configuration.settings.update(settings)

        driver_name = document.settings.default_scripting_language
        if driver_name:
            configuration.set_default_language_driver(
                configuration.language_registry.resolve(driver_name)
            )

    @staticmethod
    def _apply_aliases(document: DescriptorDocument, configuration: SessionConfiguration) -> None:
        registry = configuration.type_alias_registry
        if isinstance(document.type_aliases, dict):
            for name, path in document.type_aliases.items():
                registry.register_alias(import_string(path), name)
        else:
            for path in document.type_aliases:
                registry.register_alias(import_string(path))
