"""
Configuration Schemas for sessionkit.

Pydantic models for:
    - AssemblerSettings: pipeline flags carried in property overrides
    - DescriptorDocument: the default JSON descriptor grammar
    - MapperDocument: the default JSON mapper grammar

Descriptor and mapper grammars are pluggable; these models back the
JSON parsers shipped in sessionkit.parsing.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class AssemblerSettings(BaseModel):
    """
    Pipeline flags recognized in property overrides.

    Unset fields (None) leave the corresponding property untouched.

    Example:
        settings = AssemblerSettings(enable_mapper_scan_log=True, database_column_style="underline")
        properties = settings.to_properties()
        # {"enableMapperScanLog": True, "databaseColumnStyle": "underline"}
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    enable_logger: bool | None = Field(None, description="Master switch for all log categories")
    enable_bootstrap_log: bool | None = Field(None, description="Bootstrap (assembly) logging")
    enable_mapper_scan_log: bool | None = Field(None, description="Package scan logging")
    enable_runtime_log: bool | None = Field(None, description="Descriptor/mapper parse logging")
    enable_compilation_log: bool | None = Field(None, description="Statement compilation logging")
    enable_keywords_to_uppercase: bool | None = Field(
        None, description="Uppercase SQL keywords during finalize"
    )
    database_column_style: Literal["lowercase", "uppercase", "underline", "camelcase"] | None = (
        Field(None, description="Column naming style")
    )
    enable_syntax_parsing: bool = Field(
        False, description="Force the template driver as default scripting driver"
    )

    def to_properties(self) -> dict[str, Any]:
        """Render set fields as camelCase property keys."""
        properties: dict[str, Any] = {}
        for name, value in self.model_dump(exclude_none=True).items():
            if name == "enable_syntax_parsing" and not value:
                continue
            head, *rest = name.split("_")
            properties[head + "".join(part.capitalize() for part in rest)] = value
        return properties


# =============================================================================
# Descriptor grammar
# =============================================================================


class PluginDefinition(BaseModel):
    """A plugin declared in a descriptor."""

    model_config = ConfigDict(extra="forbid")

    type: str = Field(..., description="Import path or alias of the plugin class")
    properties: dict[str, Any] = Field(default_factory=dict)


class EnvironmentDefinition(BaseModel):
    """Environment fragment declared in a descriptor."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Environment name")


class DescriptorSettings(BaseModel):
    """Settings block of a descriptor."""

    model_config = ConfigDict(extra="allow")

    default_scripting_language: str | None = Field(
        None, description="raw, template, alias or module:Class"
    )
    cache_enabled: bool = True


class DescriptorDocument(BaseModel):
    """
    Top-level descriptor document.

    Example:
        {
            "properties": {"schema": "main"},
            "settings": {"default_scripting_language": "template"},
            "type_aliases": {"user": "app.models:User"},
            "type_handlers": ["app.handlers:MoneyHandler"],
            "plugins": [{"type": "app.plugins:Audit"}],
            "environment": {"id": "dev"},
            "mappers": ["mappers/user.json"]
        }
    """

    model_config = ConfigDict(extra="forbid")

    properties: dict[str, Any] = Field(default_factory=dict)
    settings: DescriptorSettings = Field(default_factory=DescriptorSettings)
    type_aliases: dict[str, str] | list[str] = Field(default_factory=dict)
    type_handlers: list[str] = Field(default_factory=list)
    plugins: list[PluginDefinition] = Field(default_factory=list)
    environment: EnvironmentDefinition | None = None
    mappers: list[str] = Field(default_factory=list)


# =============================================================================
# Mapper grammar
# =============================================================================


class StatementDefinition(BaseModel):
    """One statement in a mapper document."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    kind: Literal["select", "insert", "update", "delete"] = "select"
    sql: str = Field(..., min_length=1)
    database_id: str | None = None
    lang: str | None = None
    result_type: str | None = None


class MapperDocument(BaseModel):
    """Top-level mapper document."""

    model_config = ConfigDict(extra="forbid")

    namespace: str = Field(..., min_length=1)
    statements: list[StatementDefinition] = Field(default_factory=list)
