"""
ConfigurationAssembler Usage Examples.

This module demonstrates how to assemble a frozen SessionFactory from
a data source, a descriptor, mappers and registration lists.

Architecture:
    ┌─────────────────┐      ┌────────────────────────┐      ┌─────────────────┐
    │ AssemblySources │ ──▶  │ ConfigurationAssembler │ ──▶  │ SessionFactory  │
    │ (raw inputs)    │      │ (13 ordered steps)     │      │ (frozen)        │
    └─────────────────┘      └────────────────────────┘      └─────────────────┘
                                        │
                                        ▼
                             ┌────────────────────────┐
                             │ Descriptor / Mappers   │
                             │ (JSON, parsed in order)│
                             └────────────────────────┘

The key insight: the vendor id is known before any JSON is parsed, and
caller defaults are applied after the descriptor so they always win.
"""

import json
import logging
import sqlite3

# =============================================================================
# Example 1: Minimal build against sqlite
# =============================================================================


def example_minimal():
    """Smallest useful build: a data source and nothing else."""
    from sessionkit import AssemblySources, ConfigurationAssembler
    from sessionkit.environment import CallableDataSource

    assembler = ConfigurationAssembler(
        AssemblySources(data_source=CallableDataSource(lambda: sqlite3.connect(":memory:")))
    )
    factory = assembler.build()

    print(f"Environment: {factory.environment.name}")
    print(f"Statements: {len(factory.statements)}")
    return factory


# =============================================================================
# Example 2: Descriptor, vendor mappers and finalize
# =============================================================================

DESCRIPTOR = {
    "properties": {"schema": "main"},
    "settings": {"default_scripting_language": "template"},
    "type_aliases": {"money": "decimal:Decimal"},
}

USER_MAPPER = {
    "namespace": "app.UserMapper",
    "statements": [
        {"id": "findAll", "kind": "select", "sql": "select * from users"},
        {
            "id": "findAll",
            "kind": "select",
            "sql": "select * from ${schema}.users where status = 'active'",
            "database_id": "sqlite",
        },
        {
            "id": "balance",
            "kind": "select",
            "sql": "select balance from accounts",
            "result_type": "money",
        },
    ],
}


def example_descriptor_and_mappers():
    """
    Descriptor and mapper resources held in memory.

    The vendor provider maps "sqlite3" to the "sqlite" id, so the
    sqlite variant of findAll is selected.
    """
    from sessionkit import AssemblerSettings, AssemblySources, ConfigurationAssembler
    from sessionkit.environment import CallableDataSource, VendorDatabaseIdProvider
    from sessionkit.resources import BytesResource

    sources = AssemblySources(
        data_source=CallableDataSource(lambda: sqlite3.connect(":memory:")),
        descriptor=BytesResource(json.dumps(DESCRIPTOR), identity="session.json"),
        mapper_locations=(BytesResource(json.dumps(USER_MAPPER), identity="user-mapper.json"),),
        database_id_provider=VendorDatabaseIdProvider({"sqlite": "sqlite", "MySQL": "mysql"}),
        settings=AssemblerSettings(enable_keywords_to_uppercase=True),
    )

    assembler = ConfigurationAssembler(sources)
    factory = assembler.build()
    assembler.finalize()

    statement = factory.get_statement("app.UserMapper.findAll")
    print(f"Database id: {factory.database_id}")
    print(f"findAll: {statement.sql}")
    print(f"balance result type: {factory.get_statement('app.UserMapper.balance').result_type}")
    return factory


# =============================================================================
# Main: Run Examples
# =============================================================================


def main():
    """Run examples."""
    logging.basicConfig(level=logging.INFO)

    print("=" * 60)
    print("Example 1: Minimal build")
    print("=" * 60)
    example_minimal()

    print("\n" + "=" * 60)
    print("Example 2: Descriptor and mappers")
    print("=" * 60)
    example_descriptor_and_mappers()


if __name__ == "__main__":
    main()
