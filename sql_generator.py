# sql_generator.py
# Contains logic to generate SQL statements from diagram data.

import logging

logger = logging.getLogger(__name__)


def column_definition_sql(col):
    """One column line of a CREATE TABLE block, e.g. '  email VARCHAR NOT NULL UNIQUE'."""
    line = f"  {col.name} {col.data_type}"
    if not col.is_nullable:
        line += " NOT NULL"
    if col.is_unique and not col.is_pk:
        line += " UNIQUE"
    if col.default_value:
        line += f" DEFAULT {col.default_value}"
    return line


def generate_sql_for_diagram(tables, relationships):
    """
    Generates one CREATE TABLE statement per table, in stored order.
    tables: list of Table objects
    relationships: list of Relationship objects (foreign keys are emitted inside
    the block of the relationship's source table)
    """
    tables_by_id = {table.id: table for table in tables}
    sql_statements = []

    for table in tables:
        lines = [column_definition_sql(col) for col in table.columns]

        pk_cols = table.get_pk_column_names()
        if pk_cols:
            lines.append(f"  PRIMARY KEY ({', '.join(pk_cols)})")

        for rel in relationships:
            if rel.source_table_id != table.id:
                continue
            target = tables_by_id.get(rel.target_table_id)
            if target is None or not rel.source_column or not rel.target_column:
                continue
            lines.append(f"  FOREIGN KEY ({rel.source_column}) REFERENCES {target.label}({rel.target_column})")

        lines_sql = ",\n".join(lines)
        sql_statements.append(f"CREATE TABLE {table.label} (\n{lines_sql}\n);")

    logger.debug("Generated SQL for %d tables", len(sql_statements))
    return "\n\n".join(sql_statements)
