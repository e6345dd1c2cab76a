# dbml_generator.py
# Regenerates schema text from the diagram so edits made on the graph can be
# written back to the text editor, plus the editor's "Format" action.

import logging

import constants

logger = logging.getLogger(__name__)


def _column_settings(column, inline_ref):
    settings = []
    if column.is_pk:
        settings.append("primary key")
    elif column.is_unique:
        settings.append("unique")
    if not column.is_nullable:
        settings.append("not null")
    if column.default_value:
        settings.append(f"default: {column.default_value}")
    if inline_ref:
        settings.append(inline_ref)
    return settings


def _ref_symbol(kind):
    return constants.KIND_REF_SYMBOLS.get(kind, constants.KIND_REF_SYMBOLS[constants.REL_ONE_TO_MANY])


def generate_dbml(tables, relationships):
    """
    Returns DBML-like text that parses back into the same tables and relationships.
    The first relationship of a column is written inline as [ref: ...]; any
    further ones, and ones whose source column no longer exists, become
    standalone 'Ref:' lines after the tables.
    """
    tables_by_id = {table.id: table for table in tables}
    inline_refs = {}
    standalone_refs = []

    for rel in relationships:
        source = tables_by_id.get(rel.source_table_id)
        target = tables_by_id.get(rel.target_table_id)
        if source is None or target is None:
            logger.debug("Skipping relationship %s: endpoint table is missing", rel.id)
            continue
        symbol = _ref_symbol(rel.kind)
        key = (source.id, rel.source_column)
        if source.get_column_by_name(rel.source_column) is not None and key not in inline_refs:
            inline_refs[key] = f"ref: {symbol} {target.label}.{rel.target_column}"
        else:
            standalone_refs.append(
                f"Ref: {source.label}.{rel.source_column} {symbol} {target.label}.{rel.target_column}"
            )

    blocks = []
    for table in tables:
        header = f"Table {table.label}"
        if table.color and table.color != constants.DEFAULT_TABLE_COLOR:
            header += f" [headercolor: {table.color}]"
        lines = [header + " {"]
        for column in table.columns:
            line = f"  {column.name} {column.data_type}"
            settings = _column_settings(column, inline_refs.get((table.id, column.name)))
            if settings:
                line += f" [{', '.join(settings)}]"
            lines.append(line)
        lines.append("}")
        blocks.append("\n".join(lines))

    if standalone_refs:
        blocks.append("\n".join(standalone_refs))
    return "\n\n".join(blocks)


def format_dbml(text):
    """
    Tidies schema text: table headers, closing braces and blank lines are kept
    flush left, every other line is indented by two spaces with runs of
    whitespace collapsed.
    """
    formatted = []
    for line in (text or "").split("\n"):
        stripped = line.strip()
        if stripped.lower().startswith("table") or stripped in ("}", ""):
            formatted.append(stripped)
        else:
            formatted.append("  " + " ".join(stripped.split()))
    return "\n".join(formatted)
