# reference_resolver.py
# Matches parsed reference declarations against parsed tables and produces
# Relationship records keyed by table id.

import logging

import constants
from data_models import Relationship
from utils import generate_id

logger = logging.getLogger(__name__)


class ResolveResult:
    def __init__(self, relationships, dangling, warnings):
        self.relationships = relationships
        self.dangling = dangling  # RefDeclarations that could not be bound
        self.warnings = warnings


def _first_table_by_label(tables_by_label, label):
    """Case-insensitive label lookup; duplicate labels bind to the first declared table."""
    if not label:
        return None
    return tables_by_label.get(label.lower())


def resolve_references(tables, refs, id_factory=None):
    """
    Second pass of text loading: binds each RefDeclaration to table ids.
    Unknown target tables are dropped (the source column keeps its FK flag).
    """
    if id_factory is None:
        id_factory = generate_id

    tables_by_label = {}
    tables_by_id = {}
    for table in tables:
        tables_by_label.setdefault(table.label.lower(), table)
        tables_by_id[table.id] = table

    relationships = []
    dangling = []
    warnings = []

    for ref in refs:
        if ref.from_table_id is not None:
            source_table = tables_by_id.get(ref.from_table_id)
        else:
            source_table = _first_table_by_label(tables_by_label, ref.from_table_label)
        if source_table is None:
            dangling.append(ref)
            warnings.append(f"Reference {ref.describe()}: table '{ref.from_table_label}' does not exist")
            continue

        source_column = source_table.get_column_by_name(ref.from_column)
        if source_column is None:
            dangling.append(ref)
            warnings.append(f"Reference {ref.describe()}: column '{ref.from_column}' does not exist")
            continue
        source_column.is_fk = True

        target_table = _first_table_by_label(tables_by_label, ref.to_table_label)
        if target_table is None:
            dangling.append(ref)
            warnings.append(f"Reference {ref.describe()}: table '{ref.to_table_label}' does not exist")
            continue

        relationships.append(Relationship(
            source_table_id=source_table.id,
            source_column=source_column.name,
            target_table_id=target_table.id,
            target_column=ref.to_column,
            kind=ref.kind if ref.kind in constants.RELATION_KINDS else constants.REL_ONE_TO_MANY,
            relationship_id=id_factory(constants.EDGE_ID_PREFIX),
        ))

    for warning in warnings:
        logger.debug("Unresolved reference: %s", warning)
    return ResolveResult(relationships, dangling, warnings)
