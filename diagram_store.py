# diagram_store.py
# The graph model: single owner of tables, columns and relationships.
# Every mutation goes through a store operation, which leaves the model valid
# (no relationship points at a missing table) and then emits diagram_changed.

import copy
import logging

from PyQt6.QtCore import QObject, pyqtSignal

import constants
from app_config import AppSettings
from data_models import Column, Diagram, Relationship, Table
from dbml_parser import parse_dbml
from diagram_io import ImportResult, diagram_from_payload, diagram_to_dict
from layout_engine import apply_layout
from reference_resolver import resolve_references
from utils import generate_id, is_valid_color_hex

logger = logging.getLogger(__name__)

EDITABLE_COLUMN_FIELDS = ("name", "data_type", "is_pk", "is_fk", "is_nullable", "is_unique", "default_value")


class ParseReport:
    """Outcome of DiagramStore.load_from_text, suitable for showing to the user."""
    def __init__(self, applied, degraded, table_count, relationship_count, warnings, message):
        self.applied = applied
        self.degraded = degraded
        self.table_count = table_count
        self.relationship_count = relationship_count
        self.warnings = warnings
        self.message = message

    def __repr__(self):
        return f"ParseReport(applied={self.applied}, degraded={self.degraded}, message={self.message!r})"


def _validate_name(value, what):
    if not isinstance(value, str) or not value.strip() or len(value.split()) != 1:
        raise ValueError(f"{what} must be a non-empty name without whitespace, got {value!r}")
    return value.strip()


def _validate_kind(kind):
    if kind not in constants.RELATION_KINDS:
        raise ValueError(f"Unknown relation kind {kind!r}; expected one of {', '.join(constants.RELATION_KINDS)}")
    return kind


def _table_signature(table):
    return table.label, tuple(col.name for col in table.columns)


def _build_message(table_count, relationship_count, warnings):
    summary = f"Parsed {table_count} tables and {relationship_count} relationships"
    if not warnings:
        return summary + "."
    more = f" (+{len(warnings) - 1} more)" if len(warnings) > 1 else ""
    return f"{summary} with {len(warnings)} warnings: {warnings[0]}{more}"


class DiagramStore(QObject):
    diagram_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)  # table id or None

    def __init__(self, settings=None, id_factory=None, parent=None):
        super().__init__(parent)
        self.settings = settings or AppSettings()
        self._id_factory = id_factory or generate_id
        self._tables = []
        self._relationships = []
        self._selected_table_id = None
        self._version = constants.DIAGRAM_FORMAT_VERSION
        self._viewport = dict(constants.DEFAULT_VIEWPORT)
        self._diagram_extra = {}  # Unknown top-level fields of an imported diagram

    # --- Read access (snapshots; mutate through the operations below) ---

    @property
    def tables(self):
        return copy.deepcopy(self._tables)

    @property
    def relationships(self):
        return copy.deepcopy(self._relationships)

    @property
    def selected_table_id(self):
        return self._selected_table_id

    def get_table(self, table_id):
        table = self._find_table(table_id)
        return copy.deepcopy(table) if table else None

    def get_relationship(self, relationship_id):
        rel = self._find_relationship(relationship_id)
        return copy.deepcopy(rel) if rel else None

    def find_table_by_label(self, label):
        """First table (in order) whose label matches case-insensitively."""
        wanted = (label or "").lower()
        for table in self._tables:
            if table.label.lower() == wanted:
                return copy.deepcopy(table)
        return None

    def search_tables(self, query):
        """Tables whose label contains query (case-insensitive); a blank query returns all tables."""
        needle = (query or "").strip().lower()
        return [copy.deepcopy(t) for t in self._tables if needle in t.label.lower()]

    # --- Internal helpers ---

    def _find_table(self, table_id):
        for table in self._tables:
            if table.id == table_id:
                return table
        return None

    def _find_relationship(self, relationship_id):
        for rel in self._relationships:
            if rel.id == relationship_id:
                return rel
        return None

    def _set_selection(self, table_id):
        if table_id == self._selected_table_id:
            return
        self._selected_table_id = table_id
        self.selection_changed.emit(table_id)

    def _notify(self, what):
        logger.debug("Diagram changed: %s", what)
        self.diagram_changed.emit()

    def _refresh_fk_flag(self, table_id, column_name):
        """Clears the FK flag of a column that no longer sources any relationship."""
        table = self._find_table(table_id)
        column = table.get_column_by_name(column_name) if table else None
        if column is None:
            return
        if not any(r.source_table_id == table_id and r.source_column == column_name for r in self._relationships):
            column.is_fk = False

    def _next_free_position(self):
        if not self._tables:
            return constants.LAYOUT_ORIGIN_X, constants.LAYOUT_ORIGIN_Y
        right_edge = max(t.bounding_rect().right() for t in self._tables)
        return right_edge + constants.NEW_TABLE_GAP, constants.LAYOUT_ORIGIN_Y

    # --- Whole-diagram operations ---

    def replace_all(self, tables, relationships, viewport=None, version=None, extra=None):
        """
        Discards the current model and installs copies of tables and relationships.
        Viewport, version and extra fields fall back to those of a new diagram.
        """
        new_tables = copy.deepcopy(list(tables))
        table_ids = {t.id for t in new_tables}
        new_relationships = []
        for rel in copy.deepcopy(list(relationships)):
            if rel.source_table_id in table_ids and rel.target_table_id in table_ids:
                new_relationships.append(rel)
            else:
                logger.warning("Dropping relationship %s: endpoint table is missing", rel.id)
        self._tables = new_tables
        self._relationships = new_relationships
        self._version = version or constants.DIAGRAM_FORMAT_VERSION
        self._viewport = dict(viewport) if viewport else dict(constants.DEFAULT_VIEWPORT)
        self._diagram_extra = copy.deepcopy(extra) if extra else {}
        self._set_selection(None)
        self._notify(f"replaced with {len(new_tables)} tables")

    def clear(self):
        self.replace_all([], [])

    def export_diagram(self, viewport=None):
        """Snapshot of the model; the last imported viewport is used unless one is given."""
        return Diagram(
            tables=copy.deepcopy(self._tables),
            relationships=copy.deepcopy(self._relationships),
            version=self._version,
            viewport=viewport or self._viewport,
            extra=copy.deepcopy(self._diagram_extra),
        )

    def import_diagram(self, payload):
        """
        Replaces the model with an imported diagram (dict, JSON text, bytes or Diagram).
        On failure the current model is left untouched.
        """
        if isinstance(payload, Diagram):
            payload = diagram_to_dict(payload)
        result = diagram_from_payload(payload)
        if not result.ok:
            logger.error("Diagram import failed: %s", result.error)
            return result
        diagram = result.diagram
        self.replace_all(diagram.tables, diagram.relationships,
                         viewport=diagram.viewport, version=diagram.version, extra=diagram.extra)
        return ImportResult.success(copy.deepcopy(result.diagram), result.warnings)

    def load_from_text(self, text, keep_previous_on_empty=True):
        """
        Parses schema text, resolves references, lays the tables out and replaces
        the model in one step. Returns a ParseReport; the model is only replaced
        when the text produced a usable result.
        """
        parse_result = parse_dbml(text, id_factory=self._id_factory)
        resolve_result = resolve_references(parse_result.tables, parse_result.unresolved_refs,
                                            id_factory=self._id_factory)
        warnings = [str(issue) for issue in parse_result.warnings] + resolve_result.warnings
        tables = parse_result.tables
        relationships = resolve_result.relationships

        if not tables and (text or "").strip() and keep_previous_on_empty:
            message = "No tables found in the schema text; keeping the previous diagram."
            if warnings:
                message += f" {warnings[0]}"
            logger.info(message)
            return ParseReport(False, True, 0, 0, warnings, message)

        pinned_ids = self._carry_over_unchanged_tables(tables, relationships) if self.settings.preserve_positions else set()
        apply_layout(tables, relationships, pinned_ids=pinned_ids, **self.settings.layout_spacing())

        self._tables = tables
        self._relationships = relationships
        if self._find_table(self._selected_table_id) is None:
            self._set_selection(None)
        self._notify(f"loaded from text ({len(tables)} tables, {len(relationships)} relationships)")

        message = _build_message(len(tables), len(relationships), warnings)
        return ParseReport(True, bool(warnings), len(tables), len(relationships), warnings, message)

    def _carry_over_unchanged_tables(self, tables, relationships):
        """
        Gives tables whose label and column names did not change their previous
        id, column ids and position. Returns the ids of those tables.
        """
        previous = {}
        for old in self._tables:
            previous.setdefault(_table_signature(old), []).append(old)

        id_map = {}
        for table in tables:
            candidates = previous.get(_table_signature(table))
            if not candidates:
                continue
            old = candidates.pop(0)
            id_map[table.id] = old.id
            table.id = old.id
            table.x, table.y = old.x, old.y
            for column, old_column in zip(table.columns, old.columns):
                column.id = old_column.id

        for rel in relationships:
            rel.source_table_id = id_map.get(rel.source_table_id, rel.source_table_id)
            rel.target_table_id = id_map.get(rel.target_table_id, rel.target_table_id)
        return set(id_map.values())

    # --- Table operations ---

    def add_table(self, label, color=None):
        """Adds a table with a single identity column and returns a copy of it."""
        label = _validate_name(label, "Table label")
        color = color or self.settings.default_table_color
        if not is_valid_color_hex(color):
            raise ValueError(f"Table color must be a hex color such as '#0078D4', got {color!r}")

        x, y = self._next_free_position()
        table = Table(label=label, table_id=self._id_factory(constants.TABLE_ID_PREFIX), x=x, y=y, color=color)
        table.add_column(Column(
            name=constants.IDENTITY_COLUMN_NAME,
            data_type=constants.IDENTITY_COLUMN_TYPE,
            is_pk=True,
            is_nullable=False,
            is_unique=True,
            default_value=constants.IDENTITY_COLUMN_DEFAULT,
            column_id=self._id_factory(""),
        ))
        self._tables.append(table)
        self._notify(f"added table '{label}'")
        return copy.deepcopy(table)

    def update_table(self, table_id, label=None, color=None):
        table = self._find_table(table_id)
        if table is None:
            logger.debug("update_table: no table %s", table_id)
            return False
        if label is not None:
            table.label = _validate_name(label, "Table label")
        if color is not None:
            if not is_valid_color_hex(color):
                raise ValueError(f"Table color must be a hex color such as '#0078D4', got {color!r}")
            table.color = color
        self._notify(f"updated table '{table.label}'")
        return True

    def move_table(self, table_id, x, y):
        table = self._find_table(table_id)
        if table is None:
            return False
        table.x, table.y = float(x), float(y)
        self._notify(f"moved table '{table.label}'")
        return True

    def remove_table(self, table_id):
        """Removes a table and every relationship that starts or ends at it."""
        table = self._find_table(table_id)
        if table is None:
            logger.debug("remove_table: no table %s", table_id)
            return False
        removed = [r for r in self._relationships if r.touches_table(table_id)]
        self._relationships = [r for r in self._relationships if not r.touches_table(table_id)]
        self._tables.remove(table)
        for rel in removed:
            if rel.source_table_id != table_id:
                self._refresh_fk_flag(rel.source_table_id, rel.source_column)
        if self._selected_table_id == table_id:
            self._set_selection(None)
        self._notify(f"removed table '{table.label}' and {len(removed)} relationships")
        return True

    def select_table(self, table_id):
        if table_id is not None and self._find_table(table_id) is None:
            return False
        self._set_selection(table_id)
        return True

    # --- Column operations ---

    def add_column(self, table_id, column):
        table = self._find_table(table_id)
        if table is None:
            return None
        name = _validate_name(column.name, "Column name")
        if table.get_column_by_name(name) is not None:
            raise ValueError(f"Table '{table.label}' already has a column named '{name}'")
        new_column = copy.deepcopy(column)
        new_column.name = name
        if not new_column.id or table.get_column_by_id(new_column.id) is not None:
            new_column.id = self._id_factory("")
        table.add_column(new_column)
        self._notify(f"added column '{table.label}.{name}'")
        return copy.deepcopy(new_column)

    def update_column(self, table_id, column_id, **changes):
        """Edits column fields; a rename is carried into the relationships using the column."""
        unknown = set(changes) - set(EDITABLE_COLUMN_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update column fields: {', '.join(sorted(unknown))}")
        table = self._find_table(table_id)
        column = table.get_column_by_id(column_id) if table else None
        if column is None:
            return False

        if "name" in changes:
            new_name = _validate_name(changes["name"], "Column name")
            clash = table.get_column_by_name(new_name)
            if clash is not None and clash is not column:
                raise ValueError(f"Table '{table.label}' already has a column named '{new_name}'")
            changes["name"] = new_name
            if new_name != column.name:
                for rel in self._relationships:
                    if rel.source_table_id == table_id and rel.source_column == column.name:
                        rel.source_column = new_name
                    if rel.target_table_id == table_id and rel.target_column == column.name:
                        rel.target_column = new_name

        for field, value in changes.items():
            setattr(column, field, value)
        self._notify(f"updated column '{table.label}.{column.name}'")
        return True

    def remove_column(self, table_id, column_id):
        """Removes a column together with the relationships that use it as an endpoint."""
        table = self._find_table(table_id)
        column = table.get_column_by_id(column_id) if table else None
        if column is None:
            return False

        def uses_column(rel):
            return ((rel.source_table_id == table_id and rel.source_column == column.name) or
                    (rel.target_table_id == table_id and rel.target_column == column.name))

        removed = [r for r in self._relationships if uses_column(r)]
        self._relationships = [r for r in self._relationships if not uses_column(r)]
        table.columns.remove(column)
        for rel in removed:
            self._refresh_fk_flag(rel.source_table_id, rel.source_column)
        self._notify(f"removed column '{table.label}.{column.name}' and {len(removed)} relationships")
        return True

    # --- Relationship operations ---

    def connect(self, source_table_id, source_column, target_table_id, target_column,
                kind=constants.REL_ONE_TO_MANY):
        """Creates a relationship between two existing tables; the source column becomes a foreign key."""
        _validate_kind(kind)
        source = self._find_table(source_table_id)
        target = self._find_table(target_table_id)
        if source is None or target is None:
            logger.debug("connect: missing table %s or %s", source_table_id, target_table_id)
            return None
        rel = Relationship(
            source_table_id=source_table_id,
            source_column=source_column,
            target_table_id=target_table_id,
            target_column=target_column,
            kind=kind,
            relationship_id=self._id_factory(constants.EDGE_ID_PREFIX),
        )
        self._relationships.append(rel)
        column = source.get_column_by_name(source_column)
        if column is not None:
            column.is_fk = True
        self._notify(f"connected {source.label}.{source_column} -> {target.label}.{target_column}")
        return copy.deepcopy(rel)

    def remove_relationship(self, relationship_id):
        rel = self._find_relationship(relationship_id)
        if rel is None:
            return False
        self._relationships.remove(rel)
        self._refresh_fk_flag(rel.source_table_id, rel.source_column)
        self._notify(f"removed relationship {relationship_id}")
        return True

    def set_relation_kind(self, relationship_id, kind):
        """Changes only the interpretive kind; endpoints stay as they are."""
        _validate_kind(kind)
        rel = self._find_relationship(relationship_id)
        if rel is None:
            return False
        rel.kind = kind
        self._notify(f"relationship {relationship_id} is now {kind}")
        return True
