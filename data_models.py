# data_models.py
# Contains data model classes: Column, Table, Relationship, RefDeclaration, Diagram.

import copy

from PyQt6.QtCore import QPointF, QRectF

import constants


class Column:
    def __init__(self, name, data_type=constants.DEFAULT_COLUMN_TYPE, is_pk=False, is_fk=False,
                 is_nullable=True, is_unique=False, default_value="", column_id=None, extra=None):
        self.id = column_id
        self.name = name
        self.data_type = data_type
        self.is_pk = is_pk
        self.is_fk = is_fk
        self.is_nullable = is_nullable
        self.is_unique = is_unique
        self.default_value = default_value or ""
        self.extra = dict(extra) if extra else {}  # Unknown fields kept for export

    def get_display_name(self):
        pk_str = "[PK] " if self.is_pk else ""
        fk_str = "[FK] " if self.is_fk else ""
        return f"{pk_str}{fk_str}{self.name}"

    def __str__(self):
        return f"{self.get_display_name()}: {self.data_type}"

    def __repr__(self):
        return f"Column({self.name!r}, {self.data_type!r}, id={self.id!r})"

    def __deepcopy__(self, memo):
        cls = self.__class__
        result = cls.__new__(cls)
        memo[id(self)] = result
        for k, v in self.__dict__.items():
            setattr(result, k, copy.deepcopy(v, memo))
        return result


class Table:
    def __init__(self, label, table_id=None, x=0.0, y=0.0, color=constants.DEFAULT_TABLE_COLOR,
                 columns=None, extra=None, data_extra=None):
        self.id = table_id
        self.label = label
        self.columns = list(columns) if columns else []
        self.color = color
        self.x = float(x)
        self.y = float(y)
        self.extra = dict(extra) if extra else {}            # Unknown node-level fields
        self.data_extra = dict(data_extra) if data_extra else {}  # Unknown node.data fields

    def add_column(self, column):
        self.columns.append(column)

    def get_pk_column_names(self):
        return [col.name for col in self.columns if col.is_pk]

    def get_column_by_name(self, name):
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def get_column_by_id(self, column_id):
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def pos(self):
        return QPointF(self.x, self.y)

    def set_pos(self, point):
        self.x = float(point.x())
        self.y = float(point.y())

    def estimated_size(self):
        """Box size used by the auto-layout: height grows with the column count."""
        return (constants.DEFAULT_TABLE_WIDTH,
                constants.TABLE_HEADER_HEIGHT + constants.COLUMN_HEIGHT * len(self.columns))

    def bounding_rect(self):
        width, height = self.estimated_size()
        return QRectF(self.x, self.y, width, height)

    def __str__(self):
        return self.label

    def __repr__(self):
        return f"Table({self.label!r}, id={self.id!r}, columns={len(self.columns)})"

    def __deepcopy__(self, memo):
        cls = self.__class__
        result = cls.__new__(cls)
        memo[id(self)] = result

        for k, v in self.__dict__.items():
            if k == 'columns':
                setattr(result, k, [copy.deepcopy(col, memo) for col in v])
            else:
                setattr(result, k, copy.deepcopy(v, memo))
        return result


class Relationship:
    """
    A directed link from the column that declared the reference (source) to the
    column it points at (target). The kind only changes how the two ends are read.
    """
    def __init__(self, source_table_id, source_column, target_table_id, target_column,
                 kind=constants.REL_ONE_TO_MANY, relationship_id=None, extra=None, data_extra=None):
        self.id = relationship_id
        self.source_table_id = source_table_id
        self.source_column = source_column
        self.target_table_id = target_table_id
        self.target_column = target_column
        self.kind = kind
        self.extra = dict(extra) if extra else {}
        self.data_extra = dict(data_extra) if data_extra else {}

    def touches_table(self, table_id):
        return self.source_table_id == table_id or self.target_table_id == table_id

    def __repr__(self):
        return (f"Relationship({self.source_table_id}.{self.source_column} -> "
                f"{self.target_table_id}.{self.target_column}, {self.kind})")

    def __deepcopy__(self, memo):
        cls = self.__class__
        result = cls.__new__(cls)
        memo[id(self)] = result
        for k, v in self.__dict__.items():
            setattr(result, k, copy.deepcopy(v, memo))
        return result


class RefDeclaration:
    """A parsed foreign-key intent that has not been matched to a table yet."""
    def __init__(self, from_table_id, from_table_label, from_column, to_table_label, to_column,
                 kind=constants.REL_ONE_TO_MANY, line_number=None):
        self.from_table_id = from_table_id  # None for standalone 'Ref:' lines
        self.from_table_label = from_table_label
        self.from_column = from_column
        self.to_table_label = to_table_label
        self.to_column = to_column
        self.kind = kind
        self.line_number = line_number

    def describe(self):
        return f"{self.from_table_label}.{self.from_column} -> {self.to_table_label}.{self.to_column}"

    def __repr__(self):
        return f"RefDeclaration({self.describe()}, {self.kind})"


class Diagram:
    def __init__(self, tables=None, relationships=None, version=constants.DIAGRAM_FORMAT_VERSION,
                 viewport=None, extra=None):
        self.version = version
        self.tables = list(tables) if tables else []
        self.relationships = list(relationships) if relationships else []
        self.viewport = dict(viewport) if viewport else dict(constants.DEFAULT_VIEWPORT)
        self.extra = dict(extra) if extra else {}

    def __repr__(self):
        return f"Diagram(version={self.version!r}, tables={len(self.tables)}, relationships={len(self.relationships)})"

    def __deepcopy__(self, memo):
        cls = self.__class__
        result = cls.__new__(cls)
        memo[id(self)] = result
        for k, v in self.__dict__.items():
            setattr(result, k, copy.deepcopy(v, memo))
        return result
