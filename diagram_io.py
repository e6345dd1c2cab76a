# diagram_io.py
# Handles diagram import/export in the JSON diagram format.
# Imports are validated up front and reported as an ImportResult; nothing is
# handed to the store unless the whole payload is usable.

import json
import logging
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

import constants
from data_models import Column, Diagram, Relationship, Table
from utils import generate_id

logger = logging.getLogger(__name__)


class DiagramImportError(Exception):
    """Raised when an import payload cannot be turned into a Diagram."""


class ColumnModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str
    type: str = constants.DEFAULT_COLUMN_TYPE
    is_primary_key: bool = Field(False, alias="isPrimaryKey")
    is_foreign_key: bool = Field(False, alias="isForeignKey")
    is_nullable: bool = Field(True, alias="isNullable")
    is_unique: bool = Field(False, alias="isUnique")
    default_value: str | None = Field("", alias="defaultValue")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value):
        if not value.strip() or len(value.split()) != 1:
            raise ValueError("column name must be non-empty and contain no whitespace")
        return value


class PositionModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    x: float
    y: float


class NodeDataModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str
    color: str = constants.DEFAULT_TABLE_COLOR
    columns: List[ColumnModel] = Field(default_factory=list)


class NodeModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str = constants.NODE_TYPE_TABLE
    position: PositionModel
    data: NodeDataModel


class EdgeDataModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    relation_type: str = Field(constants.REL_ONE_TO_MANY, alias="relationType")
    source_column: str = Field("", alias="sourceColumn")
    target_column: str = Field("", alias="targetColumn")

    @field_validator("relation_type")
    @classmethod
    def _known_kind(cls, value):
        if value not in constants.RELATION_KINDS:
            raise ValueError(f"relationType must be one of {', '.join(constants.RELATION_KINDS)}")
        return value


class EdgeModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    source: str
    target: str
    type: str = constants.EDGE_TYPE_RELATION
    data: EdgeDataModel = Field(default_factory=EdgeDataModel)


class DiagramModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: str
    nodes: List[NodeModel]
    edges: List[EdgeModel]
    viewport: Dict[str, Any] = Field(default_factory=lambda: dict(constants.DEFAULT_VIEWPORT))

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ImportResult:
    """Tagged import outcome: ok with a diagram, or not ok with a reason."""
    def __init__(self, ok, diagram=None, error=None, warnings=None):
        self.ok = ok
        self.diagram = diagram
        self.error = error
        self.warnings = warnings or []

    @classmethod
    def success(cls, diagram, warnings=None):
        return cls(True, diagram=diagram, warnings=warnings)

    @classmethod
    def failure(cls, reason):
        return cls(False, error=reason)

    def __bool__(self):
        return self.ok

    def __repr__(self):
        if self.ok:
            return f"ImportResult(ok, {self.diagram!r})"
        return f"ImportResult(failed: {self.error})"


def _describe_validation_error(exc):
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "diagram"
    extra_count = len(exc.errors()) - 1
    suffix = f" (and {extra_count} more problems)" if extra_count > 0 else ""
    return f"{location}: {first.get('msg', 'invalid value')}{suffix}"


def _check_version(version):
    major = version.strip().split(".")[0]
    if major != constants.SUPPORTED_FORMAT_MAJOR:
        raise DiagramImportError(
            f"Unsupported diagram version '{version}' (expected {constants.DIAGRAM_FORMAT_VERSION})"
        )


def _column_from_model(model):
    return Column(
        name=model.name,
        data_type=model.type,
        is_pk=model.is_primary_key,
        is_fk=model.is_foreign_key,
        is_nullable=model.is_nullable,
        is_unique=model.is_unique,
        default_value=model.default_value or "",
        column_id=model.id or generate_id(),
        extra=model.model_extra,
    )


def _table_from_model(node):
    extra = dict(node.model_extra or {})
    extra["type"] = node.type
    return Table(
        label=node.data.label,
        table_id=node.id,
        x=node.position.x,
        y=node.position.y,
        color=node.data.color,
        columns=[_column_from_model(column) for column in node.data.columns],
        extra=extra,
        data_extra=node.data.model_extra,
    )


def _relationship_from_model(edge):
    extra = dict(edge.model_extra or {})
    extra["type"] = edge.type
    return Relationship(
        source_table_id=edge.source,
        source_column=edge.data.source_column,
        target_table_id=edge.target,
        target_column=edge.data.target_column,
        kind=edge.data.relation_type,
        relationship_id=edge.id,
        extra=extra,
        data_extra=edge.data.model_extra,
    )


def _diagram_from_model(model):
    _check_version(model.version)

    tables = []
    seen_ids = set()
    for node in model.nodes:
        if node.id in seen_ids:
            raise DiagramImportError(f"Duplicate table id '{node.id}'")
        seen_ids.add(node.id)
        tables.append(_table_from_model(node))

    warnings = []
    relationships = []
    seen_edge_ids = set()
    for edge in model.edges:
        if edge.source not in seen_ids or edge.target not in seen_ids:
            warnings.append(f"Relationship '{edge.id}' points at a missing table and was dropped")
            continue
        if edge.id in seen_edge_ids:
            warnings.append(f"Duplicate relationship id '{edge.id}' was dropped")
            continue
        seen_edge_ids.add(edge.id)
        relationships.append(_relationship_from_model(edge))

    diagram = Diagram(
        tables=tables,
        relationships=relationships,
        version=model.version,
        viewport=model.viewport,
        extra=model.model_extra,
    )
    return diagram, warnings


def diagram_from_payload(payload):
    """
    Validates an import payload (dict, JSON text or bytes) and converts it into a Diagram.
    Never raises for bad input; returns ImportResult.failure(reason) instead.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            return ImportResult.failure(f"Diagram file is not valid UTF-8: {e}")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            return ImportResult.failure(f"Invalid JSON: {e}")
    if not isinstance(payload, dict):
        return ImportResult.failure("Diagram must be a JSON object")

    try:
        model = DiagramModel.model_validate(payload)
        diagram, warnings = _diagram_from_model(model)
    except ValidationError as e:
        return ImportResult.failure(f"Invalid diagram: {_describe_validation_error(e)}")
    except DiagramImportError as e:
        return ImportResult.failure(str(e))

    for warning in warnings:
        logger.warning("Import: %s", warning)
    return ImportResult.success(diagram, warnings)


def _column_to_dict(column):
    data = dict(column.extra)
    data.update({
        "id": column.id,
        "name": column.name,
        "type": column.data_type,
        "isPrimaryKey": column.is_pk,
        "isForeignKey": column.is_fk,
        "isNullable": column.is_nullable,
        "isUnique": column.is_unique,
        "defaultValue": column.default_value,
    })
    return data


def _table_to_dict(table):
    node = dict(table.extra)
    node.setdefault("type", constants.NODE_TYPE_TABLE)
    data = dict(table.data_extra)
    data.update({
        "label": table.label,
        "color": table.color,
        "columns": [_column_to_dict(column) for column in table.columns],
    })
    node.update({
        "id": table.id,
        "position": {"x": table.x, "y": table.y},
        "data": data,
    })
    return node


def _relationship_to_dict(relationship):
    edge = dict(relationship.extra)
    edge.setdefault("type", constants.EDGE_TYPE_RELATION)
    data = dict(relationship.data_extra)
    data.update({
        "relationType": relationship.kind,
        "sourceColumn": relationship.source_column,
        "targetColumn": relationship.target_column,
    })
    edge.update({
        "id": relationship.id,
        "source": relationship.source_table_id,
        "target": relationship.target_table_id,
        "data": data,
    })
    return edge


def diagram_to_dict(diagram):
    payload = dict(diagram.extra)
    payload.update({
        "version": diagram.version,
        "nodes": [_table_to_dict(table) for table in diagram.tables],
        "edges": [_relationship_to_dict(rel) for rel in diagram.relationships],
        "viewport": dict(diagram.viewport),
    })
    return payload


def dumps_diagram(diagram, indent=2):
    return json.dumps(diagram_to_dict(diagram), indent=indent)


def save_diagram_file(diagram, path):
    """Writes the diagram as JSON. IO errors propagate to the caller."""
    with open(path, 'w', encoding='utf-8') as f:
        f.write(dumps_diagram(diagram))
    logger.info("Diagram saved to %s", path)


def load_diagram_file(path):
    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            content = f.read()
    except OSError as e:
        logger.error("Could not read diagram file %s: %s", path, e)
        return ImportResult.failure(f"Could not read '{path}': {e}")
    result = diagram_from_payload(content)
    if not result.ok:
        logger.error("Import of %s failed: %s", path, result.error)
    return result
