# constants.py
# This file contains global constants used throughout the schema diagram engine.

# --- Table Geometry (used to estimate box sizes for auto-layout) ---
DEFAULT_TABLE_WIDTH = 250
TABLE_HEADER_HEIGHT = 50
COLUMN_HEIGHT = 30
GRID_SIZE = 20

# --- Layered Layout Spacing ---
DEFAULT_NODE_SEP = 100       # Vertical gap between tables sharing a rank
DEFAULT_RANK_SEP = 200       # Horizontal gap between ranks
DEFAULT_EDGE_SEP = 50        # Vertical slot taken by an edge passing through a rank
DEFAULT_COMPONENT_GAP = 150  # Gap between disconnected sub-diagrams
LAYOUT_ORIGIN_X = 0
LAYOUT_ORIGIN_Y = 0
CROSSING_REDUCTION_SWEEPS = 8

# --- New Table Placement ---
NEW_TABLE_GAP = 100

# --- Column Defaults ---
DEFAULT_COLUMN_TYPE = "VARCHAR(255)"
DEFAULT_COLUMN_DATA_TYPES = [
    "INT", "BIGINT", "SMALLINT", "TINYINT", "DECIMAL(10,2)", "NUMERIC", "FLOAT", "DOUBLE", "REAL",
    "VARCHAR(255)", "VARCHAR(100)", "TEXT", "LONGTEXT", "CHAR(1)", "VARCHAR",
    "BOOLEAN",
    "DATE", "DATETIME", "TIMESTAMP", "TIME", "YEAR",
    "JSON", "JSONB", "UUID", "BLOB", "ENUM",
]
IDENTITY_COLUMN_NAME = "id"
IDENTITY_COLUMN_TYPE = "INT"
IDENTITY_COLUMN_DEFAULT = "AUTO_INCREMENT"

# --- Relationship Kinds ---
REL_ONE_TO_ONE = "one-to-one"
REL_ONE_TO_MANY = "one-to-many"
REL_MANY_TO_MANY = "many-to-many"
RELATION_KINDS = (REL_ONE_TO_ONE, REL_ONE_TO_MANY, REL_MANY_TO_MANY)

# DBML reference symbols. '>' and '<' both read as one-to-many; the declaring
# column is always the relationship source.
REF_SYMBOL_KINDS = {
    "-": REL_ONE_TO_ONE,
    ">": REL_ONE_TO_MANY,
    "<": REL_ONE_TO_MANY,
    "<>": REL_MANY_TO_MANY,
}
KIND_REF_SYMBOLS = {
    REL_ONE_TO_ONE: "-",
    REL_ONE_TO_MANY: ">",
    REL_MANY_TO_MANY: "<>",
}

# --- Id Prefixes ---
TABLE_ID_PREFIX = "table-"
EDGE_ID_PREFIX = "edge-"
ID_LENGTH = 10

# --- Diagram Export Format ---
DIAGRAM_FORMAT_VERSION = "1.0"
SUPPORTED_FORMAT_MAJOR = "1"
NODE_TYPE_TABLE = "tableNode"
EDGE_TYPE_RELATION = "relation"
DEFAULT_VIEWPORT = {"x": 0, "y": 0, "zoom": 1}

# --- Color Definitions ---
DEFAULT_TABLE_COLOR = "#0078D4"

# --- Schema Assistant ---
DEFAULT_ASSISTANT_MODEL = "llama-3.1-8b-instant"
DEFAULT_ASSISTANT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_ASSISTANT_API_KEY_ENV = "API_KEY"
DEFAULT_ASSISTANT_TEMPERATURE = 0.1
ASSISTANT_ROLES = ("system", "user", "assistant")

# --- Config Keys ---
CONFIG_FILE = "config.ini"
CONFIG_KEY_PRESERVE_POSITIONS = "preserve_positions"

# Sample schema loaded by `erd-sync --sample`.
DEFAULT_SCHEMA_TEXT = """Table users {
  id integer [primary key]
  username varchar
  created_at timestamp
}

Table posts {
  id integer [primary key]
  user_id integer [ref: > users.id]
  body text
}

Table profile {
  id integer [primary key]
  user_id integer [unique, ref: - users.id]
  bio varchar
}
"""
