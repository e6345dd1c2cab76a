# dbml_parser.py
# Contains line-oriented parsing of DBML-like schema text into tables and
# unresolved reference declarations.

import logging
import re

import constants
from data_models import Column, Table, RefDeclaration
from utils import generate_id

logger = logging.getLogger(__name__)

_IDENT = r"[A-Za-z0-9_]+"
_REF_SYMBOL = r"(<>|[<>-])"

_TABLE_HEADER_RE = re.compile(
    rf"^table\s+({_IDENT})(?:\s+as\s+{_IDENT})?\s*(?:\[([^\]]*)\])?\s*\{{$", re.IGNORECASE
)
_TABLE_KEYWORD_RE = re.compile(r"^table\b", re.IGNORECASE)
_BLOCK_HEADER_RE = re.compile(r"^([A-Za-z_]\w*)\b[^\[\]]*\{$")
_ANNOTATION_RE = re.compile(r"\[([^\]]*)\]")
_INLINE_REF_RE = re.compile(rf"^ref\s*:\s*{_REF_SYMBOL}\s*({_IDENT})\.({_IDENT})$", re.IGNORECASE)
_REF_BODY_RE = re.compile(rf"^({_IDENT})\.({_IDENT})\s*{_REF_SYMBOL}\s*({_IDENT})\.({_IDENT})$")
_STANDALONE_REF_RE = re.compile(rf"^ref(?:\s+{_IDENT})?\s*:\s*(.+)$", re.IGNORECASE)
_REF_BLOCK_HEADER_RE = re.compile(rf"^ref(?:\s+{_IDENT})?\s*\{{$", re.IGNORECASE)
_DEFAULT_RE = re.compile(r"^default\s*:\s*(.+)$", re.IGNORECASE)
_HEADER_COLOR_RE = re.compile(r"^headercolor\s*:\s*(#[0-9A-Fa-f]{3,8})$", re.IGNORECASE)


class ParseIssue:
    """A recoverable anomaly found while parsing; the offending line was skipped or patched."""
    def __init__(self, line_number, message):
        self.line_number = line_number
        self.message = message

    def __str__(self):
        if self.line_number is None:
            return self.message
        return f"Line {self.line_number}: {self.message}"

    def __repr__(self):
        return f"ParseIssue({self.line_number!r}, {self.message!r})"


class ParseResult:
    def __init__(self, tables, unresolved_refs, warnings):
        self.tables = tables
        self.unresolved_refs = unresolved_refs
        self.warnings = warnings

    @property
    def is_degraded(self):
        return bool(self.warnings)


def _brackets_balanced(text):
    return text.count("[") == text.count("]")


def _find_unbracketed(text, char):
    """Index of the first char outside [...] settings, or -1."""
    depth = 0
    for i, c in enumerate(text):
        if c == "[":
            depth += 1
        elif c == "]":
            depth = max(depth - 1, 0)
        elif c == char and depth == 0:
            return i
    return -1


def _split_logical_lines(line):
    """
    Splits one physical line into logical lines so that one-line blocks such as
    'Table posts { id int }' read the same as their multi-line form.
    """
    if line.startswith("//"):
        return [line]
    parts = []
    brace_index = _find_unbracketed(line, "{")
    if brace_index > 0 and line[:brace_index].strip():
        parts.append(line[:brace_index].rstrip() + " {")
        line = line[brace_index + 1:].strip()
        if not line:
            return parts
    if line != "}" and line.endswith("}") and _brackets_balanced(line[:-1]):
        body = line[:-1].strip()
        if body:
            parts.append(body)
        parts.append("}")
        return parts
    parts.append(line)
    return parts


def _iter_logical_lines(text):
    """Yields (line_number, stripped_line) pairs, skipping blank lines."""
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        stripped = raw_line.strip()
        if not stripped:
            continue
        for part in _split_logical_lines(stripped):
            yield line_number, part


def _split_settings(annotation_groups):
    settings = []
    for group in annotation_groups:
        for setting in group.split(","):
            setting = setting.strip()
            if setting:
                settings.append(setting)
    return settings


def _read_type_token(tokens):
    """Second token is the type; a parenthesised type split by spaces (DECIMAL(10, 2)) is rejoined."""
    if len(tokens) < 2:
        return constants.DEFAULT_COLUMN_TYPE
    type_parts = [tokens[1]]
    index = 2
    while "".join(type_parts).count("(") > "".join(type_parts).count(")") and index < len(tokens):
        type_parts.append(tokens[index])
        index += 1
    return " ".join(type_parts).upper()


def _parse_column_line(line, line_number, table, id_factory, issues):
    """
    Parses one column line of the current table.
    Returns (Column, RefDeclaration or None), or (None, None) when the line is skipped.
    """
    annotation_groups = _ANNOTATION_RE.findall(line)
    tokens = _ANNOTATION_RE.sub(" ", line).split()
    if not tokens:
        issues.append(ParseIssue(line_number, f"annotation without a column name in table '{table.label}'"))
        return None, None

    name = tokens[0]
    data_type = _read_type_token(tokens)
    if len(tokens) < 2:
        logger.debug("Column '%s.%s' has no type, using %s", table.label, name, data_type)

    column = Column(name=name, data_type=data_type, column_id=id_factory(""))
    ref = None
    for setting in _split_settings(annotation_groups):
        lowered = " ".join(setting.lower().split())
        if lowered in ("pk", "primary key"):
            column.is_pk = True
            column.is_unique = True
        elif lowered == "unique":
            column.is_unique = True
        elif lowered == "not null":
            column.is_nullable = False
        elif lowered == "null":
            column.is_nullable = True
        elif lowered.startswith("default"):
            default_match = _DEFAULT_RE.match(setting)
            if default_match:
                column.default_value = default_match.group(1).strip()
        elif lowered.startswith("ref"):
            ref_match = _INLINE_REF_RE.match(setting)
            if ref_match:
                symbol, to_table, to_column = ref_match.groups()
                column.is_fk = True
                ref = RefDeclaration(
                    from_table_id=table.id, from_table_label=table.label, from_column=name,
                    to_table_label=to_table, to_column=to_column,
                    kind=constants.REF_SYMBOL_KINDS[symbol], line_number=line_number,
                )
            else:
                issues.append(ParseIssue(line_number, f"unrecognized reference '{setting}'"))
    return column, ref


def _parse_ref_body(body, line_number, issues):
    """Parses 'a.col > b.col' from a standalone Ref statement; the left side is the source."""
    ref_match = _REF_BODY_RE.match(body.strip())
    if not ref_match:
        issues.append(ParseIssue(line_number, f"unrecognized reference '{body.strip()}'"))
        return None
    from_table, from_column, symbol, to_table, to_column = ref_match.groups()
    return RefDeclaration(
        from_table_id=None, from_table_label=from_table, from_column=from_column,
        to_table_label=to_table, to_column=to_column,
        kind=constants.REF_SYMBOL_KINDS[symbol], line_number=line_number,
    )


def parse_dbml(text, id_factory=None):
    """
    Parses DBML-like schema text.
    Never raises: malformed lines are skipped and reported in ParseResult.warnings.
    Table and column ids come from id_factory(prefix), defaulting to utils.generate_id.
    """
    if id_factory is None:
        id_factory = generate_id
    if not isinstance(text, str):
        text = "" if text is None else str(text)

    tables = []
    refs = []
    issues = []

    current_table = None
    nested_depth = 0        # Sub-blocks inside a table (indexes { ... })
    skip_depth = 0          # Unsupported top-level blocks being skipped
    in_ref_block = False

    for line_number, line in _iter_logical_lines(text):
        if line.startswith("//"):
            continue

        if line == "}":
            if nested_depth:
                nested_depth -= 1
            elif current_table is not None:
                current_table = None
            elif skip_depth:
                skip_depth -= 1
            elif in_ref_block:
                in_ref_block = False
            # Closing with nothing open is tolerated.
            continue

        if skip_depth:
            if line.endswith("{"):
                skip_depth += 1
            continue

        if in_ref_block:
            ref = _parse_ref_body(line, line_number, issues)
            if ref:
                refs.append(ref)
            continue

        if _TABLE_KEYWORD_RE.match(line) and line.endswith("{"):
            if current_table is not None:
                issues.append(ParseIssue(line_number, f"table '{current_table.label}' was not closed before a new table"))
                current_table = None
                nested_depth = 0
            header_match = _TABLE_HEADER_RE.match(line)
            if not header_match:
                issues.append(ParseIssue(line_number, f"unrecognized table header '{line}'"))
                skip_depth = 1
                continue
            label, table_settings = header_match.groups()
            current_table = Table(label=label, table_id=id_factory(constants.TABLE_ID_PREFIX))
            for setting in _split_settings([table_settings or ""]):
                color_match = _HEADER_COLOR_RE.match(setting)
                if color_match:
                    current_table.color = color_match.group(1)
            tables.append(current_table)
            continue

        if current_table is not None:
            if nested_depth or _BLOCK_HEADER_RE.match(line):
                if not nested_depth:
                    issues.append(ParseIssue(line_number, f"'{line[:-1].strip()}' block in table '{current_table.label}' is not supported"))
                if line.endswith("{"):
                    nested_depth += 1
                continue
            if line.split()[0].endswith(":"):
                # Table-level settings such as Note: '...'
                continue
            column, ref = _parse_column_line(line, line_number, current_table, id_factory, issues)
            if column is not None:
                current_table.add_column(column)
            if ref is not None:
                refs.append(ref)
            continue

        if _REF_BLOCK_HEADER_RE.match(line):
            in_ref_block = True
            continue

        standalone_match = _STANDALONE_REF_RE.match(line)
        if standalone_match:
            ref = _parse_ref_body(standalone_match.group(1), line_number, issues)
            if ref:
                refs.append(ref)
            continue

        block_match = _BLOCK_HEADER_RE.match(line)
        if block_match:
            issues.append(ParseIssue(line_number, f"'{block_match.group(1)}' block is not supported and was skipped"))
            skip_depth = 1
            continue

        issues.append(ParseIssue(line_number, f"ignored line outside of a table block: '{line}'"))

    if current_table is not None:
        issues.append(ParseIssue(None, f"table '{current_table.label}' is missing a closing '}}'"))

    for issue in issues:
        logger.debug("Parse issue: %s", issue)
    logger.info("Parsed %d tables, %d references (%d issues)", len(tables), len(refs), len(issues))
    return ParseResult(tables, refs, issues)
