# main.py
# Command-line entry point: loads schema text, a saved diagram or an assistant
# reply into the diagram store and writes SQL, schema text or diagram JSON.

import argparse
import logging
import os
import sys

import constants
from app_config import load_app_settings
from dbml_generator import generate_dbml
from diagram_io import dumps_diagram, load_diagram_file
from diagram_store import DiagramStore
from schema_assistant import AssistantError, SchemaAssistant
from sql_generator import generate_sql_for_diagram

logger = logging.getLogger("main")

OUTPUT_FORMATS = ("sql", "dbml", "json")


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="erd-sync",
        description="Turn DBML-like schema text into a laid-out diagram, SQL DDL or diagram JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  erd-sync schema.dbml --to sql                 # CREATE TABLE statements
  erd-sync schema.dbml --to json -o diagram.json
  erd-sync diagram.json --to dbml               # Regenerate schema text
  erd-sync --sample --to json                   # Try it on the sample schema
  erd-sync --prompt "a blog with users and posts" --to dbml
        """
    )
    parser.add_argument("input", nargs="?", help="Schema text (.dbml) or saved diagram (.json) file")
    parser.add_argument("--prompt", help="Ask the schema assistant to write the schema text instead")
    parser.add_argument("--sample", action="store_true", help="Use the built-in sample schema as input")
    parser.add_argument("--to", choices=OUTPUT_FORMATS, default="sql", help="Output format (default: sql)")
    parser.add_argument("-o", "--output", help="Write to this file instead of stdout")
    parser.add_argument("--config", default=constants.CONFIG_FILE,
                        help=f"Settings file (default: {constants.CONFIG_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _load_text(store, text):
    report = store.load_from_text(text)
    for warning in report.warnings:
        logger.warning(warning)
    if not report.applied:
        logger.error(report.message)
        return False
    logger.info(report.message)
    return True


def _load_input(store, args, settings):
    if args.sample:
        return _load_text(store, constants.DEFAULT_SCHEMA_TEXT)

    if args.prompt:
        assistant = SchemaAssistant(settings)
        try:
            text = assistant.generate_schema_text([{"role": "user", "content": args.prompt}])
        except AssistantError as exc:
            logger.error("Schema assistant failed: %s", exc)
            return False
        return _load_text(store, text)

    if os.path.splitext(args.input)[1].lower() == ".json":
        result = load_diagram_file(args.input)
        if not result.ok:
            return False
        return bool(store.import_diagram(result.diagram))

    try:
        with open(args.input, 'r', encoding='utf-8-sig') as f:
            text = f.read()
    except OSError as exc:
        logger.error("Could not read %s: %s", args.input, exc)
        return False
    return _load_text(store, text)


def render(store, output_format):
    if output_format == "sql":
        return generate_sql_for_diagram(store.tables, store.relationships)
    if output_format == "dbml":
        return generate_dbml(store.tables, store.relationships)
    return dumps_diagram(store.export_diagram())


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.input and not args.prompt and not args.sample:
        parser.error("an input file, --prompt or --sample is required")

    setup_logging(args.verbose)
    settings = load_app_settings(args.config)
    store = DiagramStore(settings)

    if not _load_input(store, args, settings):
        return 1

    output = render(store, args.to)
    if args.output:
        try:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(output + "\n")
        except OSError as exc:
            logger.error("Could not write %s: %s", args.output, exc)
            return 1
        logger.info("Wrote %s output to %s", args.to, args.output)
    else:
        sys.stdout.write(output + "\n")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
