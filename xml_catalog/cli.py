"""
Command-line interface for the XML Catalog system.

This module provides the main entry point for viewing, editing and exporting
catalog data from the command line, using the centralized configuration
manager for storage location and export options.

Examples:
    xml_catalog show animals.xml
    xml_catalog set-field 1 slot_1 "Panthera leo"
    xml_catalog group "Big Cats" "Big Cats" 1 3
    xml_catalog export animals.xml --format csv -o animals.csv --hide slot_2
"""

import argparse
import json
import logging
import sys

from typing import List, Optional

from .catalog import CatalogSession
from .config.config_manager import get_config_manager
from .exceptions import CatalogError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='xml_catalog',
        description='View, annotate and export tabular data embedded in XML documents.'
    )
    parser.add_argument('--settings', help='JSON or YAML settings file')
    parser.add_argument('--log-level', help='Logging level (DEBUG, INFO, WARNING, ERROR)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    show = subparsers.add_parser('show', help='Parse a document and print its working records')
    show.add_argument('source', help='Path to an .xml file or an http(s) URL')
    show.add_argument('--limit', type=int, default=None, help='Print at most this many records')

    export = subparsers.add_parser('export', help='Export working records as XML or CSV')
    export.add_argument('source', help='Path to an .xml file or an http(s) URL')
    export.add_argument('--format', choices=['xml', 'csv'], default='xml')
    export.add_argument('-o', '--output', help='Output path; prints to stdout when omitted')
    export.add_argument('--hide', action='append', default=[], metavar='FIELD',
                        help='Slot key or custom column to leave out (repeatable)')
    export.add_argument('--filter', action='append', default=[], metavar='FIELD=VALUE',
                        help='Keep records whose FIELD equals VALUE (repeatable)')
    export.add_argument('--sort', metavar='FIELD', help='Sort by a slot key')
    export.add_argument('--deactivate', action='append', default=[], metavar='ID',
                        help='Flag a record as deactivated (repeatable)')

    set_field = subparsers.add_parser('set-field', help='Override a slot or set a custom column value')
    set_field.add_argument('record_id')
    set_field.add_argument('name')
    set_field.add_argument('value')
    set_field.add_argument('--label', help='Display label (defaults to the name)')

    remove_field = subparsers.add_parser('remove-field', help='Remove a stored field from a record')
    remove_field.add_argument('record_id')
    remove_field.add_argument('name')

    group = subparsers.add_parser('group', help='Tag records with a group column')
    group.add_argument('name')
    group.add_argument('label')
    group.add_argument('record_ids', nargs='+')

    subparsers.add_parser('clear', help='Remove every stored custom field')
    subparsers.add_parser('config', help='Print the active configuration')

    return parser


def _configure_logging(level: int) -> None:
    # Set up logging without reconfiguring root if already configured
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
        root_logger.setLevel(level)


def _load_or_fail(session: CatalogSession, source: str, logger: logging.Logger) -> bool:
    result = session.load(source)
    if not result.success:
        logger.error(result.error)
        return False
    return True


def _print_records(session: CatalogSession, limit: Optional[int]) -> None:
    keys = [key for key in session.label_map]
    columns = session.view.visible_custom_columns()
    header = [session.label_map[key] for key in keys] + [label for _, label in columns]
    print('\t'.join(header))

    records = session.visible_records()
    if limit is not None:
        records = records[:limit]
    for record in records:
        row = [record.values.get(key, '') for key in keys]
        row.extend(record.get(name, '') for name, _ in columns)
        print('\t'.join(row))


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    options = build_parser().parse_args(args)

    try:
        config_manager = get_config_manager(options.settings)
        if options.log_level:
            config_manager.log_level = options.log_level.upper()
        _configure_logging(config_manager.get_log_level())
        logger = logging.getLogger(__name__)

        config_manager.validate_configuration()

        if options.command == 'config':
            print(json.dumps(config_manager.get_configuration_summary(), indent=2))
            return 0

        session = CatalogSession.from_config(config_manager)

        if options.command == 'show':
            if not _load_or_fail(session, options.source, logger):
                return 1
            _print_records(session, options.limit)
            logger.info(f"Last sync: {session.store.last_sync()}")
            return 0

        if options.command == 'export':
            if not _load_or_fail(session, options.source, logger):
                return 1
            session.view.hide_fields(options.hide)
            for expression in options.filter:
                name, separator, value = expression.partition('=')
                if not separator:
                    logger.error(f"Filter must look like FIELD=VALUE, got {expression!r}")
                    return 1
                session.view.set_filter(name, session.view.column_filters.get(name, set()) | {value})
            if options.sort:
                session.view.sort_by(options.sort)
            session.view.deactivate(options.deactivate)

            if options.format == 'csv':
                text = session.export_csv(options.output)
            else:
                text = session.export_xml(options.output)
            if not options.output:
                print(text)
            return 0

        if options.command == 'set-field':
            session.add_custom_field(options.record_id, options.name, options.label or options.name, options.value)
            logger.info(f"Stored '{options.name}' for record {options.record_id}")
            return 0

        if options.command == 'remove-field':
            session.remove_custom_field(options.record_id, options.name)
            logger.info(f"Removed '{options.name}' from record {options.record_id}")
            return 0

        if options.command == 'group':
            session.create_group(options.record_ids, options.name, options.label)
            return 0

        if options.command == 'clear':
            session.store.clear()
            return 0

        return 1

    except (CatalogError, ValueError) as e:
        logging.getLogger(__name__).error(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
