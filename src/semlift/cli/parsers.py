"""
CLI argument parser configuration.

This module defines the argument parser structure for all CLI commands.

Command Structure:
    - lift  --input-format {json,xml,csv,db,plan} --plan <plan.yaml> [input]
    - shacl --schema <schema.json> [--context <context.jsonld>]
"""

import argparse

from ..constants import LiftDefaults, ShaclDefaults


# ============================================================================
# Shared Flag Group Builders
# ============================================================================

def add_logging_flags(parser: argparse.ArgumentParser) -> None:
    """Add logging and configuration flags."""
    parser.add_argument(
        '--config', '-c',
        help='Path to a JSON configuration file (cache, lift and logging sections)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Log level (default: INFO, or the configuration file value)'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this file'
    )


def add_output_flags(parser: argparse.ArgumentParser, help_text: str) -> None:
    """Add the --out flag."""
    parser.add_argument(
        '--out', '-o',
        default='-',
        help=help_text
    )


def add_db_flags(parser: argparse.ArgumentParser) -> None:
    """Add relational input flags."""
    group = parser.add_argument_group('relational input (--input-format db)')
    group.add_argument('--db-url', help='Database URL, e.g. sqlite:///data.db')
    group.add_argument('--db-table', help='Table to read (plain identifier)')
    group.add_argument('--db-query', help='SQL query to run instead of reading a table')
    group.add_argument('--db-user', help='Database user')
    group.add_argument('--db-password', help='Database password')


def add_csv_flags(parser: argparse.ArgumentParser) -> None:
    """Add tabular input flags."""
    group = parser.add_argument_group('CSV input (--input-format csv)')
    group.add_argument(
        '--csv-no-header',
        action='store_true',
        help='First row is data; columns are named col1..colN'
    )
    group.add_argument(
        '--csv-infer-types',
        choices=['true', 'false'],
        default=None,
        help='Infer booleans and numbers from cell text (default: true)'
    )
    group.add_argument(
        '--csv-delimiter',
        default=',',
        help='Field delimiter (default: ,)'
    )


def add_lift_option_flags(parser: argparse.ArgumentParser) -> None:
    """Add flags that become LiftOptions."""
    parser.add_argument(
        '--context',
        help='Override the plan context with this reference (path or URI)'
    )
    parser.add_argument(
        '--id-rules',
        action='append',
        default=[],
        help='Identifier rules file applied after the plan rules (repeatable)'
    )
    parser.add_argument(
        '--jq-binary',
        help=f'Path to the jq binary (default: {LiftDefaults.JQ_BINARY})'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        default=None,
        help='Treat schema, identifier rule and SHACL failures as fatal'
    )
    parser.add_argument(
        '--base-iri',
        help=f'Base IRI for relative identifiers (default: {LiftDefaults.BASE_IRI})'
    )
    parser.add_argument(
        '--rdf-lang',
        help='Output form: turtle | jsonld | ntriples (default: turtle)'
    )
    parser.add_argument(
        '--plan-provider',
        action='append',
        default=[],
        help="Plan provider for provider imports: 'ogc-bblocks' or 'module:attribute' (repeatable)"
    )
    parser.add_argument(
        '--progress',
        action='store_true',
        help='Show progress bars while paging API sources'
    )


# ============================================================================
# Main Parser Factory
# ============================================================================

def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the main argument parser.

    Returns:
        Configured ArgumentParser with all subcommands.
    """
    parser = argparse.ArgumentParser(
        prog='semlift',
        description="Lift JSON, XML, CSV, relational and API data into RDF with declarative plans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Lift a JSON file with a plan, writing Turtle to stdout
    %(prog)s lift --input-format json --plan plans/things.yaml data.json

    # Strict lift of a CSV file to N-Triples; SHACL report goes to out.nt.shacl.ttl
    %(prog)s lift --input-format csv --plan plan.yaml --strict --rdf-lang nt --out out.nt rows.csv

    # Lift the API input declared in the plan
    %(prog)s lift --input-format plan --plan lakes.yaml --out lakes.ttl

    # Generate SHACL shapes from a JSON Schema
    %(prog)s shacl --schema person.schema.json --context person.jsonld --out person.shacl.ttl
        """,
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    _add_lift_parser(subparsers)
    _add_shacl_parser(subparsers)
    return parser


def _add_lift_parser(subparsers: argparse._SubParsersAction) -> None:
    """Add the lift command parser."""
    parser = subparsers.add_parser(
        'lift',
        help='Lift an input source to RDF using a lift plan'
    )
    parser.add_argument(
        'input',
        nargs='?',
        default=None,
        help="Input file path, or '-' / omitted for stdin (unused for db and plan inputs)"
    )
    parser.add_argument(
        '--input', '-i',
        dest='input_option',
        help='Input file path (alternative to the positional argument)'
    )
    parser.add_argument(
        '--input-format', '-f',
        required=True,
        choices=['json', 'xml', 'csv', 'db', 'plan'],
        help="Input format; 'plan' lifts the API input declared in the plan"
    )
    parser.add_argument(
        '--plan', '-p',
        required=True,
        help='Lift plan file (YAML or JSON)'
    )
    add_output_flags(parser, "Output RDF file, or '-' for stdout (default)")
    add_db_flags(parser)
    add_csv_flags(parser)
    add_lift_option_flags(parser)
    add_logging_flags(parser)


def _add_shacl_parser(subparsers: argparse._SubParsersAction) -> None:
    """Add the shacl command parser."""
    parser = subparsers.add_parser(
        'shacl',
        help='Generate SHACL shapes from a JSON Schema'
    )
    parser.add_argument(
        '--schema', '-s',
        required=True,
        help="JSON Schema file, or '-' for stdin"
    )
    parser.add_argument(
        '--context',
        help='JSON-LD context file used to resolve property IRIs'
    )
    add_output_flags(parser, "Output Turtle file, or '-' for stdout (default)")
    parser.add_argument(
        '--target-namespace',
        default=ShaclDefaults.TARGET_NAMESPACE,
        help=f'Namespace for generated shapes (default: {ShaclDefaults.TARGET_NAMESPACE})'
    )
    parser.add_argument(
        '--property-namespace',
        help='Namespace for properties not defined by the context (default: the target namespace)'
    )
    parser.add_argument(
        '--target-class',
        help='sh:targetClass IRI of the root shape'
    )
    parser.add_argument(
        '--shape-name',
        help='Root shape name (default: schema title, else Root)'
    )
    parser.add_argument(
        '--no-labels',
        action='store_true',
        help='Do not emit rdfs:label / sh:name labels'
    )
    add_logging_flags(parser)
