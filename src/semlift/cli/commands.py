"""
CLI commands and entry point.

Usage:
    semlift lift --input-format json --plan plan.yaml data.json --out data.ttl
    semlift shacl --schema schema.json --context context.jsonld --out shapes.ttl
"""

import argparse
import importlib
import inspect
import logging
import sys
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..config import SemliftConfig, load_config
from ..constants import ExitCode
from ..core.cache import CachingResourceResolver
from ..core.cancellation import OperationCancelledException
from ..core.errors import (
    ConfigurationError,
    ExternalProcessFailure,
    FetchError,
    ImportCycleError,
    ProtocolError,
    ResourceNotFoundError,
    SemliftError,
    ValidationFailure,
)
from ..core.resources import ResourceResolver
from ..models.documents import LiftResult, RdfOutput
from ..models.plan import IdRule, LiftPlan, ResolvedContext
from ..models.sources import CsvSource, InputSource, JsonSource, RelationalSource, XmlSource
from ..plan.loader import PlanLoader
from ..plugins.base import PlanProvider, PlanRegistry
from ..plugins.builtin.ogc_bblocks import OgcBblocksProvider
from ..services.lifter import create_default_lifter
from ..shacl.generator import JsonSchemaToShacl, ShaclConfig
from ..rdf.rdflib_backend import RdflibBackend
from .helpers import read_input, report_path, setup_logging, write_output
from .parsers import create_argument_parser

logger = logging.getLogger(__name__)

BUILTIN_PROVIDERS = {
    "ogc-bblocks": OgcBblocksProvider,
}


# ============================================================================
# Base Command Class
# ============================================================================

class BaseCommand(ABC):
    """
    Base class for CLI commands.

    Provides configuration loading and logging setup. Subclasses implement
    execute().
    """

    def __init__(self, config: Optional[SemliftConfig] = None):
        self._config = config

    def load(self, args: argparse.Namespace) -> SemliftConfig:
        """Load configuration (once) and configure logging from it."""
        if self._config is None:
            self._config = load_config(getattr(args, 'config', None))
        setup_logging(
            level=getattr(args, 'log_level', None),
            log_file=getattr(args, 'log_file', None),
            config=self._config.logging,
        )
        return self._config

    @abstractmethod
    def execute(self, args: argparse.Namespace) -> int:
        """
        Execute the command.

        Args:
            args: Parsed command-line arguments.

        Returns:
            Exit code (0 for success, non-zero for error).
        """
        pass


# ============================================================================
# lift
# ============================================================================

def load_plan_provider(spec: str, resolver: ResourceResolver) -> PlanProvider:
    """Instantiate a plan provider from a built-in id or ``module:attribute``."""
    builtin = BUILTIN_PROVIDERS.get(spec.strip().lower())
    if builtin is not None:
        return builtin(resolver)

    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Plan provider must be a built-in id or 'module:attribute': {spec}")
    try:
        target = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load plan provider {spec}: {e}") from e
    provider = target() if inspect.isclass(target) else target
    if not isinstance(provider, PlanProvider):
        raise ConfigurationError(f"Plan provider {spec} must be a PlanProvider")
    return provider


class LiftCommand(BaseCommand):
    """
    Lift an input source with a plan.

    Usage:
        lift --input-format {json,xml,csv,db,plan} --plan <plan> [input] [options]
    """

    def execute(self, args: argparse.Namespace) -> int:
        config = self.load(args)
        resolver = CachingResourceResolver(config.cache)

        providers = [load_plan_provider(spec, resolver) for spec in args.plan_provider]
        loader = PlanLoader(resolver, PlanRegistry(providers) if providers else None)
        plan = loader.load_file(args.plan)

        id_rules: List[IdRule] = []
        for rules_path in args.id_rules:
            id_rules.extend(loader.load_id_rules(rules_path))

        options = config.lift_options(
            base_iri=args.base_iri,
            output=RdfOutput.parse(args.rdf_lang) if args.rdf_lang else None,
            strict=args.strict,
            jq_binary=args.jq_binary,
            context_override=ResolvedContext(args.context) if args.context else None,
            id_rules_override=tuple(id_rules) or None,
            csv_infer_types=(args.csv_infer_types == 'true') if args.csv_infer_types else None,
        )

        source = self.build_source(args, plan)
        lifter = create_default_lifter(resolver=resolver, show_progress=args.progress)
        result = lifter.lift(source, plan, options)
        self.write_result(result, args.out)

        for warning in result.diagnostics.warnings:
            logger.warning(warning)
        logger.info(f"Applied steps: {', '.join(result.diagnostics.applied_steps) or '(none)'}")

        if options.strict:
            result.raise_for_conformance()
        return ExitCode.SUCCESS

    @staticmethod
    def build_source(args: argparse.Namespace, plan: LiftPlan) -> Optional[InputSource]:
        """Input source for ``--input-format``; None lifts the plan's own API input."""
        input_format = args.input_format
        path = args.input_option or args.input
        if input_format == 'json':
            return JsonSource(read_input(path))
        if input_format == 'xml':
            return XmlSource(read_input(path))
        if input_format == 'csv':
            return CsvSource(read_input(path), has_header=not args.csv_no_header, delimiter=args.csv_delimiter)
        if input_format == 'db':
            if not args.db_url:
                raise ConfigurationError("--db-url is required for db input")
            return RelationalSource(
                url=args.db_url,
                table=args.db_table,
                query=args.db_query,
                user=args.db_user,
                password=args.db_password,
            )
        if input_format == 'plan':
            if plan.input is None:
                raise ConfigurationError("Lift plan declares no input for --input-format plan")
            return None
        raise ConfigurationError(f"Unsupported input format: {input_format}")

    @staticmethod
    def write_result(result: LiftResult, out: str) -> None:
        write_output(result.rdf.data, out)
        if result.report is not None and out and out != '-':
            path = report_path(out)
            write_output(result.report.report, path)
            logger.info(f"SHACL report written to {path}")


# ============================================================================
# shacl
# ============================================================================

class ShaclCommand(BaseCommand):
    """
    Generate SHACL shapes from a JSON Schema.

    Usage:
        shacl --schema <schema.json> [--context <context.jsonld>] [--out <shapes.ttl>]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.load(args)
        schema = read_input(args.schema)
        context = read_input(args.context) if args.context else None
        compiler = JsonSchemaToShacl(ShaclConfig(
            target_namespace=args.target_namespace,
            property_namespace=args.property_namespace,
            target_class=args.target_class,
            shape_name=args.shape_name,
            include_labels=not args.no_labels,
        ))
        turtle = compiler.generate(schema, context, RdflibBackend())
        write_output(turtle.encode('utf-8'), args.out)
        return ExitCode.SUCCESS


COMMANDS = {
    'lift': LiftCommand,
    'shacl': ShaclCommand,
}


# ============================================================================
# Entry point
# ============================================================================

def exit_code_for(error: BaseException) -> ExitCode:
    """Map an exception to the CLI exit code."""
    if isinstance(error, (OperationCancelledException, KeyboardInterrupt)):
        return ExitCode.CANCELLED
    if isinstance(error, ValidationFailure):
        return ExitCode.VALIDATION_ERROR
    if isinstance(error, (ConfigurationError, ImportCycleError)):
        return ExitCode.CONFIG_ERROR
    if isinstance(error, (ResourceNotFoundError, FileNotFoundError)):
        return ExitCode.FILE_NOT_FOUND
    if isinstance(error, (FetchError, ProtocolError)):
        return ExitCode.FETCH_ERROR
    if isinstance(error, ExternalProcessFailure):
        return ExitCode.EXTERNAL_PROCESS_ERROR
    return ExitCode.ERROR


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run the command and return its exit code."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return ExitCode.ERROR

    command = COMMANDS[args.command]()
    try:
        return int(command.execute(args))
    except (SemliftError, OSError, OperationCancelledException, KeyboardInterrupt) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"✗ {e}", file=sys.stderr)
        return int(exit_code_for(e))


if __name__ == "__main__":
    sys.exit(main())
