#!/usr/bin/env python3
"""
Command line interface for the guidance engine.

Commands:
    engine recommend --domain <id> --situation <file>
    engine validate --domain <id> --artifact <file>
    engine domains
    engine check-registry

Situation and artifact files are flat YAML or JSON mappings.

Exit codes:
    0  success / PASS
    1  WARN
    2  FAIL or engine error
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml

from .config import LOG_LEVELS, EngineConfig
from .decisioning import RecommendationEngine
from .errors import EngineError, RegistryError
from .facts import CandidateArtifact, Facts, Situation
from .observability.reporter import FORMATS, ReportRenderer
from .registry import install_registry
from .validation import OverallStatus, ValidationEngine


logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

EXIT_OK = 0
EXIT_WARN = 1
EXIT_FAIL = 2

STATUS_EXIT_CODES = {
    OverallStatus.PASS: EXIT_OK,
    OverallStatus.WARN: EXIT_WARN,
    OverallStatus.FAIL: EXIT_FAIL,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="engine",
        description="Recommend technology choices and validate artifacts against guardrails"
    )
    parser.add_argument(
        "--config",
        help="Path to configuration file (default: built-in defaults)"
    )
    parser.add_argument(
        "--registry",
        action="append",
        default=[],
        metavar="PATH",
        help="Extra domain document or directory (repeatable)"
    )
    parser.add_argument(
        "--no-builtin",
        action="store_true",
        help="Do not load the packaged domains"
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        help="Output format (default: from config, else text)"
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Logging level (default: from config, else WARNING)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    recommend = subparsers.add_parser("recommend", help="Walk a domain's decision tree")
    recommend.add_argument("--domain", required=True, help="Domain id")
    recommend.add_argument("--situation", required=True, help="YAML/JSON file of situation facts")

    validate = subparsers.add_parser("validate", help="Check an artifact against guardrails")
    validate.add_argument("--domain", required=True, help="Domain id")
    validate.add_argument("--artifact", required=True, help="YAML/JSON file of artifact facts")

    subparsers.add_parser("domains", help="List registered domains")
    subparsers.add_parser("check-registry", help="Load and validate the registry sources")

    return parser


def read_facts(path: str, facts_type=Facts) -> Facts:
    """
    Read a flat facts mapping from a YAML or JSON file.

    Raises:
        OSError: if the file cannot be read
        yaml.YAMLError: if it cannot be parsed
        TypeError: if it is not a flat mapping of scalars
    """
    with open(Path(path), encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{path} must contain a mapping of field names to values")
    return facts_type(data)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


def _emit(text: str) -> None:
    print(text)


def run_recommend(args, registry, renderer: ReportRenderer, fmt: str) -> int:
    situation = read_facts(args.situation, Situation)
    result = RecommendationEngine(registry).recommend(args.domain, situation)
    _emit(renderer.render_recommendation(result, fmt))
    return EXIT_OK if result.ok else EXIT_FAIL


def run_validate(args, registry, renderer: ReportRenderer, fmt: str) -> int:
    artifact = read_facts(args.artifact, CandidateArtifact)
    report = ValidationEngine(registry).validate(args.domain, artifact)
    _emit(renderer.render_report(report, fmt))
    return STATUS_EXIT_CODES[report.overall_status]


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = EngineConfig.from_file(args.config) if args.config else EngineConfig.packaged()
    except (OSError, ValueError, yaml.YAMLError) as e:
        configure_logging('ERROR')
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAIL

    configure_logging(args.log_level or config.log_level)
    fmt = args.format or config.output_format
    include_builtin = config.include_builtin and not args.no_builtin
    sources = list(config.sources) + list(args.registry)
    renderer = ReportRenderer()

    try:
        registry = install_registry(sources, include_builtin=include_builtin)
    except RegistryError as e:
        logger.error(f"Registry load failed [{e.code}]: {e.message}")
        return EXIT_FAIL

    try:
        if args.command == "recommend":
            return run_recommend(args, registry, renderer, fmt)
        if args.command == "validate":
            return run_validate(args, registry, renderer, fmt)
        if args.command == "domains":
            _emit(renderer.render_domains(registry, fmt))
            return EXIT_OK
        if args.command == "check-registry":
            _emit(f"Registry OK: {len(registry)} domain(s): {', '.join(registry.domains())}")
            return EXIT_OK
    except (OSError, TypeError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.error(f"Could not read input: {e}")
        return EXIT_FAIL
    except EngineError as e:
        logger.error(f"{e.code}: {e.message}")
        return EXIT_FAIL

    parser.error(f"Unknown command: {args.command}")
    return EXIT_FAIL


if __name__ == "__main__":
    sys.exit(main())
