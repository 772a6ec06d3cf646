"""
Command-Line Interface

CLI for routing build requests, validating blueprints and planning
stations from the command line.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from asg_policies import BuildSettings
from generation.core.blueprint import BuildRequest
from generation.core.types import ORIGIN, Vec3
from generation.ops.build_order import optimize_build_order
from validity import validate_blueprint
from .catalog import AssetLoadError, load_asset
from .context import BuildContext
from .execution import prepare_build
from .llm_client import LLMClient, LLMConfig
from .resilient_client import ResilientGenerationClient
from .router import RequestRouter

logger = logging.getLogger(__name__)


def _parse_vec(value: Optional[str]) -> Optional[Vec3]:
    if not value:
        return None
    try:
        x, y, z = (int(v) for v in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected x,y,z integers, got '{value}'")
    return Vec3(x, y, z)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentic-build",
        description="Agentic Structure Generation - CLI for LLM-driven block structure building",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Route a request and print the blueprint")
    gen_parser.add_argument("text", type=str, help="Natural-language build request")
    gen_parser.add_argument(
        "--origin",
        type=_parse_vec,
        default=None,
        help="World origin as x,y,z (default: 0,0,0)",
    )
    gen_parser.add_argument(
        "--asset",
        type=str,
        default=None,
        help="Load this blueprint file instead of generating",
    )
    gen_parser.add_argument(
        "--output", "-O",
        type=str,
        default=None,
        help="Write the blueprint JSON to this file",
    )
    gen_parser.add_argument(
        "--no-stations",
        action="store_true",
        help="Skip station planning",
    )

    # Validate command
    val_parser = subparsers.add_parser("validate", help="Validate a blueprint JSON file")
    val_parser.add_argument("file", type=str, help="Blueprint JSON file")
    val_parser.add_argument(
        "--bulk",
        action="store_true",
        help="Treat the bulk-region capability as available",
    )

    # Plan-stations command
    st_parser = subparsers.add_parser("plan-stations", help="Plan placement stations for a blueprint")
    st_parser.add_argument("file", type=str, help="Blueprint JSON file")
    st_parser.add_argument(
        "--origin",
        type=_parse_vec,
        default=None,
        help="World origin as x,y,z (default: 0,0,0)",
    )

    # Order command
    order_parser = subparsers.add_parser("order", help="Print the build-ordered steps of a blueprint")
    order_parser.add_argument("file", type=str, help="Blueprint JSON file")

    # Common arguments
    for p in [gen_parser, val_parser, st_parser, order_parser]:
        p.add_argument(
            "--provider",
            type=str,
            default="openai",
            choices=["openai", "anthropic", "local"],
            help="LLM provider (default: openai)",
        )
        p.add_argument(
            "--model",
            type=str,
            default=None,
            help="Model name (default: provider default)",
        )
        p.add_argument(
            "--api-key",
            type=str,
            default=None,
            help="API key (or set via environment variable)",
        )
        p.add_argument(
            "--settings",
            type=str,
            default=None,
            help="Settings JSON file",
        )
        p.add_argument(
            "--v2",
            action="store_true",
            help="Use the V2 scene-oriented generation pathway",
        )
        p.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose output",
        )

    return parser


def load_settings(args) -> BuildSettings:
    base = BuildSettings.from_json_file(args.settings) if args.settings else None
    return BuildSettings.from_env(base)


def create_context(args, settings: BuildSettings) -> BuildContext:
    """Build the context, with a generation client when one can be configured."""
    client = None
    config = LLMConfig(provider=args.provider, api_key=args.api_key)
    if args.model:
        config.model = args.model
    if args.provider == "anthropic" and not args.model:
        config.model = "claude-3-5-sonnet-latest"
    if config.api_key or args.provider == "local":
        client = ResilientGenerationClient(LLMClient(config=config), policy=settings.generation)
    else:
        logger.warning(f"No API key for provider '{args.provider}'; generation pathways are unavailable")

    context = BuildContext(settings=settings, client=client)
    if args.v2:
        context.set_builder_version("v2")
    return context


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


def run_generate(context: BuildContext, args) -> int:
    """Run the generate command."""
    request = BuildRequest(text=args.text, origin=args.origin, asset_path=args.asset)
    print(f"Routing request: {args.text}")
    result = RequestRouter(context).route(request)

    for warning in result.warnings:
        print(f"Warning: {warning}")
    if not result.success:
        print(f"\nFailed at stage: {result.stage}")
        for error in result.errors:
            print(f"  - {error}")
        return 1

    print(f"\nPathway: {result.pathway.value}")
    blueprint = result.blueprint
    if args.output:
        Path(args.output).write_text(json.dumps(blueprint.to_dict(), indent=2), encoding="utf-8")
        print(f"Blueprint written to {args.output}")
    else:
        _print_json(blueprint.to_dict())

    if not args.no_stations:
        plan = prepare_build(blueprint, args.origin or ORIGIN, context.settings.placement)
        _print_json(plan.coverage.stats())

    usage = context.usage()
    if usage:
        print(f"Tokens used: {usage.get('input_tokens', 0)} in / {usage.get('output_tokens', 0)} out")
    return 0


def run_validate(context: BuildContext, args) -> int:
    """Run the validate command."""
    try:
        raw = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: cannot read {args.file}: {e}")
        return 1
    if not isinstance(raw, dict):
        print(f"Error: {args.file} must contain a JSON object")
        return 1

    print(f"Validating {args.file}...")
    outcome = validate_blueprint(raw, policy=context.settings.validation, bulk_available=args.bulk)
    _print_json(outcome.to_dict())
    print(f"\nStatus: {'valid' if outcome.valid else 'invalid'} (score {outcome.score:.1f})")
    return 0 if outcome.valid else 1


def _load(args):
    try:
        return load_asset(args.file)
    except AssetLoadError as e:
        print(f"Error: {e}")
        return None


def run_plan_stations(context: BuildContext, args) -> int:
    """Run the plan-stations command."""
    blueprint = _load(args)
    if blueprint is None:
        return 1
    ordered, _ = optimize_build_order(blueprint)
    plan = prepare_build(ordered, args.origin or ORIGIN, context.settings.placement)
    _print_json(plan.to_dict())
    return 0


def run_order(context: BuildContext, args) -> int:
    """Run the order command."""
    blueprint = _load(args)
    if blueprint is None:
        return 1
    ordered, report = optimize_build_order(blueprint)
    _print_json([step.to_dict() for step in ordered.steps])
    print(f"\nMoved {report.metrics.get('moved', 0)} of {report.metrics.get('steps', 0)} steps")
    return 0


COMMANDS = {
    "generate": run_generate,
    "validate": run_validate,
    "plan-stations": run_plan_stations,
    "order": run_order,
}


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load settings: {e}")
        return 1

    context = create_context(args, settings)
    return COMMANDS[args.command](context, args)


if __name__ == "__main__":
    sys.exit(main())
