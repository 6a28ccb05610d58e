"""gtsgen CLI: schema generation and GTS id tools."""

import argparse
import json
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

from gtsgen.contracts import GenerateResult

_LOG_HANDLER_NAME = "gtsgen-cli"


def _configure_logging(verbosity: int) -> None:
    """No flag -> WARNING, -v -> INFO, -vv and up -> DEBUG, all on stderr."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    package_logger = logging.getLogger("gtsgen")
    # Replace the handler of a previous main() call in the same process
    for handler in list(package_logger.handlers):
        if handler.get_name() == _LOG_HANDLER_NAME:
            package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _print_generate_result(result: GenerateResult, as_json: bool, scanned: bool) -> None:
    if as_json:
        from gtsgen._internal.canonical_json import canonical_dumps
        print(canonical_dumps(result.model_dump(mode="json")))
        return

    if result.fatal_error:
        print(f"FAILED: {result.fatal_code} {result.fatal_error}")
    for r in result.results:
        if r.status == "emitted":
            print(f"  Generated schema: {r.schema_id} @ {r.path}")
        else:
            print(f"FAILED {r.name}: {r.code} {r.message}")

    print("\nSummary:")
    if scanned:
        print(f"  Files scanned: {result.files_scanned}")
        print(f"  Files skipped: {result.files_skipped}")
    print(f"  Schemas generated: {result.schemas_generated}")
    print(f"  Failures: {len(result.failures)}")

    if scanned and not result.results and not result.fatal_error:
        print("\n- No schemas found. Make sure your classes are decorated with `@gts_schema(...)`")


def main():
    """Main CLI entry point for gtsgen commands."""
    try:
        gtsgen_version = get_version("gtsgen")
    except PackageNotFoundError:
        gtsgen_version = "dev"

    parser = argparse.ArgumentParser(
        prog="gtsgen",
        description="gtsgen: JSON Schema generation for GTS-identified types"
    )
    parser.add_argument("--version", action="version", version=f"gtsgen {gtsgen_version}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a JSON generation config"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate command
    generate_parser = subparsers.add_parser(
        "generate",
        help="Scan Python sources for @gts_schema classes and write their schemas"
    )
    generate_parser.add_argument(
        "--source",
        type=Path,
        required=True,
        help="Source directory or file to scan"
    )
    generate_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Override root for output locations (defaults to each source file's directory)"
    )
    generate_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Glob pattern of paths to skip (repeatable)"
    )
    generate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as canonical JSON"
    )

    # compile command
    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile declarations from a JSON manifest"
    )
    compile_parser.add_argument(
        "--declarations",
        type=Path,
        required=True,
        help="Path to a JSON manifest of declarations"
    )
    compile_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Override root for output locations (defaults to the manifest directory)"
    )
    compile_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as canonical JSON"
    )

    # id commands
    validate_parser = subparsers.add_parser("validate-id", help="Validate a GTS type id")
    validate_parser.add_argument("--gts-id", required=True, help="GTS type id")

    parse_parser = subparsers.add_parser("parse-id", help="Parse a GTS type id into segments")
    parse_parser.add_argument("--gts-id", required=True, help="GTS type id")

    instance_parser = subparsers.add_parser(
        "instance-id",
        help="Compose an instance id, or parse one when only --gts-id is given"
    )
    instance_parser.add_argument("--schema-id", default=None, help="GTS type id")
    instance_parser.add_argument("--segment", default=None, help="Instance segment")
    instance_parser.add_argument("--gts-id", default=None, help="Instance id to parse")

    uuid_parser = subparsers.add_parser("uuid", help="Deterministic UUIDv5 of a GTS type id")
    uuid_parser.add_argument("--gts-id", required=True, help="GTS type id")

    args = parser.parse_args()
    _configure_logging(args.verbose)

    if args.command in ("generate", "compile"):
        try:
            from .api import compile_declarations, generate
            from .config import load_config
            from ._internal.extract import load_declarations

            config = load_config(args.config)
            output = args.output.resolve() if args.output else None

            if args.command == "generate":
                source = args.source.resolve()
                if not args.json:
                    print(f"Scanning Python source files in: {source}")
                result = generate(source, output, exclude=args.exclude, config=config)
            else:
                declarations, manifest = load_declarations(args.declarations)
                result = compile_declarations(
                    declarations, manifest.resolve().parent, output, config
                )

            _print_generate_result(result, args.json, scanned=args.command == "generate")
            sys.exit(0 if result.ok else 1)
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except Exception as e:
            print(f"Unexpected error: {e}", file=sys.stderr)
            import traceback
            traceback.print_exc()
            sys.exit(1)
    elif args.command == "validate-id":
        from .api import validate_id

        result = validate_id(args.gts_id)
        _print_json(result.model_dump(mode="json"))
        sys.exit(0 if result.valid else 1)
    elif args.command == "parse-id":
        from .api import parse_id

        result = parse_id(args.gts_id)
        _print_json(result.model_dump(mode="json"))
        sys.exit(0 if result.ok else 1)
    elif args.command == "instance-id":
        from .api import compose_instance_id, parse_instance_id

        if args.gts_id is not None:
            result = parse_instance_id(args.gts_id)
        elif args.schema_id is not None and args.segment is not None:
            result = compose_instance_id(args.schema_id, args.segment)
        else:
            print("Error: Provide --gts-id, or both --schema-id and --segment.", file=sys.stderr)
            sys.exit(1)
        _print_json(result.model_dump(mode="json"))
        sys.exit(0 if result.ok else 1)
    elif args.command == "uuid":
        from .api import id_to_uuid
        from .kernel.gts_id import GtsIdError

        try:
            _print_json({"id": args.gts_id, "uuid": id_to_uuid(args.gts_id)})
        except GtsIdError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
