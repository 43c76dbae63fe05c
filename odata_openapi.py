#!/usr/bin/env python3
"""
OData to OpenAPI parameter generator - command line front end.

Reads a CSDL metadata document, builds the reusable query option parameters and,
for every entity set, singleton and function import, the parameter lists an
OpenAPI path item would carry. The result is printed as JSON.
"""

import argparse
import fnmatch
import json
import os
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from odata_openapi_lib import (
    GenerationSettings,
    KeySegment,
    MetadataParser,
    ODataContext,
    ParameterGenerator,
)

# Load environment variables from .env file
load_dotenv()


def matches_filter(name: str, patterns: Optional[List[str]]) -> bool:
    """Check a name against a list of names or wildcard patterns ('Product*')."""
    if not patterns:
        return True
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def _to_dicts(parameters) -> List[Dict[str, Any]]:
    return [param.to_dict() for param in parameters]


def build_parameter_trace(generator: ParameterGenerator,
                          allowed_entities: Optional[List[str]] = None) -> Dict[str, Any]:
    """Collect the generated parameters for every target of the model."""
    model = generator.model
    trace: Dict[str, Any] = {
        'components': {
            'parameters': {
                param_id: param.to_dict()
                for param_id, param in generator.create_parameters().items()
            }
        },
        'entitySets': {},
        'singletons': {},
        'functionImports': {},
    }

    for name, entity_set in model.entity_sets.items():
        if not matches_filter(name, allowed_entities):
            continue
        entity_type = model.resolve_entity_type(entity_set.entity_type)
        trace['entitySets'][name] = {
            'collection': _to_dicts(generator.create_query_parameters(entity_set)),
            'key': _to_dicts(generator.create_key_parameters(KeySegment(entity_type=entity_type, key_index=1))),
        }
        for nav in entity_type.navigation_properties:
            trace['entitySets'][name].setdefault('navigation', {})[nav.name] = \
                _to_dicts(generator.create_query_parameters(nav))

    for name, singleton in model.singletons.items():
        if not matches_filter(name, allowed_entities):
            continue
        trace['singletons'][name] = [
            param.to_dict() for param in (
                generator.create_select(singleton),
                generator.create_expand(singleton),
            ) if param is not None
        ]

    for name, function_import in model.function_imports.items():
        trace['functionImports'][name] = _to_dicts(generator.create_function_import_parameters(function_import))

    return trace


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="OData to OpenAPI parameter generator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter  # Show defaults in help
    )
    parser.add_argument("--metadata", dest="metadata_via_flag", help="Path to the CSDL metadata document (overrides positional argument and ODATA_METADATA_FILE env var)")
    parser.add_argument("metadata_pos", nargs='?', help="Path to the CSDL metadata document (alternative to --metadata flag or env var)")
    parser.add_argument("-v", "--verbose", "--debug", dest="verbose", action="store_true", help="Enable verbose output to stderr")
    parser.add_argument("--top-example", type=int, help="Example value for the reusable $top parameter (overrides ODATA_OPENAPI_TOP_EXAMPLE env var)")
    parser.add_argument("--prefix-key-type", action="store_true", help="Prefix key parameter names with the entity type name ('Order-Id1')")
    parser.add_argument("--entities", help="Comma-separated list of entity sets and singletons to describe. Supports wildcards: 'Product*,Order*'")
    parser.add_argument("--output", help="Write the JSON trace to this file instead of stdout")

    args = parser.parse_args()

    # --- Configuration Handling ---
    # Priority: --metadata flag > Positional argument > Environment Variable > .env file
    metadata_file = args.metadata_via_flag or args.metadata_pos or os.getenv("ODATA_METADATA_FILE")
    if not metadata_file:
        # Error, print regardless of verbosity
        print("ERROR: Metadata document not provided.", file=sys.stderr)
        print("Provide it via the --metadata flag, as a positional argument, or ODATA_METADATA_FILE environment variable.", file=sys.stderr)
        parser.print_help(file=sys.stderr)
        sys.exit(1)
    if not Path(metadata_file).exists():
        print(f"ERROR: Metadata file not found: {metadata_file}", file=sys.stderr)
        sys.exit(1)

    settings = GenerationSettings.from_env()
    if args.top_example is not None:
        settings.top_example = args.top_example
    if args.prefix_key_type:
        settings.prefix_entity_type_name_before_key = True
    if args.verbose:
        settings.verbose = True

    allowed_entities = None
    if args.entities:
        allowed_entities = [e.strip() for e in args.entities.split(',') if e.strip()]
        if settings.verbose:
            print(f"[VERBOSE] Filtering output to only these entities: {allowed_entities}", file=sys.stderr)

    try:
        metadata = MetadataParser(verbose=settings.verbose).parse(Path(metadata_file).read_bytes())
        generator = ParameterGenerator(ODataContext(metadata, settings))
        output = json.dumps(build_parameter_trace(generator, allowed_entities), indent=2)
    except Exception as e:
        # Fatal error, print regardless of verbosity
        print(f"\n--- FATAL ERROR ---", file=sys.stderr)
        print(f"An unexpected error occurred while generating parameters: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        print("-------------------", file=sys.stderr)
        sys.exit(1)

    if args.output:
        Path(args.output).write_text(output + "\n")
        if settings.verbose:
            print(f"[VERBOSE] Wrote parameter trace to {args.output}", file=sys.stderr)
    else:
        print(output)


if __name__ == "__main__":
    main()
