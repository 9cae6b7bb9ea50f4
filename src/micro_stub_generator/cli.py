"""Command-line interface for generating go-micro bindings from *.capnp schemas and protobuf descriptor sets.

Notes:
    - Protobuf inputs are serialized FileDescriptorSets, e.g. from `protoc --include_imports --descriptor_set_out`.
    - To run as a protoc plugin instead, use the `protoc-gen-micro` entry point.
"""

from __future__ import annotations

import argparse
import logging
import os.path
from collections.abc import Sequence

from micro_stub_generator.errors import GenerationError
from micro_stub_generator.run import run

logger = logging.getLogger(__name__)


def _add_recursive_argument(parser: argparse.ArgumentParser):
    """Add a recursive argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search for *.capnp files with a given glob expression.",
    )


def _add_package_arguments(parser: argparse.ArgumentParser):
    """Add the import path overrides of the generated code to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the arguments to.
    """
    parser.add_argument(
        "--import-prefix",
        dest="import_prefix",
        type=str,
        default="",
        help="prefix joined in front of every non-stdlib import path of the generated code.",
    )

    for role in ("client", "server", "common"):
        parser.add_argument(
            f"--{role}-pkg",
            dest=f"{role}_pkg",
            type=str,
            default="",
            help=f"import path of the RPC framework's {role} package.",
        )


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate go-micro client and server bindings for service schemas.")

    parser.add_argument(
        "-c",
        "--clean",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions that match files to clean up before generation.",
    )

    parser.add_argument(
        "-p",
        "--paths",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions that match *.capnp files; defaults to **/*.capnp without descriptor sets.",
    )

    parser.add_argument(
        "-d",
        "--descriptor-sets",
        dest="descriptor_sets",
        type=str,
        nargs="+",
        default=[],
        help="serialized protobuf FileDescriptorSet files to generate bindings for.",
    )

    parser.add_argument(
        "-f",
        "--files",
        dest="proto_files",
        type=str,
        nargs="+",
        default=[],
        help="names of the .proto files in the descriptor sets to generate; defaults to every file with services.",
    )

    parser.add_argument(
        "-e",
        "--excludes",
        type=str,
        nargs="+",
        default=[],
        help="path or glob expressions to exclude from path matches.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="",
        help="directory to write all generated outputs; defaults to alongside each schema if omitted.",
    )

    parser.add_argument(
        "-I",
        "--import-path",
        dest="import_paths",
        type=str,
        nargs="+",
        default=[],
        help="additional import paths for resolving absolute capnp imports (e.g., /capnp/c++.capnp).",
    )

    parser.add_argument(
        "--reserved-name",
        dest="reserved_names",
        type=str,
        nargs="+",
        default=[],
        help="method names that get a trailing underscore in generated identifiers.",
    )

    parser.add_argument(
        "--no-gofmt",
        dest="skip_gofmt",
        default=False,
        action="store_true",
        help="skip formatting of generated code with gofmt.",
    )

    _add_package_arguments(parser)
    _add_recursive_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the binding generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    logging.basicConfig(level=logging.INFO)

    root_directory = os.getcwd()
    logging.info("Working from root directory: %s", root_directory)

    parser = setup_parser()
    args = parser.parse_args(argv)

    try:
        run(args, root_directory)
    except GenerationError as e:
        logger.error("Generation failed: %s", e)
        return 1

    return 0
