"""Top-level module for binding generation."""

from __future__ import annotations

import argparse
import glob
import logging
import os.path
import shutil
import subprocess
from collections.abc import Iterable

from micro_stub_generator import capnp_loader, protobuf_loader
from micro_stub_generator.config import GeneratorConfig
from micro_stub_generator.errors import GenerationError
from micro_stub_generator.helper import replace_schema_suffix
from micro_stub_generator.schema import SourceFile
from micro_stub_generator.writer import Writer

logger = logging.getLogger(__name__)

CAPNP_SUFFIX = ".capnp"
DEFAULT_PATHS = ["**/*.capnp"]


def format_outputs(raw_input: str) -> str:
    """Formats raw input using gofmt.

    If gofmt is not installed or fails, the raw input is returned unchanged.

    Args:
        raw_input (str): The unformatted Go source.

    Returns:
        str: The formatted Go source.
    """
    if shutil.which("gofmt") is None:
        logger.debug("gofmt not found, writing unformatted output.")
        return raw_input

    try:
        result = subprocess.run(["gofmt"], input=raw_input, capture_output=True, text=True, check=True)
        return result.stdout
    except subprocess.CalledProcessError as e:
        logger.error(f"gofmt formatting failed: {e}")
        logger.error(f"Stderr: {e.stderr}")
        return raw_input


def generate_bindings(
    source_files: Iterable[SourceFile],
    config: GeneratorConfig,
) -> list[tuple[SourceFile, str]]:
    """Entry-point for generating bindings for a set of schema files.

    Nothing is written here. Either all files generate, or the first error is raised.

    Args:
        source_files (Iterable[SourceFile]): The loaded schema files.
        config (GeneratorConfig): Generator settings.

    Raises:
        GenerationError: If a schema cannot be turned into bindings.

    Returns:
        list[tuple[SourceFile, str]]: The generated source per schema file with services.
    """
    routing_keys: dict[str, str] = {}
    outputs: list[tuple[SourceFile, str]] = []

    for source in source_files:
        writer = Writer(source, config, routing_keys)
        if not writer.has_services:
            logger.info("Skipping '%s': no services.", source.name)
            continue

        writer.generate_all()
        content = writer.dumps()
        if config.gofmt:
            content = format_outputs(content)
        outputs.append((source, content))

    return outputs


def find_schema_paths(args: argparse.Namespace, root_directory: str, paths: list[str]) -> set[str]:
    """Collect the *.capnp files matched by the path arguments, minus the excluded ones.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.
        paths (list[str]): Paths or glob expressions to search.

    Returns:
        set[str]: The schema files.
    """
    excluded_paths: set[str] = set()
    for exclude in args.excludes:
        exclude_path = os.path.join(root_directory, exclude)
        if os.path.isfile(exclude_path):
            excluded_paths.add(exclude_path)
        else:
            excluded_paths = excluded_paths.union(glob.glob(exclude_path, recursive=args.recursive))

    search_paths: set[str] = set()
    for path in paths:
        search_path = os.path.join(root_directory, path)

        if args.recursive and os.path.isdir(search_path):
            for root, _, files in os.walk(search_path):
                for file in files:
                    if file.endswith(CAPNP_SUFFIX):
                        search_paths.add(os.path.join(root, file))
        elif os.path.isdir(search_path):
            for file in os.listdir(search_path):
                file_path = os.path.join(search_path, file)
                if os.path.isfile(file_path) and file.endswith(CAPNP_SUFFIX):
                    search_paths.add(file_path)
        else:
            search_paths = search_paths.union(glob.glob(search_path, recursive=args.recursive))

    return {os.path.normpath(p) for p in search_paths - excluded_paths}


def _capnp_output_path(path: str, output_dir: str, common_base: str | None) -> str:
    """Place the output next to the schema, or below `output_dir` preserving the directory structure."""
    file_name = replace_schema_suffix(os.path.basename(path))
    if not output_dir:
        return os.path.join(os.path.dirname(path), file_name)

    if common_base:
        rel_dir = os.path.dirname(os.path.relpath(os.path.abspath(path), common_base))
        return os.path.join(output_dir, rel_dir, file_name)
    return os.path.join(output_dir, file_name)


def _common_base(paths: set[str]) -> str | None:
    if not paths:
        return None
    directories = {os.path.dirname(os.path.abspath(p)) for p in paths}
    return os.path.commonpath(sorted(directories))


def run(args: argparse.Namespace, root_directory: str):
    """Run the binding generator on *.capnp schemas and protobuf descriptor sets.

    All inputs are loaded and generated before the first file is written.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.

    Raises:
        GenerationError: If a schema cannot be turned into bindings. No file is written or
            cleaned up then.
    """
    clean: list[str] = args.clean
    output_dir: str = getattr(args, "output_dir", "")
    import_paths: list[str] = getattr(args, "import_paths", [])
    descriptor_sets: list[str] = getattr(args, "descriptor_sets", [])
    proto_files: list[str] = getattr(args, "proto_files", [])
    config = GeneratorConfig.from_args(args)

    cleanup_paths: set[str] = set()
    for c in clean:
        cleanup_directory = os.path.join(root_directory, c)
        cleanup_paths = cleanup_paths.union(glob.glob(cleanup_directory, recursive=args.recursive))

    paths: list[str] = args.paths or ([] if descriptor_sets else DEFAULT_PATHS)
    valid_paths = find_schema_paths(args, root_directory, paths)

    # Convert import paths to absolute paths relative to root_directory
    absolute_import_paths = [os.path.join(root_directory, p) for p in import_paths]

    sources: list[SourceFile] = []
    output_paths: dict[SourceFile, str] = {}

    if valid_paths:
        module_registry = capnp_loader.load_modules(valid_paths, absolute_import_paths)
        loader = capnp_loader.CapnpLoader(module_registry)
        common_base = _common_base(valid_paths) if output_dir else None
        for path, module in sorted(module_registry.values(), key=lambda item: item[0]):
            source = loader.load(path, module)
            output_paths[source] = _capnp_output_path(path, output_dir, common_base)
            sources.append(source)

    for descriptor_set in descriptor_sets:
        descriptor_path = os.path.join(root_directory, descriptor_set)
        for source in protobuf_loader.load_descriptor_set(descriptor_path, proto_files or None):
            target_dir = output_dir or root_directory
            output_paths[source] = os.path.join(target_dir, replace_schema_suffix(source.name))
            sources.append(source)

    missing = set(proto_files).difference(source.name for source in sources)
    if missing:
        raise GenerationError(f"Files not found in any descriptor set: {', '.join(sorted(missing))}.")

    outputs = generate_bindings(sources, config)

    # Old outputs are only removed once every input generated.
    for cleanup_path in sorted(cleanup_paths):
        os.remove(cleanup_path)

    if not sources:
        logger.warning("No schema files found.")
        return

    for source, content in outputs:
        output_path = output_paths[source]
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        with open(output_path, "w", encoding="utf8") as output_file:
            output_file.write(content)
        logger.info("Wrote bindings to '%s'.", output_path)
