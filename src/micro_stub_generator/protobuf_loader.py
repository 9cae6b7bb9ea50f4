"""Load service schemas from protobuf file descriptors."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable
from dataclasses import dataclass

from google.protobuf import descriptor_pb2

from micro_stub_generator.errors import GenerationError
from micro_stub_generator.helper import camel_case, go_package_name
from micro_stub_generator.schema import MethodSchema, ServiceSchema, SourceFile, TypeRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoPackage:
    """Go package of a .proto file."""

    name: str
    import_path: str


def go_package_of(file: descriptor_pb2.FileDescriptorProto) -> GoPackage:
    """Determine the Go package of a .proto file.

    The `go_package` option wins, either as `path;name` or as a bare path whose last element is
    the name. Without the option the proto package (dots replaced) or the file stem is the name,
    and the directory of the file is the import path.

    Args:
        file (descriptor_pb2.FileDescriptorProto): The file.

    Returns:
        GoPackage: The package name and import path.
    """
    option = file.options.go_package if file.HasField("options") else ""
    if option:
        path, sep, name = option.partition(";")
        if not sep:
            name = posixpath.basename(path)
        return GoPackage(name=go_package_name(name), import_path=path)

    if file.package:
        name = file.package.replace(".", "_")
    else:
        name = posixpath.splitext(posixpath.basename(file.name))[0]
    return GoPackage(name=go_package_name(name), import_path=posixpath.dirname(file.name))


class TypeIndex:
    """Maps fully qualified message names (e.g. `.greeter.HelloRequest`) to Go types."""

    def __init__(self, files: Iterable[descriptor_pb2.FileDescriptorProto]):
        self._types: dict[str, tuple[str, GoPackage]] = {}
        for file in files:
            package = go_package_of(file)
            prefix = f".{file.package}" if file.package else ""
            for message in file.message_type:
                self._add_message(message, prefix, [], package)

    def _add_message(
        self,
        message: descriptor_pb2.DescriptorProto,
        prefix: str,
        parents: list[str],
        package: GoPackage,
    ) -> None:
        path = [*parents, message.name]
        full_name = f"{prefix}.{'.'.join(path)}"
        self._types[full_name] = ("_".join(camel_case(part) for part in path), package)
        for nested in message.nested_type:
            self._add_message(nested, prefix, path, package)

    def resolve(self, type_name: str, from_package: GoPackage) -> TypeRef:
        """Resolve a type reference as seen from a file in `from_package`.

        Raises:
            GenerationError: If the type is unknown.
        """
        try:
            go_name, package = self._types[type_name]
        except KeyError as e:
            raise GenerationError(f"Unknown message type '{type_name}'.") from e

        if package.import_path == from_package.import_path and package.name == from_package.name:
            return TypeRef(name=go_name)
        return TypeRef(name=go_name, package=package.name, import_path=package.import_path)


def load_file(file: descriptor_pb2.FileDescriptorProto, index: TypeIndex) -> SourceFile:
    """Convert one file descriptor into a SourceFile.

    Args:
        file (descriptor_pb2.FileDescriptorProto): The file.
        index (TypeIndex): Index over the file and all its dependencies.

    Returns:
        SourceFile: The loaded schema file.
    """
    package = go_package_of(file)
    services = []
    for service in file.service:
        methods = tuple(
            MethodSchema(
                name=method.name,
                input_type=index.resolve(method.input_type, package),
                output_type=index.resolve(method.output_type, package),
                client_streaming=method.client_streaming,
                server_streaming=method.server_streaming,
            )
            for method in service.method
        )
        services.append(ServiceSchema(name=service.name, methods=methods))
        logger.debug("Loaded service '%s' with %d method(s) from %s.", service.name, len(methods), file.name)

    return SourceFile(
        name=file.name,
        package=file.package,
        go_package=package.name,
        services=tuple(services),
    )


def load_files(
    files: Iterable[descriptor_pb2.FileDescriptorProto],
    names: Iterable[str] | None = None,
) -> list[SourceFile]:
    """Convert file descriptors into SourceFiles.

    Args:
        files: All known files, dependencies included.
        names: Names of the files to convert. All files if omitted.

    Returns:
        The loaded schema files, in the order of `names` (or `files`).
    """
    files = list(files)
    index = TypeIndex(files)
    by_name = {file.name: file for file in files}

    selected = list(names) if names is not None else list(by_name)
    result = []
    for name in selected:
        try:
            file = by_name[name]
        except KeyError as e:
            raise GenerationError(f"File '{name}' is not part of the descriptor set.") from e
        result.append(load_file(file, index))
    return result


def load_descriptor_set(path: str, names: Iterable[str] | None = None) -> list[SourceFile]:
    """Load the files of a serialized FileDescriptorSet, e.g. from `protoc --descriptor_set_out`.

    Sets written with `--include_imports` also carry every dependency, so `names` selects the
    files to generate. Names the set does not contain are ignored here. Without `names`, every
    file that declares services is returned.

    Args:
        path (str): The descriptor set file.
        names (Iterable[str] | None): Names of the files to load, as protoc reports them.

    Returns:
        list[SourceFile]: The loaded schema files.
    """
    with open(path, "rb") as f:
        descriptor_set = descriptor_pb2.FileDescriptorSet.FromString(f.read())

    if names is not None:
        known = {file.name for file in descriptor_set.file}
        return load_files(descriptor_set.file, [name for name in names if name in known])

    loaded = load_files(descriptor_set.file)
    return [source for source in loaded if source.services]
