"""Load service schemas from *.capnp files.

Every interface becomes a service. Methods whose result is the built-in `StreamResult` (declared
as `-> stream`) are client-streaming; Cap'n Proto has no server-streaming methods.
"""

from __future__ import annotations

import logging
import os.path
from typing import Any

import capnp
from capnp.lib.capnp import _ParsedSchema, _StructSchema

from micro_stub_generator import capnp_types
from micro_stub_generator.errors import GenerationError
from micro_stub_generator.helper import go_package_name
from micro_stub_generator.schema import MethodSchema, ServiceSchema, SourceFile, TypeRef

if hasattr(capnp, "remove_import_hook"):
    capnp.remove_import_hook()

logger = logging.getLogger(__name__)


def _file_annotation(module: Any, annotation_id: int) -> str:
    for annotation in module.schema.node.annotations:
        if annotation.id == annotation_id:
            return annotation.value.text
    return ""


def _split_display_name(display_name: str) -> tuple[str, str]:
    """Split `dir/file.capnp:Outer.Inner` into the file part and the scoped name."""
    file_part, _, scoped = display_name.partition(":")
    return file_part, scoped


def go_type_identifier(scoped_name: str) -> str:
    """Go identifier of a struct, following the go-capnp convention.

    E.g. `Outer.Inner` becomes `Outer_Inner`, `Calculator.evaluate$Params` becomes
    `Calculator_evaluate_Params`.
    """
    return scoped_name.replace(".", "_").replace("$", "_")


class CapnpLoader:
    """Turns loaded capnp modules into SourceFiles.

    All modules of one run are known to the loader, so that struct types from other files can be
    qualified with the Go package of the file that declares them.
    """

    def __init__(self, module_registry: capnp_types.ModuleRegistryType):
        """Initialize the loader.

        Args:
            module_registry (ModuleRegistryType): All loaded modules, keyed by file node id.
        """
        self._module_registry = module_registry
        self._by_display_name: dict[str, Any] = {
            module.schema.node.displayName: module for _, module in module_registry.values()
        }

    def go_package(self, module: Any) -> str:
        """The `$Go.package` annotation of the module, otherwise its sanitized file stem."""
        annotated = _file_annotation(module, capnp_types.GO_PACKAGE_ANNOTATION_ID)
        if annotated:
            return annotated
        stem = os.path.splitext(os.path.basename(module.schema.node.displayName))[0]
        return go_package_name(stem)

    def load(self, path: str, module: Any) -> SourceFile:
        """Load all interfaces of a module.

        Args:
            path (str): The path the module was loaded from.
            module (Any): The loaded capnp module.

        Returns:
            SourceFile: The schema file.
        """
        services: list[ServiceSchema] = []
        self._collect_services(module, module.schema, services)

        return SourceFile(
            name=os.path.basename(path),
            package="",
            go_package=self.go_package(module),
            services=tuple(services),
        )

    def _collect_services(self, module: Any, parent: _ParsedSchema, services: list[ServiceSchema]) -> None:
        for nested_node in parent.node.nestedNodes:
            nested = parent.get_nested(nested_node.name)
            node_type = nested.node.which()

            if node_type == capnp_types.CapnpElementType.INTERFACE:
                services.append(self._load_interface(module, nested))

            if node_type in (capnp_types.CapnpElementType.INTERFACE, capnp_types.CapnpElementType.STRUCT):
                self._collect_services(module, nested, services)

    def _load_interface(self, module: Any, schema: _ParsedSchema) -> ServiceSchema:
        _, scoped_name = _split_display_name(schema.node.displayName)
        service_name = go_type_identifier(scoped_name)

        methods = []
        for method_name, method in schema.as_interface().methods.items():
            result_type: _StructSchema = method.result_type
            methods.append(
                MethodSchema(
                    name=method_name,
                    input_type=self._type_ref(module, method.param_type),
                    output_type=self._type_ref(module, result_type),
                    client_streaming=result_type.node.id == capnp_types.STREAM_RESULT_ID,
                )
            )

        logger.debug("Loaded interface '%s' with %d method(s).", service_name, len(methods))
        return ServiceSchema(name=service_name, methods=tuple(methods))

    def _type_ref(self, module: Any, schema: _StructSchema) -> TypeRef:
        """Resolve a struct to its Go type, qualified if it is declared in another file.

        Raises:
            GenerationError: If the struct lives in a file that was not loaded, or in a file
                without `$Go.import` annotation.
        """
        file_part, scoped_name = _split_display_name(schema.node.displayName)
        name = go_type_identifier(scoped_name)

        if schema.node.id == capnp_types.STREAM_RESULT_ID:
            return TypeRef(name=name, package=capnp_types.STREAM_GO_PACKAGE, import_path=capnp_types.STREAM_GO_IMPORT)

        own_file, _ = _split_display_name(module.schema.node.displayName)
        if file_part == own_file:
            return TypeRef(name=name)

        other = self._by_display_name.get(file_part)
        if other is None:
            raise GenerationError(f"Struct '{scoped_name}' is declared in '{file_part}', which was not loaded.")

        import_path = _file_annotation(other, capnp_types.GO_IMPORT_ANNOTATION_ID)
        if not import_path:
            raise GenerationError(f"'{file_part}' has no $Go.import annotation, needed to reference '{scoped_name}'.")

        return TypeRef(name=name, package=self.go_package(other), import_path=import_path)


def load_modules(paths: set[str], import_paths: list[str]) -> capnp_types.ModuleRegistryType:
    """Load *.capnp files with a shared schema parser.

    Args:
        paths (set[str]): The schema files.
        import_paths (list[str]): Additional import paths for resolving absolute imports.

    Returns:
        ModuleRegistryType: The loaded modules, keyed by file node id.
    """
    parser = capnp.SchemaParser()
    module_registry: capnp_types.ModuleRegistryType = {}

    for path in sorted(paths):
        module = parser.load(path, imports=import_paths)
        module_registry[module.schema.node.id] = (path, module)

    return module_registry
