"""Service schema model shared by the loaders and the writer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TypeRef:
    """A message type, resolved to its Go identifier.

    Types that live in another Go package carry that package's name and import path.
    """

    name: str
    package: str = ""
    import_path: str = ""

    @property
    def is_foreign(self) -> bool:
        return bool(self.import_path)


@dataclass(frozen=True)
class MethodSchema:
    """One RPC method of a service."""

    name: str
    input_type: TypeRef
    output_type: TypeRef
    client_streaming: bool = False
    server_streaming: bool = False

    @property
    def is_streaming(self) -> bool:
        return self.client_streaming or self.server_streaming


@dataclass(frozen=True)
class ServiceSchema:
    """A named service with its methods in schema order."""

    name: str
    methods: tuple[MethodSchema, ...] = ()


@dataclass(frozen=True)
class SourceFile:
    """A loaded schema file.

    Attributes:
        name: Path of the schema file, as given to the loader.
        package: Schema namespace. Used as the default routing namespace of generated clients.
        go_package: Package clause of the generated Go file.
        services: Services declared in the file, in declaration order.
    """

    name: str
    package: str
    go_package: str
    services: tuple[ServiceSchema, ...] = field(default_factory=tuple)
