"""Types definitions that are common in capnproto schemas."""

from __future__ import annotations

from types import ModuleType

STREAM_RESULT_ID = 0x995F9A3377C0B16E
"""Node id of `StreamResult` in `/capnp/stream.capnp`, the result of `-> stream` methods."""

GO_PACKAGE_ANNOTATION_ID = 0xBEA97F1023792BE0
"""Node id of the `$Go.package` annotation in `/go.capnp`."""

GO_IMPORT_ANNOTATION_ID = 0xE130B601260E44B5
"""Node id of the `$Go.import` annotation in `/go.capnp`."""

STREAM_GO_PACKAGE = "stream"
STREAM_GO_IMPORT = "capnproto.org/go/capnp/v3/std/capnp/stream"
"""Go package that go-capnp generates for `/capnp/stream.capnp`."""


class CapnpElementType:
    """Types of capnproto elements."""

    STRUCT = "struct"
    INTERFACE = "interface"


ModuleRegistryType = dict[int, tuple[str, ModuleType]]
