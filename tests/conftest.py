"""Pytest configuration and fixtures for micro stub generator tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from google.protobuf import descriptor_pb2

from micro_stub_generator.config import GeneratorConfig
from micro_stub_generator.schema import MethodSchema, ServiceSchema, SourceFile, TypeRef

TESTS_DIR = Path(__file__).parent

GREETER_CAPNP = """
@0xdbb9ad1f14bf0b36;

struct HelloRequest {
    name @0 :Text;
}

struct HelloResponse {
    message @0 :Text;
}

interface Greeter {
    sayHello @0 (request :HelloRequest) -> (response :HelloResponse);
}
"""

NESTED_CAPNP = """
@0xdbb9ad1f14bf0b37;

struct Outer {
    id @0 :UInt32;

    interface Inner {
        ping @0 () -> ();
    }
}
"""

DUPLICATE_GREETER_CAPNP = """
@0xdbb9ad1f14bf0b38;

interface Greeter {
    sayHello @0 (name :Text) -> (message :Text);
}
"""


@pytest.fixture
def config() -> GeneratorConfig:
    """Default settings without gofmt, so outputs do not depend on the machine."""
    return GeneratorConfig(gofmt=False)


@pytest.fixture
def greeter_service() -> ServiceSchema:
    return ServiceSchema(
        name="Greeter",
        methods=(
            MethodSchema(
                name="SayHello",
                input_type=TypeRef("HelloRequest"),
                output_type=TypeRef("HelloResponse"),
            ),
        ),
    )


@pytest.fixture
def greeter_source(greeter_service) -> SourceFile:
    return SourceFile(name="greeter.proto", package="greeter", go_package="greeter", services=(greeter_service,))


@pytest.fixture
def chat_service() -> ServiceSchema:
    """A service mixing unary and streaming methods."""
    msg = TypeRef("Msg")
    return ServiceSchema(
        name="Chat",
        methods=(
            MethodSchema(name="Send", input_type=msg, output_type=msg),
            MethodSchema(name="Watch", input_type=msg, output_type=msg, server_streaming=True),
            MethodSchema(name="Upload", input_type=msg, output_type=msg, client_streaming=True),
            MethodSchema(name="Talk", input_type=msg, output_type=msg, client_streaming=True, server_streaming=True),
            MethodSchema(name="Ping", input_type=msg, output_type=msg),
        ),
    )


@pytest.fixture
def chat_source(chat_service) -> SourceFile:
    return SourceFile(name="chat.proto", package="", go_package="chat", services=(chat_service,))


def make_greeter_file(
    name: str = "greeter.proto",
    package: str = "greeter",
    service: str = "Greeter",
    go_package: str = "",
) -> descriptor_pb2.FileDescriptorProto:
    """Build the descriptor of a greeter .proto file without running protoc."""
    file = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax="proto3")
    if go_package:
        file.options.go_package = go_package

    file.message_type.add(name="HelloRequest")
    file.message_type.add(name="HelloResponse")

    prefix = f".{package}" if package else ""
    greeter = file.service.add(name=service)
    greeter.method.add(
        name="SayHello",
        input_type=f"{prefix}.HelloRequest",
        output_type=f"{prefix}.HelloResponse",
    )
    return file


@pytest.fixture
def greeter_file() -> descriptor_pb2.FileDescriptorProto:
    return make_greeter_file()


@pytest.fixture
def descriptor_set_path(tmp_path, greeter_file) -> Path:
    """A serialized FileDescriptorSet with the greeter file, as written by `protoc --descriptor_set_out`."""
    descriptor_set = descriptor_pb2.FileDescriptorSet(file=[greeter_file])
    path = tmp_path / "greeter.pb"
    path.write_bytes(descriptor_set.SerializeToString())
    return path


@pytest.fixture
def temp_output_dir(tmp_path):
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def temp_schema_dir(tmp_path):
    """Create a temporary directory with test schemas."""
    schema_dir = tmp_path / "schemas"
    schema_dir.mkdir()

    (schema_dir / "greeter.capnp").write_text(GREETER_CAPNP)

    subdir = schema_dir / "subdir"
    subdir.mkdir()
    (subdir / "nested.capnp").write_text(NESTED_CAPNP)

    return schema_dir
