"""protoc plugin entry point.

Usage:
    protoc --plugin=protoc-gen-micro --micro_out=import_prefix=example.com/gen:out greeter.proto

protoc passes a CodeGeneratorRequest on stdin and expects a CodeGeneratorResponse on stdout, so all
logging goes to stderr.
"""

from __future__ import annotations

import logging
import sys

from google.protobuf.compiler import plugin_pb2

from micro_stub_generator import protobuf_loader
from micro_stub_generator.config import GeneratorConfig
from micro_stub_generator.errors import GenerationError
from micro_stub_generator.helper import replace_schema_suffix
from micro_stub_generator.run import generate_bindings

logger = logging.getLogger(__name__)


def generate_response(request: plugin_pb2.CodeGeneratorRequest) -> plugin_pb2.CodeGeneratorResponse:
    """Generate the bindings of all files protoc asks for.

    On error the response carries the message and no files.

    Args:
        request (plugin_pb2.CodeGeneratorRequest): The request from protoc.

    Returns:
        plugin_pb2.CodeGeneratorResponse: The response for protoc.
    """
    response = plugin_pb2.CodeGeneratorResponse()

    try:
        config = GeneratorConfig.from_parameter(request.parameter)
        sources = protobuf_loader.load_files(request.proto_file, request.file_to_generate)
        outputs = generate_bindings(sources, config)
    except GenerationError as e:
        logger.error("Generation failed: %s", e)
        response.error = str(e)
        return response

    for source, content in outputs:
        generated = response.file.add()
        generated.name = replace_schema_suffix(source.name)
        generated.content = content
        logger.info("Generated '%s'.", generated.name)

    return response


def main() -> int:
    """Entry point of the protoc plugin.

    Returns:
        int: Error code. Generation errors are reported in the response, not through the exit code.
    """
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    request = plugin_pb2.CodeGeneratorRequest.FromString(sys.stdin.buffer.read())
    response = generate_response(request)
    sys.stdout.buffer.write(response.SerializeToString())
    sys.stdout.buffer.flush()

    return 0
