"""Method signatures of the four generated roles.

The typed roles (client and server) expose the schema's message types. The adapter and interface
roles share the byte-level shape `(ctx, []byte) -> ([]byte, error)` that the dispatch table sees.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from micro_stub_generator.helper import RESERVED_METHOD_NAMES, derive
from micro_stub_generator.imports import ImportRegistrar, PackageRole
from micro_stub_generator.schema import MethodSchema, TypeRef


class SignatureRole(Enum):
    CLIENT = "client"
    SERVER = "server"
    ADAPTER = "adapter"
    INTERFACE = "interface"


def go_type_name(registrar: ImportRegistrar, type_ref: TypeRef) -> str:
    """Return the Go spelling of a message type, importing its package when it is foreign."""
    if type_ref.is_foreign:
        alias = registrar.add_import(type_ref.import_path, type_ref.package)
        return f"{alias}.{type_ref.name}"
    return type_ref.name


def build_signature(
    role: SignatureRole,
    service_name: str,
    method: MethodSchema,
    registrar: ImportRegistrar,
    reserved: Iterable[str] = RESERVED_METHOD_NAMES,
) -> str:
    """Build the signature of a method for one generated role.

    Args:
        role (SignatureRole): The role the signature is built for.
        service_name (str): The raw service name.
        method (MethodSchema): The method.
        registrar (ImportRegistrar): Source of the package aliases.
        reserved (Iterable[str]): Method names that need disambiguation.

    Returns:
        str: The signature, without `func` keyword and receiver.
    """
    names = derive(service_name, method.name, reserved)
    ctx = f"ctx {registrar.alias(PackageRole.CONTEXT)}.Context"

    if role is SignatureRole.CLIENT:
        req_arg = f", in *{go_type_name(registrar, method.input_type)}"
        if method.client_streaming:
            req_arg = ""
        resp = f"out *{go_type_name(registrar, method.output_type)}"
        if method.is_streaming:
            resp = f"out {names.stream_client}"
        opts = f"opts ...{registrar.alias(PackageRole.CLIENT)}.CallOption"
        return f"{names.method}({ctx}{req_arg}, {opts}) ({resp}, err error)"

    if role is SignatureRole.SERVER:
        in_type = go_type_name(registrar, method.input_type)
        out_type = go_type_name(registrar, method.output_type)
        return f"{names.method}({ctx}, in *{in_type}) (*{out_type}, error)"

    # ADAPTER and INTERFACE share the byte-level shape.
    return f"{names.adapter}({ctx}, in []byte) (out []byte, err error)"
