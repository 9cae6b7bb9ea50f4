"""Naming helpers used by the signature builder and the writer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

RESERVED_METHOD_NAMES: frozenset[str] = frozenset()
"""Method names that clash with generated identifiers. Empty unless configured."""

SCHEMA_SUFFIXES = (".proto", ".capnp")
GO_SUFFIX = ".micro.go"


def replace_schema_suffix(original: str) -> str:
    """Replace a .proto or .capnp suffix with the suffix of generated binding files.

    For example, `foo/greeter.proto` becomes `foo/greeter.micro.go`.

    Args:
        original (str): The schema path.

    Returns:
        str: The path of the generated file.
    """
    for suffix in SCHEMA_SUFFIXES:
        if original.endswith(suffix):
            return original[: -len(suffix)] + GO_SUFFIX
    return original + GO_SUFFIX


def go_package_name(name: str) -> str:
    """Turn an arbitrary string into a valid Go package name.

    For example, `my-service.v1` becomes `my_service_v1`.
    """
    result = "".join(c if c.isascii() and (c.isalnum() or c == "_") else "_" for c in name)
    if not result or result[0].isdigit():
        result = f"_{result}"
    return result


def camel_case(name: str) -> str:
    """Convert a schema identifier into an exported Go identifier.

    A leading underscore becomes `X`. An underscore followed by a lower-case letter is dropped
    and the letter upper-cased. Digits are kept, and so is a lower-case run that follows a boundary.
    E.g. `say_hello` becomes `SayHello`, `_my_field_name_2` becomes `XMyFieldName_2`.

    Args:
        name (str): The schema identifier.

    Returns:
        str: The camel-cased identifier.
    """
    if not name:
        return ""

    out: list[str] = []
    i = 0
    if name[0] == "_":
        out.append("X")
        i += 1

    while i < len(name):
        c = name[i]
        if c == "_" and i + 1 < len(name) and name[i + 1].islower() and name[i + 1].isascii():
            i += 1
            continue

        if c.isascii() and c.isdigit():
            out.append(c)
            i += 1
            continue

        if c.isascii() and c.islower():
            c = c.upper()
        out.append(c)

        while i + 1 < len(name) and name[i + 1].isascii() and name[i + 1].islower():
            i += 1
            out.append(name[i])
        i += 1

    return "".join(out)


def unexport(name: str) -> str:
    """Lower-case the first character of a name."""
    return name[:1].lower() + name[1:]


def sanitize_name(name: str, reserved: Iterable[str] = RESERVED_METHOD_NAMES) -> str:
    """Sanitize a method name to avoid reserved identifiers.

    If the name is reserved, append an underscore.

    Args:
        name (str): The exported method name.
        reserved (Iterable[str]): The reserved names.

    Returns:
        str: The sanitized name.
    """
    if name in reserved:
        return f"{name}_"
    return name


@dataclass(frozen=True)
class DerivedNames:
    """All identifiers that the generated code uses for one method of one service."""

    service: str
    service_receiver: str
    method: str
    handler: str
    handler_receiver: str
    routing_key: str
    adapter: str
    stream_client: str


def derive(service_name: str, method_name: str, reserved: Iterable[str] = RESERVED_METHOD_NAMES) -> DerivedNames:
    """Derive the generated identifiers of a method.

    The routing key is built from the exported method name before sanitizing, so that renaming a
    clashing Go identifier never changes what goes over the wire.

    Args:
        service_name (str): The raw service name from the schema.
        method_name (str): The raw method name from the schema.
        reserved (Iterable[str]): Method names that need disambiguation.

    Returns:
        DerivedNames: The derived names.
    """
    service = camel_case(service_name)
    exported = camel_case(method_name)
    handler = f"{service}Handler"

    return DerivedNames(
        service=service,
        service_receiver=unexport(service),
        method=sanitize_name(exported, reserved),
        handler=handler,
        handler_receiver=unexport(handler),
        routing_key=f"{service}.{exported}",
        adapter=f"_{service}_{exported}_Handler",
        stream_client=f"{service}_{exported}Client",
    )


def unique_locals(names: Iterable[str], taken: Iterable[str]) -> dict[str, str]:
    """Pick local variable names that do not shadow any taken identifier.

    A taken name gets the smallest numeric suffix that is free, e.g. `handler` becomes `handler1`
    when the service's own type is called `handler`.

    Args:
        names (Iterable[str]): The preferred local names.
        taken (Iterable[str]): Identifiers visible in the function that must stay reachable.

    Returns:
        dict[str, str]: The name to use per preferred name.
    """
    used = set(taken)
    result: dict[str, str] = {}
    for name in names:
        local = name
        i = 1
        while local in used:
            local = f"{name}{i}"
            i += 1
        used.add(local)
        result[name] = local
    return result
