from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from micro_stub_generator.helper import RESERVED_METHOD_NAMES, DerivedNames, derive
from micro_stub_generator.schema import MethodSchema, ServiceSchema

DescriptorKind = Literal["Methods", "Streams"]


@dataclass(frozen=True)
class DescriptorIndex:
    """Position of a method in the per-service descriptor table.

    Unary methods and streaming methods are counted separately, each in schema order.
    """

    kind: DescriptorKind
    index: int

    def expression(self, service: str) -> str:
        """Go expression that addresses this entry, e.g. `&_Greeter_serviceDesc.Methods[0]`."""
        return f"&_{service}_serviceDesc.{self.kind}[{self.index}]"


def index_methods(service: ServiceSchema) -> dict[str, DescriptorIndex]:
    """Assign descriptor-table indices to the methods of a service.

    The methods are first split by streaming modality, then numbered within their class, so the
    result does not depend on the order in which the writer later visits them.

    Args:
        service (ServiceSchema): The service.

    Returns:
        dict[str, DescriptorIndex]: Index per raw method name.
    """
    unary = [m for m in service.methods if not m.is_streaming]
    streaming = [m for m in service.methods if m.is_streaming]

    indices: dict[str, DescriptorIndex] = {}
    for i, method in enumerate(unary):
        indices[method.name] = DescriptorIndex("Methods", i)
    for i, method in enumerate(streaming):
        indices[method.name] = DescriptorIndex("Streams", i)
    return indices


@dataclass(frozen=True)
class MethodPlan:
    """A method together with everything derived from it before emission."""

    method: MethodSchema
    names: DerivedNames
    descriptor: DescriptorIndex


@dataclass(frozen=True)
class ServiceGenerationContext:
    """Context object containing all metadata needed to emit one service.

    Attributes:
        service: The service schema
        type_name: The exported service name, e.g. "Greeter"
        receiver_name: The unexported client struct name, e.g. "greeter"
        handler_name: The exported server handler interface name, e.g. "GreeterHandler"
        handler_receiver_name: The unexported handler wrapper name, e.g. "greeterHandler"
        default_service_name: Routing namespace used when the caller passes no override
        methods: One plan per method, in schema order
    """

    service: ServiceSchema
    type_name: str
    receiver_name: str
    handler_name: str
    handler_receiver_name: str
    default_service_name: str
    methods: tuple[MethodPlan, ...]

    @property
    def package_identifiers(self) -> frozenset[str]:
        """Identifiers this service declares at package scope of the generated file."""
        identifiers = {
            self.type_name,
            self.receiver_name,
            self.handler_name,
            self.handler_receiver_name,
            f"New{self.type_name}",
            f"Register{self.handler_name}",
        }
        identifiers.update(plan.names.stream_client for plan in self.methods if plan.method.is_streaming)
        return frozenset(identifiers)

    @classmethod
    def create(
        cls,
        service: ServiceSchema,
        package: str,
        reserved: Iterable[str] = RESERVED_METHOD_NAMES,
    ) -> ServiceGenerationContext:
        """Factory method that derives all names and descriptor indices of a service.

        Args:
            service: The service schema
            package: The schema package; the lower-cased service name is used if it is empty
            reserved: Method names that need disambiguation

        Returns:
            A fully initialized ServiceGenerationContext
        """
        reserved = frozenset(reserved)
        indices = index_methods(service)
        plans = tuple(
            MethodPlan(method=m, names=derive(service.name, m.name, reserved), descriptor=indices[m.name])
            for m in service.methods
        )
        service_names = derive(service.name, "", reserved)

        return cls(
            service=service,
            type_name=service_names.service,
            receiver_name=service_names.service_receiver,
            handler_name=service_names.handler,
            handler_receiver_name=service_names.handler_receiver,
            default_service_name=package or service.name.lower(),
            methods=plans,
        )
