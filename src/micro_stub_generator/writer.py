"""Generate go-micro style bindings for the services of one schema file.

For every service the writer emits, in this order: the client interface, the client struct, its
constructor, one client method per RPC, the server handler interface, the registration function,
the handler wrapper struct and one typed forwarder plus one byte-level adapter per RPC.
"""

from __future__ import annotations

import logging

from micro_stub_generator.config import GeneratorConfig
from micro_stub_generator.errors import GenerationError
from micro_stub_generator.helper import unique_locals
from micro_stub_generator.imports import ImportRegistrar, PackageRole
from micro_stub_generator.printer import Printer
from micro_stub_generator.schema import ServiceSchema, SourceFile
from micro_stub_generator.signatures import SignatureRole, build_signature, go_type_name
from micro_stub_generator.writer_dto import MethodPlan, ServiceGenerationContext

logger = logging.getLogger(__name__)

GENERATED_HEADER = "// Code generated by protoc-gen-micro. DO NOT EDIT."


class Writer:
    """A class that handles writing the bindings file, based on a loaded schema file."""

    def __init__(
        self,
        source_file: SourceFile,
        config: GeneratorConfig | None = None,
        routing_keys: dict[str, str] | None = None,
    ):
        """Initialize the writer with a schema file.

        Args:
            source_file (SourceFile): The schema file to write bindings for.
            config (GeneratorConfig | None): Generator settings. Defaults apply if omitted.
            routing_keys (dict[str, str] | None): Routing keys already generated in this run,
                mapped to the schema file that produced them. Shared between writers of one run.
        """
        self._source = source_file
        self._config = config or GeneratorConfig()
        self._routing_keys = routing_keys if routing_keys is not None else {}
        self._declared: dict[str, str] = {}

        # Import aliases must not collide with anything the file declares at package scope.
        reserved_names = {source_file.go_package}
        for service in source_file.services:
            context = ServiceGenerationContext.create(service, source_file.package, self._config.reserved_names)
            reserved_names |= context.package_identifiers

        self.registrar = ImportRegistrar(
            self._config.package_paths,
            import_prefix=self._config.import_prefix,
            reserved_names=reserved_names,
        )
        self.printer = Printer()

    @property
    def has_services(self) -> bool:
        return bool(self._source.services)

    def generate_all(self) -> None:
        """Generate the bindings of all services of the schema file."""
        for service in self._source.services:
            self.gen_service(service)

    def gen_service(self, service: ServiceSchema) -> None:
        """Generate all the code for one service.

        Args:
            service (ServiceSchema): The service to generate.

        Raises:
            GenerationError: If two methods map to the same identifier, two services declare the
                same package-level identifier, or a routing key was already generated in this run.
        """
        context = ServiceGenerationContext.create(service, self._source.package, self._config.reserved_names)
        self._check_names(context)

        logger.debug(
            "Generating service '%s' with %d method(s), routing namespace '%s'.",
            context.type_name,
            len(context.methods),
            context.default_service_name,
        )

        self._gen_client_interface(context)
        self._gen_stream_clients(context)
        self._gen_client_struct(context)
        self._gen_constructor(context)
        for plan in context.methods:
            self._gen_client_method(context, plan)

        self._gen_server_interface(context)
        self._gen_registration(context)
        self._gen_handler_struct(context)
        for plan in context.methods:
            self._gen_forwarder(context, plan)
            self._gen_adapter(context, plan)

    def _check_names(self, context: ServiceGenerationContext) -> None:
        seen_methods: dict[str, str] = {}
        for plan in context.methods:
            other = seen_methods.get(plan.names.method)
            if other is not None:
                raise GenerationError(
                    f"{self._source.name}: methods '{other}' and '{plan.method.name}' of service "
                    f"'{context.service.name}' both generate '{plan.names.method}'."
                )
            seen_methods[plan.names.method] = plan.method.name

        for identifier in sorted(context.package_identifiers):
            other = self._declared.get(identifier)
            if other is not None:
                raise GenerationError(
                    f"{self._source.name}: services '{other}' and '{context.service.name}' both declare '{identifier}'."
                )
            self._declared[identifier] = context.service.name

        for plan in context.methods:
            key = plan.names.routing_key
            if key in self._routing_keys:
                raise GenerationError(
                    f"{self._source.name}: routing key '{key}' is already generated from {self._routing_keys[key]}."
                )
            self._routing_keys[key] = self._source.name

    # ===== Client =====

    def _gen_client_interface(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        out.p("// Client API for ", context.type_name, " service")
        out.p()
        with out.block(f"type {context.type_name} interface"):
            for plan in context.methods:
                out.p(self._signature(SignatureRole.CLIENT, context, plan))
        out.p()

    def _gen_stream_clients(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        for plan in context.methods:
            if not plan.method.is_streaming:
                continue
            out.p("// ", plan.names.stream_client, " is the client side of the ", plan.names.routing_key, " stream.")
            with out.block(f"type {plan.names.stream_client} interface"):
                out.p("Close() error")
            out.p()

    def _gen_client_struct(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        client = self.registrar.alias(PackageRole.CLIENT)
        with out.block(f"type {context.receiver_name} struct"):
            out.p("serviceName string")
            out.p("c           *", client, ".Client")
        out.p()

    def _gen_constructor(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        client = self.registrar.alias(PackageRole.CLIENT)
        names = unique_locals(("c", "serviceName"), {context.receiver_name})
        c, service_name = names["c"], names["serviceName"]

        heading = f"func New{context.type_name}({c} *{client}.Client, {service_name} string) {context.type_name}"
        with out.block(heading):
            with out.block(f"if len({service_name}) == 0"):
                out.p(service_name, ' = "', context.default_service_name, '"')
            with out.block(f"return &{context.receiver_name}", opening="{"):
                out.p("serviceName: ", service_name, ",")
                out.p("c:           ", c, ",")
        out.p()

    def _gen_client_method(self, context: ServiceGenerationContext, plan: MethodPlan) -> None:
        out = self.printer
        errors = self.registrar.errors_alias()
        routing_key = plan.names.routing_key
        signature = self._signature(SignatureRole.CLIENT, context, plan)

        out.p("// descriptor: ", plan.descriptor.expression(context.type_name))
        with out.block(f"func (c *{context.receiver_name}) {signature}"):
            if plan.method.is_streaming:
                out.p("err = ", errors, '.New("', routing_key, ': streaming calls are not supported")')
                out.p("return")
            else:
                with out.block("if in == nil"):
                    out.p("err = ", errors, '.New("', routing_key, ' req is nil")')
                    out.p("return")
                out.p('req := c.c.NewRequest(c.serviceName, "', routing_key, '", in)')
                out.p("res, err := c.c.Call(ctx, req, in, opts...)")
                with out.block("if err != nil"):
                    out.p("return")
                out.p("resp := new(", go_type_name(self.registrar, plan.method.output_type), ")")
                with out.block("if err = resp.Unmarshal(res); err != nil"):
                    out.p("return")
                out.p("out = resp")
                out.p("return")
        out.p()

    # ===== Server =====

    def _gen_server_interface(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        out.p("// Server API for ", context.type_name, " service")
        out.p()
        with out.block(f"type {context.handler_name} interface"):
            for plan in context.methods:
                out.p(self._signature(SignatureRole.SERVER, context, plan))
        out.p()

    def _gen_registration(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        server = self.registrar.alias(PackageRole.SERVER)
        common = self.registrar.alias(PackageRole.COMMON) if context.methods else ""

        taken = {context.receiver_name, context.handler_receiver_name, server, common}
        names = unique_locals(("s", "hdlr", "opts", "h", "handler"), taken)
        s, hdlr, opts, h, handler = (names[n] for n in ("s", "hdlr", "opts", "h", "handler"))

        heading = (
            f"func Register{context.handler_name}({s} *{server}.Server, {hdlr} {context.handler_name}, "
            f"{opts} ...{server}.HandlerOption)"
        )
        with out.block(heading):
            # A service without methods has nothing to dispatch to, and Go rejects an unused `h`.
            if context.methods:
                with out.block(f"type {context.receiver_name} interface"):
                    for plan in context.methods:
                        out.p(self._signature(SignatureRole.INTERFACE, context, plan))
                wrapper = f"&{context.handler_receiver_name}{{handler: {hdlr}}}"
                out.p("var ", h, " ", context.receiver_name, " = ", wrapper)

            out.p(handler, " := ", server, ".RpcHandler()")
            for plan in context.methods:
                key = plan.names.routing_key
                add = f'{handler}.Add({common}.GenRid("{key}"), &{server}.RpcItem'
                with out.block(add, opening="{", closing="})"):
                    out.p("Call: ", h, ".", plan.names.adapter, ",")
                    out.p('Name: "', key, '",')
            out.p(s, ".NewHandler(", handler, ")")
        out.p()

    def _gen_handler_struct(self, context: ServiceGenerationContext) -> None:
        out = self.printer
        with out.block(f"type {context.handler_receiver_name} struct"):
            out.p("handler ", context.handler_name)
        out.p()

    def _gen_forwarder(self, context: ServiceGenerationContext, plan: MethodPlan) -> None:
        out = self.printer
        signature = self._signature(SignatureRole.SERVER, context, plan)
        with out.block(f"func (h *{context.handler_receiver_name}) {signature}"):
            out.p("return h.handler.", plan.names.method, "(ctx, in)")
        out.p()

    def _gen_adapter(self, context: ServiceGenerationContext, plan: MethodPlan) -> None:
        out = self.printer
        signature = self._signature(SignatureRole.ADAPTER, context, plan)
        with out.block(f"func (h *{context.handler_receiver_name}) {signature}"):
            out.p("var req ", go_type_name(self.registrar, plan.method.input_type))
            with out.block("if err = req.Unmarshal(in); err != nil"):
                out.p("return")
            out.p("res, err := h.", plan.names.method, "(ctx, &req)")
            with out.block("if err != nil"):
                out.p("return")
            out.p("data, err := res.Marshal()")
            with out.block("if err != nil"):
                out.p("return")
            out.p("out = data")
            out.p("return")
        out.p()

    def _signature(self, role: SignatureRole, context: ServiceGenerationContext, plan: MethodPlan) -> str:
        return build_signature(role, context.service.name, plan.method, self.registrar, self._config.reserved_names)

    # ===== Output =====

    def dumps(self) -> str:
        """Generates string output for the *.micro.go bindings file.

        Returns:
            str: The output string. Empty if the schema file declares no services.
        """
        if not self.has_services:
            return ""

        out = Printer()
        out.p(GENERATED_HEADER)
        out.p("// source: ", self._source.name)
        out.p()
        out.p("package ", self._source.go_package)
        out.p()

        import_lines = self.registrar.import_lines()
        if import_lines:
            with out.block("import", opening=" (", closing=")"):
                for line in import_lines:
                    out.p(line)
            out.p()

        out.lines.extend(self.printer.lines)
        while out.lines and not out.lines[-1]:
            out.lines.pop()
        return out.dumps()
