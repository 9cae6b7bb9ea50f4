"""Generator settings, built from CLI arguments or protoc plugin parameters."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field

from micro_stub_generator.errors import GenerationError
from micro_stub_generator.helper import RESERVED_METHOD_NAMES
from micro_stub_generator.imports import PackageRole

_PARAMETER_ROLES = {
    "client_pkg": PackageRole.CLIENT,
    "server_pkg": PackageRole.SERVER,
    "common_pkg": PackageRole.COMMON,
}


@dataclass
class GeneratorConfig:
    """Settings shared by every file of one generation run.

    Attributes:
        import_prefix: Prefix joined in front of every non-stdlib import path.
        package_paths: Import path overrides for the transport packages.
        reserved_names: Method names that get a trailing underscore in generated identifiers.
        gofmt: Whether outputs are piped through `gofmt` when it is available.
    """

    import_prefix: str = ""
    package_paths: dict[PackageRole, str] = field(default_factory=dict)
    reserved_names: frozenset[str] = RESERVED_METHOD_NAMES
    gofmt: bool = True

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> GeneratorConfig:
        """Build the config from parsed command-line arguments."""
        package_paths: dict[PackageRole, str] = {}
        for option, role in _PARAMETER_ROLES.items():
            value = getattr(args, option, "")
            if value:
                package_paths[role] = value

        return cls(
            import_prefix=getattr(args, "import_prefix", ""),
            package_paths=package_paths,
            reserved_names=RESERVED_METHOD_NAMES | frozenset(getattr(args, "reserved_names", [])),
            gofmt=not getattr(args, "skip_gofmt", False),
        )

    @classmethod
    def from_parameter(cls, parameter: str) -> GeneratorConfig:
        """Build the config from a protoc plugin parameter string.

        The parameter is a comma separated list of `key=value` pairs, e.g.
        `import_prefix=example.com/gen,reserved=String+Close`.

        Args:
            parameter (str): The raw parameter of the CodeGeneratorRequest.

        Raises:
            GenerationError: If a pair is malformed or the key is unknown.

        Returns:
            GeneratorConfig: The config.
        """
        config = cls()
        for pair in parameter.split(","):
            pair = pair.strip()
            if not pair:
                continue

            key, sep, value = pair.partition("=")
            if not sep:
                raise GenerationError(f"Malformed plugin parameter '{pair}', expected key=value.")

            if key == "import_prefix":
                config.import_prefix = value
            elif key in _PARAMETER_ROLES:
                config.package_paths[_PARAMETER_ROLES[key]] = value
            elif key == "reserved":
                config.reserved_names = config.reserved_names | frozenset(n for n in value.split("+") if n)
            elif key == "gofmt":
                config.gofmt = value.lower() not in ("false", "0", "no")
            else:
                raise GenerationError(f"Unknown plugin parameter '{key}'.")

        return config
