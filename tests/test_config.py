"""Tests for generator settings."""

import pytest

from micro_stub_generator.cli import setup_parser
from micro_stub_generator.config import GeneratorConfig
from micro_stub_generator.errors import GenerationError
from micro_stub_generator.imports import PackageRole


class TestFromParameter:
    def test_empty_parameter(self):
        config = GeneratorConfig.from_parameter("")

        assert config == GeneratorConfig()
        assert config.gofmt

    def test_all_keys(self):
        config = GeneratorConfig.from_parameter(
            "import_prefix=example.com/gen,client_pkg=example.com/rpc/client,"
            "server_pkg=example.com/rpc/server,common_pkg=example.com/rpc/common,"
            "reserved=String+Close,gofmt=false"
        )

        assert config.import_prefix == "example.com/gen"
        assert config.package_paths == {
            PackageRole.CLIENT: "example.com/rpc/client",
            PackageRole.SERVER: "example.com/rpc/server",
            PackageRole.COMMON: "example.com/rpc/common",
        }
        assert config.reserved_names == frozenset({"String", "Close"})
        assert not config.gofmt

    def test_blank_pairs_are_ignored(self):
        config = GeneratorConfig.from_parameter(" , import_prefix=x ,")

        assert config.import_prefix == "x"

    def test_malformed_pair(self):
        with pytest.raises(GenerationError, match="Malformed"):
            GeneratorConfig.from_parameter("import_prefix")

    def test_unknown_key(self):
        with pytest.raises(GenerationError, match="Unknown plugin parameter 'color'"):
            GeneratorConfig.from_parameter("color=red")


class TestFromArgs:
    def test_defaults(self):
        config = GeneratorConfig.from_args(setup_parser().parse_args([]))

        assert config == GeneratorConfig()

    def test_overrides(self):
        args = setup_parser().parse_args(
            ["--client-pkg", "example.com/rpc/client", "--reserved-name", "Close", "String", "--no-gofmt"]
        )

        config = GeneratorConfig.from_args(args)

        assert config.package_paths == {PackageRole.CLIENT: "example.com/rpc/client"}
        assert config.reserved_names == frozenset({"Close", "String"})
        assert not config.gofmt
