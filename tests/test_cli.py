"""CLI tests for micro-stub-generator.

Tests cover:
- Argument parsing
- Generation from *.capnp schemas and protobuf descriptor sets
- Output placement
- Clean up, excludes and recursive search
- Atomic failure on conflicting schemas
"""

from __future__ import annotations

import argparse

import pytest
from conftest import DUPLICATE_GREETER_CAPNP, make_greeter_file
from google.protobuf import descriptor_pb2

from micro_stub_generator.cli import main, setup_parser


class TestArgumentParsing:
    def test_parser_setup(self):
        parser = setup_parser()

        assert isinstance(parser, argparse.ArgumentParser)

    def test_defaults(self):
        args = setup_parser().parse_args([])

        assert args.paths == []
        assert args.descriptor_sets == []
        assert args.proto_files == []
        assert args.excludes == []
        assert args.clean == []
        assert args.output_dir == ""
        assert args.import_paths == []
        assert args.reserved_names == []
        assert args.import_prefix == ""
        assert args.client_pkg == ""
        assert not args.skip_gofmt
        assert not args.recursive

    def test_all_options(self):
        args = setup_parser().parse_args(
            [
                "-p",
                "a.capnp",
                "b.capnp",
                "-d",
                "set.pb",
                "-f",
                "greeter.proto",
                "-o",
                "out",
                "-I",
                "/usr/include",
                "--import-prefix",
                "example.com/gen",
                "--server-pkg",
                "example.com/rpc/server",
                "--no-gofmt",
                "-r",
            ]
        )

        assert args.paths == ["a.capnp", "b.capnp"]
        assert args.descriptor_sets == ["set.pb"]
        assert args.proto_files == ["greeter.proto"]
        assert args.output_dir == "out"
        assert args.import_paths == ["/usr/include"]
        assert args.import_prefix == "example.com/gen"
        assert args.server_pkg == "example.com/rpc/server"
        assert args.skip_gofmt
        assert args.recursive


class TestGeneration:
    def test_descriptor_set(self, descriptor_set_path, temp_output_dir):
        assert main(["-d", str(descriptor_set_path), "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        output = (temp_output_dir / "greeter.micro.go").read_text()
        assert output.startswith("// Code generated by protoc-gen-micro. DO NOT EDIT.\n")
        assert "func NewGreeter(c *client.Client, serviceName string) Greeter {" in output

    def test_capnp_schema(self, temp_schema_dir, temp_output_dir):
        schema = temp_schema_dir / "greeter.capnp"

        assert main(["-p", str(schema), "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        output = (temp_output_dir / "greeter.micro.go").read_text()
        assert "package greeter\n" in output
        assert 'serviceName = "greeter"' in output
        assert "SayHello(ctx context.Context, in *Greeter_sayHello_Params) (*Greeter_sayHello_Results, error)" in output
        assert 'handler.Add(common.GenRid("Greeter.SayHello"), &server.RpcItem{' in output

    def test_output_next_to_schema(self, temp_schema_dir):
        schema = temp_schema_dir / "greeter.capnp"

        assert main(["-p", str(schema), "--no-gofmt"]) == 0

        assert (temp_schema_dir / "greeter.micro.go").exists()

    def test_recursive_keeps_directory_structure(self, temp_schema_dir, temp_output_dir):
        assert main(["-p", str(temp_schema_dir), "-r", "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        assert (temp_output_dir / "greeter.micro.go").exists()
        nested = (temp_output_dir / "subdir" / "nested.micro.go").read_text()
        assert "type Outer_Inner interface {" in nested

    def test_directory_without_recursion(self, temp_schema_dir, temp_output_dir):
        assert main(["-p", str(temp_schema_dir), "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        assert (temp_output_dir / "greeter.micro.go").exists()
        assert not (temp_output_dir / "subdir").exists()

    def test_excludes(self, temp_schema_dir, temp_output_dir):
        args = ["-p", str(temp_schema_dir), "-r", "-e", str(temp_schema_dir / "subdir" / "*.capnp")]

        assert main([*args, "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        assert (temp_output_dir / "greeter.micro.go").exists()
        assert not (temp_output_dir / "subdir" / "nested.micro.go").exists()

    def test_clean(self, temp_schema_dir, temp_output_dir):
        stale = temp_output_dir / "stale.micro.go"
        stale.write_text("package stale\n")

        args = ["-c", str(temp_output_dir / "*.micro.go"), "-p", str(temp_schema_dir / "greeter.capnp")]
        assert main([*args, "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        assert not stale.exists()
        assert (temp_output_dir / "greeter.micro.go").exists()

    def test_no_inputs(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert main(["--no-gofmt"]) == 0

        assert list(tmp_path.iterdir()) == []


class TestFailure:
    def test_conflicting_schemas_write_nothing(self, temp_schema_dir, temp_output_dir):
        """A routing key generated twice fails the run before any file is written."""
        (temp_schema_dir / "duplicate.capnp").write_text(DUPLICATE_GREETER_CAPNP)

        assert main(["-p", str(temp_schema_dir), "-o", str(temp_output_dir), "--no-gofmt"]) == 1

        assert list(temp_output_dir.iterdir()) == []

    def test_failed_run_keeps_files_to_clean(self, tmp_path, temp_output_dir):
        """Old outputs are only cleaned up when the new ones can be written."""
        old = temp_output_dir / "old.micro.go"
        old.write_text("package old\n")
        conflicting = descriptor_pb2.FileDescriptorSet(
            file=[make_greeter_file(), make_greeter_file(name="other.proto", package="other")]
        )
        descriptor_set = tmp_path / "set.pb"
        descriptor_set.write_bytes(conflicting.SerializeToString())

        args = ["-c", str(temp_output_dir / "*.micro.go"), "-d", str(descriptor_set)]
        assert main([*args, "-o", str(temp_output_dir), "--no-gofmt"]) == 1

        assert old.exists()
        assert [p.name for p in temp_output_dir.iterdir()] == ["old.micro.go"]


class TestDescriptorSetFiles:
    """Only the named files of a descriptor set are generated, not its imported dependencies."""

    @pytest.fixture
    def descriptor_set(self, tmp_path):
        dependency = make_greeter_file(name="dep/admin.proto", package="admin", service="Admin")
        greeter = make_greeter_file()
        greeter.dependency.append("dep/admin.proto")
        path = tmp_path / "set.pb"
        path.write_bytes(descriptor_pb2.FileDescriptorSet(file=[dependency, greeter]).SerializeToString())
        return path

    def test_named_files_only(self, descriptor_set, temp_output_dir):
        args = ["-d", str(descriptor_set), "-f", "greeter.proto", "-o", str(temp_output_dir), "--no-gofmt"]

        assert main(args) == 0

        assert (temp_output_dir / "greeter.micro.go").exists()
        assert not (temp_output_dir / "dep").exists()

    def test_all_files_with_services_by_default(self, descriptor_set, temp_output_dir):
        assert main(["-d", str(descriptor_set), "-o", str(temp_output_dir), "--no-gofmt"]) == 0

        assert (temp_output_dir / "greeter.micro.go").exists()
        assert (temp_output_dir / "dep" / "admin.micro.go").exists()

    def test_unknown_file_name(self, descriptor_set, temp_output_dir):
        args = ["-d", str(descriptor_set), "-f", "missing.proto", "-o", str(temp_output_dir), "--no-gofmt"]

        assert main(args) == 1

        assert list(temp_output_dir.iterdir()) == []
