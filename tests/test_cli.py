"""
Tests for the soaproxy command line.

The parser is exercised through ``main``; SoaProxy is replaced by an
instance whose store factory returns an in-memory store.
"""

import json

import pytest

from conftest import POINT_SOURCE, point_store
from soaproxy import cli_entry
from soaproxy.api import SoaProxy
from soaproxy.cli.rich_output import RichOutputManager, get_rich_output, set_rich_enabled


@pytest.fixture
def configs():
    return []


@pytest.fixture
def source_file(tmp_path, monkeypatch, configs):
    for key in ("SOAPROXY_CONTAINERS", "SOAPROXY_CLANG_ARGS", "SOAPROXY_OUTPUT_DIR"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "points.cpp"
    path.write_text(POINT_SOURCE, encoding="utf-8")
    store = point_store(path)

    def make(config):
        configs.append(config)
        return SoaProxy(config, lambda _path, _config: store)

    monkeypatch.setattr(cli_entry, "SoaProxy", make)
    yield path
    set_rich_enabled(True)


class TestParser:
    """Tests for argument parsing."""

    def test_transform_options(self):
        args = cli_entry.create_parser().parse_args(
            ["transform", "a.cpp", "--dry-run", "-o", "out", "--containers", "std::vector", "Buffer"]
        )
        assert args.command == "transform"
        assert args.dry_run
        assert args.output == "out"
        assert args.containers == ["std::vector", "Buffer"]

    def test_repeatable_clang_options(self):
        args = cli_entry.create_parser().parse_args(
            ["analyze", "a.cpp", "--clang-arg=-DFOO", "--clang-arg=-std=c++17", "-I", "inc"]
        )
        assert args.clang_args == ["-DFOO", "-std=c++17"]
        assert args.include_paths == ["inc"]

    def test_clang_arg_help_shows_joined_form(self):
        """Values starting with ``-`` have to be joined with ``=``."""
        options = cli_entry._source_options()
        action = next(a for a in options._actions if a.dest == "clang_args")
        assert "--clang-arg=-DFOO" in action.help

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli_entry.main(["--version"])
        assert excinfo.value.code == 0
        assert "soaproxy 0.1.0" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        cli_entry.main([])
        assert "usage: soaproxy" in capsys.readouterr().out


class TestCommands:
    """Tests for the command handlers run through main."""

    def test_analyze_json(self, source_file, capsys):
        cli_entry.main(["--no-rich", "analyze", str(source_file), "--format", "json"])
        data = json.loads(capsys.readouterr().out)
        assert data["classes"][0]["name"] == "P"
        assert data["classes"][0]["eligible"] is True
        assert data["changed"] is False

    def test_analyze_text(self, source_file, capsys):
        cli_entry.main(["--no-rich", "analyze", str(source_file)])
        out = capsys.readouterr().out
        assert "Proxy class candidates" in out
        assert "P | plain | candidate | 1 | -" in out

    def test_clang_options_reach_config(self, source_file, configs):
        cli_entry.main(["--no-rich", "analyze", str(source_file), "--format", "json",
                        "--clang-arg=-DFOO", "-I", "inc"])
        parse = configs[-1].parse_settings
        assert parse.clang_args[-1] == "-DFOO"
        assert parse.include_paths == ["inc"]

    def test_transform_dry_run_does_not_write(self, source_file, capsys):
        cli_entry.main(["--no-rich", "transform", str(source_file), "--dry-run"])
        out = capsys.readouterr().out
        assert "P_proxy(int* ptr, const size_t n, float y): x(ptr[0*n]), y(y) {}" in out
        assert source_file.read_text(encoding="utf-8") == POINT_SOURCE
        assert not (source_file.parent / "autogen_P_proxy.hpp").exists()

    def test_transform_json_dry_run(self, source_file, capsys):
        cli_entry.main(["transform", str(source_file), "--dry-run", "--format", "json"])
        data = json.loads(capsys.readouterr().out)
        assert "autogen_P_proxy.hpp" in data["proxy_header_texts"]
        assert data["main_file_text"].count('#include "autogen_P_proxy.hpp"') == 1

    def test_transform_writes(self, source_file, capsys):
        out_dir = source_file.parent / "generated"
        cli_entry.main(["--no-rich", "transform", str(source_file), "-o", str(out_dir)])
        assert (out_dir / "autogen_P_proxy.hpp").exists()
        assert "Wrote autogen_P_proxy.hpp" in capsys.readouterr().out

    def test_errors_exit_with_status_one(self, source_file, capsys, monkeypatch):
        def broken(config):
            raise RuntimeError("cannot parse")

        monkeypatch.setattr(cli_entry, "SoaProxy", broken)
        with pytest.raises(SystemExit) as excinfo:
            cli_entry.main(["--no-rich", "analyze", str(source_file)])
        assert excinfo.value.code == 1
        assert "Error: cannot parse" in capsys.readouterr().err


class TestConfigCommand:
    """Tests for config show and config init."""

    def test_init_then_show(self, source_file, capsys):
        cli_entry.main(["--no-rich", "config", "init", "custom.yaml"])
        assert (source_file.parent / "custom.yaml").exists()
        assert "Default configuration file created at custom.yaml" in capsys.readouterr().out

        cli_entry.main(["--config", "custom.yaml", "config", "show", "--format", "json"])
        data = json.loads(capsys.readouterr().out)
        assert data["generation"]["proxy_suffix"] == "_proxy"


class TestRichOutput:
    """Tests for the output manager switch."""

    def test_plain_mode(self):
        set_rich_enabled(False)
        try:
            assert not get_rich_output().use_rich
        finally:
            set_rich_enabled(True)

    def test_plain_tree(self, capsys):
        output = RichOutputManager(use_rich=False)
        tree = output.create_tree("P rejected")
        output.add_tree_node(tree, "class has no fields")
        output.print_tree(tree)
        assert "  ├── class has no fields" in capsys.readouterr().out
