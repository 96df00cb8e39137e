"""
Tests for the global bin directory links.
"""

import os

from ctftools.core.bin_linker import BinLinker
from ctftools.models.tool import Tool


def _tool_with_bins(tools_root, make_tool, name, *binaries):
    path = make_tool(name)
    (path / "bin").mkdir()
    for binary in binaries:
        (path / "bin" / binary).write_text("#!/bin/sh\n")
    return Tool(name=name, path=path)


def _links(bin_dir):
    return {p.name: os.readlink(p) for p in bin_dir.iterdir() if p.is_symlink()}


def test_links_are_relative(tools_root, make_tool):
    tool = _tool_with_bins(tools_root, make_tool, "afl", "afl-fuzz", "afl-gcc")
    linked = BinLinker(tools_root / "bin").link(tool)

    assert linked == ["afl-fuzz", "afl-gcc"]
    assert _links(tools_root / "bin") == {
        "afl-fuzz": "../afl/bin/afl-fuzz",
        "afl-gcc": "../afl/bin/afl-gcc",
    }
    assert (tools_root / "bin" / "afl-fuzz").resolve() == (tool.bin_dir / "afl-fuzz").resolve()


def test_link_is_idempotent(tools_root, make_tool):
    tool = _tool_with_bins(tools_root, make_tool, "afl", "afl-fuzz")
    linker = BinLinker(tools_root / "bin")
    linker.link(tool)
    first = _links(tools_root / "bin")
    linker.link(tool)
    assert _links(tools_root / "bin") == first


def test_link_replaces_existing_names(tools_root, make_tool):
    old = _tool_with_bins(tools_root, make_tool, "old", "shared")
    new = _tool_with_bins(tools_root, make_tool, "new", "shared")
    linker = BinLinker(tools_root / "bin")
    linker.link(old)
    linker.link(new)
    assert _links(tools_root / "bin") == {"shared": "../new/bin/shared"}


def test_no_bin_directory(tools_root, make_tool):
    tool = Tool(name="plain", path=make_tool("plain"))
    assert BinLinker(tools_root / "bin").link(tool) == []


def test_creates_global_bin(tmp_path, make_tool, tools_root):
    tool = _tool_with_bins(tools_root, make_tool, "afl", "afl-fuzz")
    (tools_root / "bin").rmdir()
    BinLinker(tools_root / "bin").link(tool)
    assert (tools_root / "bin" / "afl-fuzz").is_symlink()


def test_unlink_only_own_links(tools_root, make_tool):
    afl = _tool_with_bins(tools_root, make_tool, "afl", "afl-fuzz")
    angr = _tool_with_bins(tools_root, make_tool, "angr", "angr")
    (tools_root / "bin" / "manage").write_text("#!/bin/sh\n")
    linker = BinLinker(tools_root / "bin")
    linker.link(afl)
    linker.link(angr)

    assert linker.unlink(afl) == ["afl-fuzz"]

    assert _links(tools_root / "bin") == {"angr": "../angr/bin/angr"}
    assert (tools_root / "bin" / "manage").exists()
