"""
Tests for the README catalog reader.
"""

import textwrap

import pytest

from ctftools.core.catalog import Catalog


@pytest.fixture
def catalog(tmp_path):
    path = tmp_path / "README.md"
    path.write_text(textwrap.dedent("""\
        # ctf-tools

        | Category | Tool | Description |
        |----------|------|-------------|
        | binary | [afl](https://github.com/google/AFL) | State-of-the-art fuzzer. | <!--tool--><!--test-->
        | binary | [angr](https://angr.io) | Next-generation binary analysis engine from Shellphish. | <!--tool-->
        | crypto | [hashpump](https://github.com/bwall/HashPump) | Hash length extension <!--note-->attacks. | <!--tool--><!--test-->
        | forensics | [binwalk](https://github.com/ReFirmLabs/binwalk) | Firmware analysis. |
    """))
    return Catalog(path)


def test_entries_only_marked_rows(catalog):
    names = [e.name for e in catalog.entries()]
    assert names == ["afl", "angr", "hashpump"]


def test_annotations_stripped(catalog):
    line = catalog.find("hashpump").line
    assert "<!--" not in line
    assert "Hash length extension attacks." in line


def test_search_is_case_insensitive_substring(catalog):
    matches = catalog.search("BINARY")
    assert len(matches) == 2
    assert "[afl]" in matches[0]
    assert "[angr]" in matches[1]


def test_search_matches_description(catalog):
    assert len(catalog.search("shellphish")) == 1


def test_search_no_match(catalog):
    assert catalog.search("binwalk") == []


def test_tests_enabled(catalog):
    assert catalog.tests_enabled("afl")
    assert catalog.tests_enabled("hashpump")
    assert not catalog.tests_enabled("angr")
    assert not catalog.tests_enabled("binwalk")
    assert not catalog.tests_enabled("missing")


def test_missing_catalog(tmp_path):
    catalog = Catalog(tmp_path / "README.md")
    assert catalog.entries() == []
    assert catalog.search("afl") == []
    assert not catalog.tests_enabled("afl")
