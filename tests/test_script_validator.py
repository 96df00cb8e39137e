"""
Tests for the strict-mode header policy.
"""

from pathlib import Path

import pytest

from ctftools.core.script_validator import ScriptValidator
from ctftools.models.installation import ValidationStatus
from ctftools.models.tool import Tool


def _check(tmp_path: Path, content: str):
    script = tmp_path / "install"
    script.write_text(content)
    results = ScriptValidator().validate_script(script)
    assert len(results) == 1
    return results[0]


@pytest.mark.parametrize("content", [
    "#!/bin/bash -ex\necho hi\n",
    "#!/bin/bash -xe\n",
    "#!/bin/bash -e -x\n",
    "#!/bin/sh -ex\n",
    "#!/usr/bin/env -S bash -ex\n",
    "#!/bin/bash\nset -ex\n",
    "#!/usr/bin/env bash\n# comment first\n\nset -euxo pipefail\ncmake\n",
    "#!/bin/bash -e\nset -x\n",
    "#!/bin/bash\nset -o errexit -o xtrace\n",
])
def test_strict_headers_pass(tmp_path, content):
    result = _check(tmp_path, content)
    assert result.status == ValidationStatus.PASSED


@pytest.mark.parametrize("content", [
    "",
    "echo no shebang\n",
    "#!/bin/bash\necho hi\n",
    "#!/bin/bash -e\n",
    "#!/bin/bash -x\n",
    "#!/usr/bin/env bash\nset -euo pipefail\n",
    "#!/usr/bin/env bash -ex\n",
    "#!/bin/bash\necho first\nset -ex\n",
    "#!/usr/bin/env python3\n",
])
def test_lax_headers_fail(tmp_path, content):
    result = _check(tmp_path, content)
    assert result.status == ValidationStatus.FAILED
    assert result.error


def test_missing_script(tmp_path):
    results = ScriptValidator().validate_script(tmp_path / "nope")
    assert results[0].step == "file_check"
    assert results[0].status == ValidationStatus.FAILED


def test_violations_cover_every_lifecycle_script(make_tool):
    path = make_tool("mixed", uninstall="true\n")
    (path / "test").write_text("#!/bin/bash\ntrue\n")
    (path / "install-helper").write_text("#!/bin/sh\n")
    (path / "install.log").write_text("not a script\n")
    (path / "notes.txt").write_text("not a script either\n")

    violations = ScriptValidator().violations(Tool(name="mixed", path=path))

    assert sorted(v.script.name for v in violations) == ["install-helper", "test"]


def test_clean_tool_has_no_violations(make_tool):
    path = make_tool("clean", uninstall="true\n", upgrade="true\n", test="true\n")
    assert ScriptValidator().violations(Tool(name="clean", path=path)) == []
