"""
Tests for lifecycle script execution.
"""

import io
import os
from pathlib import Path

from ctftools.core.script_runner import EXIT_CANNOT_EXECUTE, ScriptRunner

from conftest import write_script


class TestBuildCommand:
    def test_plain(self, tmp_path):
        runner = ScriptRunner(bin_dir=tmp_path / "bin")
        assert runner.build_command(Path("/t/install")) == ["/t/install"]

    def test_nice_and_sudo(self, tmp_path):
        runner = ScriptRunner(bin_dir=tmp_path / "bin", nice_level=10, sudo_command=["sudo", "-E"])
        cmd = runner.build_command(Path("/t/install-dep"), privileged=True)
        assert cmd == ["nice", "-n", "10", "sudo", "-E", "/t/install-dep"]

    def test_bin_dir_first_on_path(self, tmp_path):
        runner = ScriptRunner(bin_dir=tmp_path / "bin")
        env = runner.build_env({"TOOL_NAME": "foo"})
        assert env["PATH"].split(os.pathsep)[0] == str(tmp_path / "bin")
        assert env["TOOL_NAME"] == "foo"


class TestRun:
    def test_success_appends_to_log(self, tmp_path):
        script = write_script(tmp_path / "install", "echo hello\n")
        log = tmp_path / "install.log"
        log.write_text("previous run\n")

        result = ScriptRunner(bin_dir=tmp_path / "bin").run(script, log_path=log)

        assert result.ok
        assert "hello" in result.output
        content = log.read_text()
        assert content.startswith("previous run\n")
        assert "hello" in content
        assert result.duration_seconds is not None

    def test_truncates_log_when_not_appending(self, tmp_path):
        script = write_script(tmp_path / "install-dep", "echo fresh\n")
        log = tmp_path / "install-dep.log"
        log.write_text("stale\n")

        ScriptRunner(bin_dir=tmp_path / "bin").run(script, log_path=log, append=False)

        assert "stale" not in log.read_text()

    def test_failure_exit_code_and_stderr_captured(self, tmp_path):
        script = write_script(tmp_path / "install", "echo oops >&2\nexit 3\n")
        result = ScriptRunner(bin_dir=tmp_path / "bin").run(script)
        assert result.exit_code == 3
        assert not result.ok
        assert "oops" in result.output

    def test_runs_in_script_directory(self, tmp_path):
        tool = tmp_path / "tool"
        tool.mkdir()
        script = write_script(tool / "install", "touch made-here\n")
        ScriptRunner(bin_dir=tmp_path / "bin").run(script)
        assert (tool / "made-here").exists()

    def test_global_bin_on_path(self, tmp_path):
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        write_script(bin_dir / "helper", "echo helper-ran\n")
        script = write_script(tmp_path / "install", "helper\n")

        result = ScriptRunner(bin_dir=bin_dir).run(script)

        assert result.ok
        assert "helper-ran" in result.output

    def test_verbose_streams_output(self, tmp_path):
        script = write_script(tmp_path / "install", "echo live\n")
        stream = io.StringIO()
        ScriptRunner(bin_dir=tmp_path / "bin", verbose=True, stream=stream).run(script)
        assert "live" in stream.getvalue()

    def test_quiet_does_not_stream(self, tmp_path):
        script = write_script(tmp_path / "install", "echo live\n")
        stream = io.StringIO()
        ScriptRunner(bin_dir=tmp_path / "bin", stream=stream).run(script)
        assert stream.getvalue() == ""

    def test_not_executable(self, tmp_path):
        script = tmp_path / "install"
        script.write_text("#!/bin/bash -ex\necho hi\n")
        script.chmod(0o644)
        log = tmp_path / "install.log"

        result = ScriptRunner(bin_dir=tmp_path / "bin").run(script, log_path=log)

        assert result.exit_code == EXIT_CANNOT_EXECUTE
        assert "Cannot execute" in log.read_text()

    def test_unwritable_log(self, tmp_path):
        script = write_script(tmp_path / "install", "touch ran\n")
        log = tmp_path / "install.log"
        log.mkdir()

        result = ScriptRunner(bin_dir=tmp_path / "bin").run(script, log_path=log)

        assert result.exit_code == EXIT_CANNOT_EXECUTE
        assert "Cannot open log" in result.output
        assert result.log_path is None
        assert not (tmp_path / "ran").exists()
