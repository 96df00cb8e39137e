"""
Runner for executing tool lifecycle scripts as subprocesses.
"""

import logging
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from ..models.installation import ScriptResult


# Exit status a shell reports for a command it could not execute
EXIT_CANNOT_EXECUTE = 126


class ScriptRunner:
    """Runs lifecycle scripts, capturing their combined output to a log file."""

    def __init__(self,
                 bin_dir: Path,
                 nice_level: int = 0,
                 verbose: bool = False,
                 sudo_command: Optional[List[str]] = None,
                 stream: Optional[TextIO] = None):
        """
        Initialize the script runner.

        Args:
            bin_dir: Global bin directory, put first on the scripts' PATH
            nice_level: Niceness to run scripts at
            verbose: Echo script output live as well as logging it
            sudo_command: Command prefix for privileged runs
            stream: Where live output goes when verbose (default stdout)
        """
        self.logger = logging.getLogger(__name__)
        self.bin_dir = Path(bin_dir)
        self.nice_level = nice_level
        self.verbose = verbose
        self.sudo_command = list(sudo_command) if sudo_command is not None else ["sudo", "-E"]
        self.stream = stream

    def build_command(self, script: Path, privileged: bool = False) -> List[str]:
        """Command line for a script, with nice and sudo prefixes applied."""
        cmd: List[str] = []
        if self.nice_level:
            cmd += ["nice", "-n", str(self.nice_level)]
        if privileged:
            cmd += self.sudo_command
        cmd.append(str(script))
        return cmd

    def build_env(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Environment with the global bin directory taking PATH precedence."""
        env = dict(os.environ)
        env["PATH"] = os.pathsep.join(filter(None, [str(self.bin_dir), env.get("PATH")]))
        if extra:
            env.update(extra)
        return env

    def run(self,
            script: Path,
            log_path: Optional[Path] = None,
            privileged: bool = False,
            append: bool = True,
            env: Optional[Dict[str, str]] = None) -> ScriptResult:
        """
        Run a script from its own directory and wait for it to exit.

        Args:
            script: Script to run
            log_path: Log file receiving stdout and stderr
            privileged: Run under the sudo command
            append: Append to the log instead of truncating it
            env: Extra environment variables

        Returns:
            Script result with exit code and captured output
        """
        cmd = self.build_command(script, privileged=privileged)
        self.logger.debug(f"Running {' '.join(cmd)} in {script.parent}")

        started = time.monotonic()
        chunks: List[str] = []
        try:
            log_file = open(log_path, "a" if append else "w") if log_path else None
        except OSError as e:
            message = f"Cannot open log {log_path}: {e}\n"
            self.logger.error(message.strip())
            return ScriptResult(
                script=script,
                exit_code=EXIT_CANNOT_EXECUTE,
                output=message,
                duration_seconds=time.monotonic() - started
            )

        try:
            try:
                process = subprocess.Popen(
                    cmd,
                    cwd=script.parent,
                    env=self.build_env(env),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                    text=True,
                    errors="replace"
                )
            except OSError as e:
                message = f"Cannot execute {script}: {e}\n"
                chunks.append(message)
                if log_file:
                    log_file.write(message)
                return ScriptResult(
                    script=script,
                    exit_code=EXIT_CANNOT_EXECUTE,
                    output=message,
                    log_path=log_path,
                    duration_seconds=time.monotonic() - started
                )

            for line in process.stdout:
                chunks.append(line)
                if log_file:
                    log_file.write(line)
                    log_file.flush()
                if self.verbose:
                    out = self.stream or sys.stdout
                    out.write(line)
                    out.flush()
            process.stdout.close()
            exit_code = process.wait()
        finally:
            if log_file:
                log_file.close()

        duration = time.monotonic() - started
        self.logger.debug(f"{script} exited with {exit_code} after {duration:.2f}s")
        return ScriptResult(
            script=script,
            exit_code=exit_code,
            output="".join(chunks),
            log_path=log_path,
            duration_seconds=duration
        )
