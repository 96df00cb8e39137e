"""
Script validation module for checking tool lifecycle scripts.
"""

import logging
import shlex
from pathlib import Path
from typing import List, Optional, Set

from ..models.installation import ValidationResult, ValidationStatus
from ..models.tool import Tool


SHELLS = {"bash", "sh", "zsh", "dash"}

# Long option names accepted by ``set -o``
LONG_OPTIONS = {"errexit": "e", "xtrace": "x"}

REQUIRED_FLAGS = {"e", "x"}


class ScriptValidator:
    """
    Enforces the strict-mode header policy on lifecycle scripts.

    A script passes when it exits on the first error and traces every
    command. Either the shebang carries the flags (``#!/bin/bash -ex``), or
    the first command after the shebang is a ``set`` that enables them
    (``set -ex``, ``set -euxo pipefail``, ``set -o errexit -o xtrace``).
    """

    def __init__(self):
        """Initialize the script validator."""
        self.logger = logging.getLogger(__name__)

    def validate_tool(self, tool: Tool) -> List[ValidationResult]:
        """
        Validate every header-checked script of a tool.

        Args:
            tool: Tool whose scripts are checked

        Returns:
            Validation results, one list entry per check and script
        """
        results = []
        for script in tool.header_checked_scripts():
            results.extend(self.validate_script(script))
        return results

    def violations(self, tool: Tool) -> List[ValidationResult]:
        """Failed checks only."""
        return [r for r in self.validate_tool(tool) if r.status == ValidationStatus.FAILED]

    def validate_script(self, script_path: Path) -> List[ValidationResult]:
        """
        Run all validation checks on a script.

        Args:
            script_path: Path to the script file

        Returns:
            List of validation results
        """
        if not script_path.is_file():
            return [ValidationResult(
                step="file_check",
                status=ValidationStatus.FAILED,
                script=script_path,
                error=f"Script file not found: {script_path}"
            )]

        return [self._validate_strict_header(script_path)]

    def _validate_strict_header(self, script_path: Path) -> ValidationResult:
        """Validate the script turns on exit-on-error and tracing up front."""
        try:
            with open(script_path, 'r', errors='replace') as f:
                lines = f.read().splitlines()
        except OSError as e:
            return ValidationResult(
                step="strict_header",
                status=ValidationStatus.FAILED,
                script=script_path,
                error=str(e)
            )

        if not lines or not lines[0].startswith("#!"):
            return ValidationResult(
                step="strict_header",
                status=ValidationStatus.FAILED,
                script=script_path,
                error="Missing shebang"
            )

        flags = self._shebang_flags(lines[0])
        if flags is None:
            return ValidationResult(
                step="strict_header",
                status=ValidationStatus.FAILED,
                script=script_path,
                error=f"Not a shell script: {lines[0]}"
            )

        flags |= self._leading_set_flags(lines[1:])
        missing = REQUIRED_FLAGS - flags
        if missing:
            return ValidationResult(
                step="strict_header",
                status=ValidationStatus.FAILED,
                script=script_path,
                error=f"Missing strict-mode flags -{''.join(sorted(missing))}: {lines[0]}"
            )

        return ValidationResult(
            step="strict_header",
            status=ValidationStatus.PASSED,
            script=script_path,
            output="Strict-mode header found"
        )

    def _shebang_flags(self, shebang: str) -> Optional[Set[str]]:
        """
        Single-letter flags passed to the shell by the shebang line.

        Returns None when the interpreter is not a shell.
        """
        tokens = shebang[2:].split()
        if not tokens:
            return None

        honour_flags = True
        if Path(tokens[0]).name == "env":
            tokens = tokens[1:]
            if tokens[:1] == ["-S"]:
                tokens = tokens[1:]
            else:
                # Linux hands "bash -ex" to env as one word, so flags there never apply
                honour_flags = False
            if not tokens:
                return None

        if Path(tokens[0]).name not in SHELLS:
            return None
        if not honour_flags:
            return set()
        return self._short_flags(tokens[1:])

    def _leading_set_flags(self, lines: List[str]) -> Set[str]:
        """Flags enabled by a ``set`` that is the first command of the script."""
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            try:
                words = shlex.split(stripped, comments=True)
            except ValueError:
                return set()
            if not words or words[0] != "set":
                return set()
            return self._short_flags(words[1:])
        return set()

    def _short_flags(self, words: List[str]) -> Set[str]:
        flags: Set[str] = set()
        expect_long = False
        for word in words:
            if expect_long:
                if word in LONG_OPTIONS:
                    flags.add(LONG_OPTIONS[word])
                expect_long = False
                continue
            if not word.startswith("-") or word.startswith("--"):
                continue
            letters = word[1:]
            if letters.endswith("o"):
                expect_long = True
            flags.update(letters.replace("o", ""))
        return flags
