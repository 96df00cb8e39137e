"""
One-time environment bootstrap behind ``manage setup``.
"""

import logging
from pathlib import Path

from config.settings import Settings
from ..models.action import Action, ActionResult, ErrorKind
from .script_runner import ScriptRunner


PROFILE_SENTINEL = "# ctf-tools: PATH"
PACKAGE_WRAPPER = "apt-get-install"


class EnvironmentSetup:
    """Installs the base environment and puts the tools on the user's PATH."""

    def __init__(self, settings: Settings, runner: ScriptRunner):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.runner = runner

    def run(self) -> ActionResult:
        """
        Run every setup step in order, stopping at the first failure.

        Returns:
            Setup result; ``details`` records what each step did
        """
        details = {}

        installer = self.settings.environment_installer
        if installer.is_file():
            self.logger.info(f"Running environment installer {installer}")
            result = self.runner.run(installer, log_path=self.settings.tools_root / "setup.log")
            if not result.ok:
                return ActionResult.failure(
                    Action.SETUP, ErrorKind.SETUP_FAILED,
                    message=f"environment installer exited with {result.exit_code}",
                    log_path=result.log_path
                )
            details["environment_installer"] = str(installer)
        else:
            self.logger.warning(f"No environment installer at {installer}, skipping")

        details["profile_updated"] = self.ensure_profile()

        wrapper = self.settings.bin_dir / PACKAGE_WRAPPER
        if not wrapper.is_file():
            self.logger.warning(f"No package wrapper at {wrapper}, not warming the package cache")
        elif not self.settings.allow_sudo:
            self.logger.warning("sudo not allowed (-s), not warming the package cache")
        else:
            self.logger.info("Warming the package cache")
            result = self.runner.run(wrapper, log_path=self.settings.tools_root / "setup.log",
                                     privileged=True)
            if not result.ok:
                return ActionResult.failure(
                    Action.SETUP, ErrorKind.SETUP_FAILED,
                    message=f"{PACKAGE_WRAPPER} exited with {result.exit_code}",
                    log_path=result.log_path
                )
            details["package_cache_warmed"] = True

        return ActionResult.success(Action.SETUP, message="environment ready", **details)

    def profile_block(self) -> str:
        return (
            f"\n{PROFILE_SENTINEL}\n"
            f"export PATH=\"{self.settings.bin_dir}:$PATH\"\n"
        )

    def ensure_profile(self) -> bool:
        """
        Append the PATH block to the shell profile unless it is there already.

        Returns:
            True if the profile was changed
        """
        profile: Path = self.settings.shell_profile
        if profile.exists() and PROFILE_SENTINEL in profile.read_text(errors="replace"):
            self.logger.info(f"{profile} already sets up the tools PATH")
            return False

        profile.parent.mkdir(parents=True, exist_ok=True)
        with open(profile, "a") as f:
            f.write(self.profile_block())
        self.logger.info(f"Added {self.settings.bin_dir} to PATH in {profile}")
        return True
