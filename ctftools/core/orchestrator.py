"""
Tool orchestrator: resolves an action against one tool or all of them.
"""

import logging
import sys
from typing import Optional, TextIO, Union

from config.settings import Settings
from ..models.action import (
    Action,
    ActionResult,
    ActionStatus,
    BatchResult,
    ErrorKind,
    ListFilter,
    UpgradeSummary,
    MAGIC_ALL,
)
from ..models.installation import ScriptResult
from ..models.tool import LifecycleHook, Tool
from ..utils.logging import tool_logger
from .bin_linker import BinLinker
from .catalog import Catalog
from .environment import EnvironmentSetup
from .registry import ToolRegistry
from .script_runner import ScriptRunner
from .script_validator import ScriptValidator
from .state import StateTracker, make_state_tracker


Outcome = Union[ActionResult, BatchResult, UpgradeSummary]

# Actions that accept the "all" selector
BATCHABLE = {Action.INSTALL, Action.BIN, Action.UNINSTALL, Action.REINSTALL, Action.UPGRADE}

# Error reported when a tool action dies on a filesystem error
FAILURE_KINDS = {
    Action.INSTALL: ErrorKind.INSTALL_FAILED,
    Action.REINSTALL: ErrorKind.INSTALL_FAILED,
    Action.UNINSTALL: ErrorKind.UNINSTALL_FAILED,
    Action.UPGRADE: ErrorKind.UPGRADE_FAILED,
    Action.BIN: ErrorKind.LINK_FAILED,
    Action.TEST: ErrorKind.TEST_SCRIPT_FAILED,
}


class ToolOrchestrator:
    """Runs lifecycle actions on the tools under the tools root."""

    def __init__(self,
                 settings: Settings,
                 state: Optional[StateTracker] = None,
                 runner: Optional[ScriptRunner] = None,
                 validator: Optional[ScriptValidator] = None,
                 catalog: Optional[Catalog] = None,
                 linker: Optional[BinLinker] = None,
                 out: Optional[TextIO] = None,
                 err: Optional[TextIO] = None):
        """
        Initialize the orchestrator.

        Args:
            settings: Flags and paths, fixed for the whole run
            state: Installed-state tracker (built from settings if omitted)
            runner: Lifecycle script runner
            validator: Strict-mode header validator
            catalog: Catalog used by search and test gating
            linker: Global bin directory maintainer
            out: Stream for list and search output (default stdout)
            err: Stream captured logs are dumped to (default stderr)
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.state = state or make_state_tracker(settings.state_backend, settings.tools_root)
        self.registry = ToolRegistry(settings.tools_root, self.state)
        self.runner = runner or ScriptRunner(
            bin_dir=settings.bin_dir,
            nice_level=settings.nice_level,
            verbose=settings.verbose,
            sudo_command=settings.sudo_command
        )
        self.validator = validator or ScriptValidator()
        self.catalog = catalog or Catalog(settings.catalog_path)
        self.linker = linker or BinLinker(settings.bin_dir)
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def resolve(self,
                action: Union[Action, str],
                tool: Optional[str] = None,
                list_filter: ListFilter = ListFilter.ALL) -> Outcome:
        """
        Validate the request and run it.

        Args:
            action: Action to run
            tool: Tool name, "all", or the query for search
            list_filter: Filter for the list action

        Returns:
            A single-tool result, a batch result, or an upgrade summary
        """
        try:
            action = Action(action)
        except ValueError:
            self.logger.error(f"Unknown action: {action}")
            return ActionResult.failure(None, ErrorKind.UNKNOWN_ACTION,
                                        message=f"unknown action {action!r}")

        if action == Action.LIST:
            return self.list_tools(list_filter)
        if action == Action.SETUP:
            return self.setup()

        if not tool:
            self.logger.error(f"{action.value}: no tool given")
            return ActionResult.failure(action, ErrorKind.MISSING_TOOL, message="no tool given")

        if action == Action.SEARCH:
            return self.search(tool)
        if tool == MAGIC_ALL:
            return self.run_all(action)
        return self.run_single(action, tool)

    def run_single(self, action: Action, name: str) -> ActionResult:
        """Run an action on one named tool."""
        if name == MAGIC_ALL:
            self.logger.error(f"{action.value}: '{MAGIC_ALL}' is not a tool")
            return ActionResult.failure(action, ErrorKind.INVALID_MAGIC_TOOL, tool=name,
                                        message=f"'{MAGIC_ALL}' must be expanded before reaching a single tool")

        tool = self.registry.get(name)
        if tool is None:
            self.logger.error(f"{name} | tool not found")
            return ActionResult.failure(action, ErrorKind.UNKNOWN_TOOL, tool=name,
                                        message="no such tool")

        handlers = {
            Action.INSTALL: self.install,
            Action.UNINSTALL: self.uninstall,
            Action.REINSTALL: self.reinstall,
            Action.UPGRADE: self.upgrade,
            Action.BIN: self.link_binaries,
            Action.TEST: self.test,
        }
        try:
            result = handlers[action](tool)
        except OSError as e:
            self.logger.error(f"{name} | {action.value} aborted: {e}", exc_info=True)
            result = ActionResult.failure(action, FAILURE_KINDS[action], tool=name, message=str(e))
        if result.failed:
            self._report_failure(result)
        return result

    def run_all(self, action: Action) -> Union[BatchResult, UpgradeSummary, ActionResult]:
        """Fan an action out over every (installed) tool, one tool at a time."""
        if action == Action.UPGRADE:
            return self.full_upgrade()
        if action not in BATCHABLE:
            self.logger.error(f"{action.value} cannot be run on '{MAGIC_ALL}'")
            return ActionResult.failure(action, ErrorKind.ACTION_NOT_BATCHABLE, tool=MAGIC_ALL,
                                        message=f"{action.value} does not support '{MAGIC_ALL}'")

        tools = self.registry.tools() if action == Action.INSTALL else self.registry.installed()
        batch = BatchResult(action=action)
        for tool in tools:
            batch.results.append(self.run_single(action, tool.name))

        self.logger.info(
            f"{action.value} all: {batch.succeeded} succeeded, {batch.failed} failed"
            + (f" ({', '.join(batch.failed_tools)})" if batch.failed_tools else "")
        )
        return batch

    def full_upgrade(self) -> UpgradeSummary:
        """Upgrade every installed tool, tallying failures instead of stopping."""
        summary = UpgradeSummary()
        for tool in self.registry.installed():
            summary.record(self.run_single(Action.UPGRADE, tool.name))

        self.logger.info(f"Upgrade finished: {summary.succeeded} succeeded, {summary.failed} failed")
        if summary.failed_tools:
            self.logger.warning(f"Failed to upgrade: {' '.join(summary.failed_tools)}")
        return summary

    def list_tools(self, list_filter: ListFilter = ListFilter.ALL) -> ActionResult:
        names = [tool.name for tool in self.registry.list(list_filter)]
        for name in names:
            print(name, file=self.out)
        return ActionResult.success(Action.LIST, tools=names)

    def search(self, query: str) -> ActionResult:
        matches = self.catalog.search(query)
        for line in matches:
            print(line, file=self.out)
        if not matches:
            self.logger.info(f"No tools match '{query}'")
        return ActionResult.success(Action.SEARCH, matches=matches)

    def setup(self) -> ActionResult:
        result = EnvironmentSetup(self.settings, self.runner).run()
        if result.failed:
            self._report_failure(result)
        return result

    def link_binaries(self, tool: Tool) -> ActionResult:
        log = tool_logger(self.logger, tool.name)
        try:
            linked = self.linker.link(tool)
        except OSError as e:
            log.error(f"could not link binaries: {e}")
            return ActionResult.failure(Action.BIN, ErrorKind.LINK_FAILED, tool=tool.name,
                                        message=f"could not link binaries: {e}")
        if linked:
            log.info(f"linked binaries: {' '.join(linked)}")
        else:
            log.debug("no binaries to link")
        return ActionResult.success(Action.BIN, tool=tool.name, binaries=linked)

    def install(self, tool: Tool) -> ActionResult:
        log = tool_logger(self.logger, tool.name)

        if not self.settings.force and self.state.is_installed(tool):
            log.info("appears to already be installed. Uninstall first?")
            return ActionResult.skipped(Action.INSTALL, ErrorKind.ALREADY_INSTALLED, tool=tool.name,
                                        message="already installed")

        if self.settings.enforce_script_header:
            violations = self.validator.violations(tool)
            if violations:
                for violation in violations:
                    log.error(f"{violation.script.name}: {violation.error}")
                return ActionResult.failure(
                    Action.INSTALL, ErrorKind.UNSAFE_SCRIPT_HEADER, tool=tool.name,
                    message="lifecycle scripts must start in strict mode (exit on error, trace)",
                    scripts=[v.script.name for v in violations]
                )

        self.state.track(tool)

        if tool.is_executable(LifecycleHook.INSTALL_DEP):
            if self.settings.allow_sudo:
                log.info("installing dependencies")
                result = self._run_hook(tool, LifecycleHook.INSTALL_DEP, privileged=True, append=False)
                if not result.ok:
                    return ActionResult.failure(
                        Action.INSTALL, ErrorKind.DEPENDENCY_INSTALL_FAILED, tool=tool.name,
                        message=f"install-dep exited with {result.exit_code}",
                        log_path=result.log_path, exit_code=result.exit_code
                    )
            else:
                log.warning("has an install-dep script but sudo is not allowed (-s), "
                            "dependencies may be missing")

        log.info(f"starting install, logging to {tool.log_path('install')}")
        result = self._run_hook(tool, LifecycleHook.INSTALL, env={"TOOL_NAME": tool.name})
        if not result.ok:
            return ActionResult.failure(
                Action.INSTALL, ErrorKind.INSTALL_FAILED, tool=tool.name,
                message=f"install exited with {result.exit_code}",
                log_path=result.log_path, exit_code=result.exit_code
            )

        self.state.mark_installed(tool)
        log.info("install finished")
        linked = self.link_binaries(tool)
        if linked.failed:
            return linked.model_copy(update={"action": Action.INSTALL})
        return ActionResult.success(Action.INSTALL, tool=tool.name, message="installed",
                                    binaries=linked.details["binaries"],
                                    duration_seconds=result.duration_seconds)

    def uninstall(self, tool: Tool) -> ActionResult:
        log = tool_logger(self.logger, tool.name)
        details = {}

        self.state.track(tool)
        if tool.has_hook(LifecycleHook.UNINSTALL):
            log.info("running uninstall script")
            result = self._run_hook(tool, LifecycleHook.UNINSTALL)
            if not result.ok:
                # the reset below still runs, and takes the log with it
                log.warning(f"uninstall script exited with {result.exit_code}")
                self.err.write(result.output)
                details["uninstall_exit_code"] = result.exit_code

        try:
            removed = self.linker.unlink(tool)
        except OSError as e:
            log.error(f"could not remove links: {e}")
            details["unlink_error"] = str(e)
        else:
            if removed:
                log.debug(f"removed links: {' '.join(removed)}")

        if not self.state.reset(tool):
            return ActionResult.failure(Action.UNINSTALL, ErrorKind.UNINSTALL_FAILED,
                                        tool=tool.name, message="could not remove build output",
                                        **details)
        if "unlink_error" in details:
            return ActionResult.failure(Action.UNINSTALL, ErrorKind.UNINSTALL_FAILED,
                                        tool=tool.name, message="could not remove binary links",
                                        **details)
        log.info("uninstalled")
        return ActionResult.success(Action.UNINSTALL, tool=tool.name, message="uninstalled",
                                    **details)

    def reinstall(self, tool: Tool) -> ActionResult:
        removed = self.uninstall(tool)
        if removed.failed:
            return removed
        return self.install(tool)

    def upgrade(self, tool: Tool) -> ActionResult:
        log = tool_logger(self.logger, tool.name)

        if not tool.has_hook(LifecycleHook.UPGRADE):
            log.info("no upgrade script, reinstalling")
            return self.reinstall(tool)

        log.info("upgrading")
        self.state.track(tool)
        result = self._run_hook(tool, LifecycleHook.UPGRADE)
        if not result.ok:
            return ActionResult.failure(
                Action.UPGRADE, ErrorKind.UPGRADE_FAILED, tool=tool.name,
                message=f"upgrade exited with {result.exit_code}",
                log_path=result.log_path, exit_code=result.exit_code
            )
        linked = self.link_binaries(tool)
        if linked.failed:
            return linked.model_copy(update={"action": Action.UPGRADE})
        return ActionResult.success(Action.UPGRADE, tool=tool.name, message="upgraded")

    def test(self, tool: Tool) -> ActionResult:
        log = tool_logger(self.logger, tool.name)

        if not (self.settings.force or self.catalog.tests_enabled(tool.name)):
            log.info("tests not enabled")
            outcome = ActionResult.skipped(Action.TEST, tool=tool.name, message="tests not enabled")
            return self._apply_expectation(outcome)

        installed = self.install(tool)
        if installed.failed:
            log.error("install failed, not testing")
            return self._apply_expectation(installed)

        if not tool.has_hook(LifecycleHook.TEST):
            log.info("no test script, install succeeded")
            outcome = ActionResult.success(Action.TEST, tool=tool.name, message="install succeeded")
            return self._apply_expectation(outcome)

        result = self._run_hook(tool, LifecycleHook.TEST)
        if result.ok:
            log.info("tests passed")
            outcome = ActionResult.success(Action.TEST, tool=tool.name, message="tests passed")
        else:
            outcome = ActionResult.failure(
                Action.TEST, ErrorKind.TEST_SCRIPT_FAILED, tool=tool.name,
                message=f"test exited with {result.exit_code}",
                log_path=result.log_path, exit_code=result.exit_code
            )
        return self._apply_expectation(outcome)

    def _run_hook(self, tool: Tool, hook: LifecycleHook, **kwargs) -> ScriptResult:
        """Run a lifecycle script, logging to ``<hook>.log``, and record what it left behind."""
        try:
            return self.runner.run(tool.script(hook), log_path=tool.log_path(hook.value), **kwargs)
        finally:
            self.state.record(tool)

    def _apply_expectation(self, outcome: ActionResult) -> ActionResult:
        """Invert a test outcome when the run expects failure."""
        if not self.settings.expect_fail:
            return outcome

        log = tool_logger(self.logger, outcome.tool)
        if outcome.failed:
            log.info("failed, as expected")
            return outcome.model_copy(update={
                "status": ActionStatus.SUCCEEDED,
                "details": {**outcome.details, "expected_failure": True},
            })

        log.error("passed, but was expected to fail")
        return outcome.model_copy(update={"status": ActionStatus.FAILED, "log_path": None})

    def _report_failure(self, result: ActionResult) -> None:
        """Log a failure and dump its captured log, if any."""
        prefix = f"{result.tool} | " if result.tool else ""
        kind = result.error.value if result.error else "Failed"
        action = result.action.value if result.action else "action"
        self.logger.error(f"{prefix}{action} failed ({kind}): {result.message}")

        if result.log_path and result.log_path.exists():
            self.err.write(f"==== {result.log_path} ====\n")
            self.err.write(result.log_path.read_text(errors="replace"))
            self.err.flush()
