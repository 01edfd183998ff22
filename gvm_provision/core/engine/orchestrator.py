"""
Run orchestrator — sequences a role's steps inside the workspace.

This is the only place provisioning errors are caught. Whatever ends
the run (success, a ProvisionError, Ctrl-C) the workspace context
manager removes the per-run directories first; the failure report is
logged after cleanup so it is the last thing in the log.

Flow:
    role → steps → workspace() → Step 1/N … Step N/N → exit code
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from gvm_provision.adapters.http import HttpClient
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.engine.context import RunContext
from gvm_provision.core.engine.roles import role_steps
from gvm_provision.core.errors import ProvisionError
from gvm_provision.core.models.run import HostRole, HostTarget, InstallationStep
from gvm_provision.core.services.workspace import workspace

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


class Orchestrator:
    """Runs one host role end to end.

    Args:
        settings: Frozen run settings.
        runner: Command runner (a RecordingRunner in tests).
        http: HTTP client (a FakeHttpClient in tests).
    """

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner | None = None,
        http: HttpClient | None = None,
    ):
        self.settings = settings
        self.runner = runner or CommandRunner()
        self.http = http or HttpClient()

    def run(
        self,
        role: HostRole,
        target: HostTarget,
        steps: Sequence[InstallationStep] | None = None,
    ) -> int:
        """Install ``role`` on this host.

        Returns:
            0 on success, otherwise the failing command's exit status
            (1 when no command was involved, 130 when interrupted).
        """
        steps = list(steps) if steps is not None else role_steps(role)
        total = len(steps)
        current: InstallationStep | None = None

        logger.info("Starting %s machine installation...", role.display_name)
        try:
            with workspace(self.settings) as layout:
                ctx = RunContext(
                    settings=self.settings,
                    role=role,
                    target=target,
                    runner=self.runner,
                    http=self.http,
                    layout=layout,
                )
                for step in sorted(steps, key=lambda s: s.ordinal):
                    current = step
                    self._run_step(step, ctx, total)
        except ProvisionError as e:
            self._report_failure(current, e)
            return e.exit_code
        except KeyboardInterrupt:
            where = f"step {current.ordinal}/{total} ({current.name})" if current else "startup"
            logger.error("Installation interrupted during %s.", where)
            return EXIT_INTERRUPTED

        logger.info("%s machine installation completed successfully.", role.display_name)
        return 0

    def _run_step(self, step: InstallationStep, ctx: RunContext, total: int) -> None:
        logger.info("Step %d/%d: %s", step.ordinal, total, step.name)
        if step.required:
            step.action(ctx)
            return
        try:
            step.action(ctx)
        except ProvisionError as e:
            logger.warning("Optional step '%s' failed: %s. Continuing.", step.name, e.message)

    def _report_failure(self, step: InstallationStep | None, error: ProvisionError) -> None:
        where = f"Step {step.ordinal} ({step.name})" if step else "Workspace preparation"
        logger.error("%s failed (%s): %s", where, error.kind, error.message)
        logger.error(
            "Installation aborted at %s. Command: %s. Status: %s. Exit code: %d.",
            where,
            error.command or "none",
            error.status if error.status is not None else "n/a",
            error.exit_code,
        )
