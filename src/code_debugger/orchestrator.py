"""
Session orchestrator - turns Run/Repair/Revert actions into ordered async work.

Owns the session, the progress ticker, the pending auto-run and the
last execution outcome. Collaborators (an editor, the CLI) call the
trigger_* methods and read the observers; nothing else mutates this state.

Ordering within one repair:
1. Ticker stops before the session is touched
2. Session and patch history are updated
3. Auto-run of the repaired code is armed

Overlapping calls are not cancelled at the transport level. Each call
carries a generation number; with `session.stale_responses = "apply"` the
last call to complete wins, with "discard" a response superseded by a newer
call of the same kind is dropped.
"""

import time
from typing import Callable, List, Optional, Tuple

from code_debugger.budget import iteration_budget
from code_debugger.client import ExecutionServiceClient, RepairResponse, TransportError
from code_debugger.config import DebuggerConfig
from code_debugger.history import PatchHistory
from code_debugger.logging import get_logger
from code_debugger.personas import Persona
from code_debugger.scheduler import AutoRunScheduler
from code_debugger.state import (
    RUN_FAILURE_MESSAGE,
    ErrorKind,
    ExecutionOutcome,
    ExecutionStatus,
    FailureKind,
    Notification,
    NotificationLevel,
    Patch,
    RepairAttempt,
    RepairSession,
    Session,
)
from code_debugger.ticker import ProgressTicker, TickerState

logger = get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


class SessionOrchestrator:
    """
    Run/Repair session controller.

    Usage:
        orchestrator = SessionOrchestrator(config, initial_code=source)
        attempt = await orchestrator.trigger_repair(source, "fix the crash", Persona.HACKER)
        await orchestrator.wait_for_auto_run()
        print(orchestrator.outcome.output)
    """

    def __init__(
        self,
        config: Optional[DebuggerConfig] = None,
        client: Optional[ExecutionServiceClient] = None,
        initial_code: str = "",
        on_output: Optional[Callable[[str], None]] = None,
        on_notify: Optional[Callable[[Notification], None]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Debugger configuration (defaults if not provided)
            client: Service client (built from config if not provided)
            initial_code: Code the session starts with
            on_output: Called with the text to display whenever it changes
            on_notify: Called with each user-visible notification
        """
        self.config = config or DebuggerConfig()
        self._owns_client = client is None
        self.client = client or ExecutionServiceClient.from_config(self.config)
        self._on_output = on_output
        self._on_notify = on_notify

        self._session = Session(current_code=initial_code, original_code=initial_code)
        self._history = PatchHistory(self._session)
        self._outcome = ExecutionOutcome.idle()
        self._display_output = ""
        self._notifications: List[Notification] = []

        self._ticker: Optional[ProgressTicker] = None
        self._auto_run = AutoRunScheduler(self._run)

        self._runs_in_flight = 0
        self._repairs_in_flight = 0
        self._run_generation = 0
        self._repair_generation = 0

        logger.info(
            "Orchestrator initialized",
            service=self.config.service.base_url,
            stale_responses=self.config.session.stale_responses,
            auto_run=self.config.timing.auto_run_enabled,
        )

    # Observers

    @property
    def session(self) -> Session:
        return self._session

    @property
    def outcome(self) -> ExecutionOutcome:
        return self._outcome

    @property
    def display_output(self) -> str:
        """Text currently shown in the output area (ticker message or result)."""
        return self._display_output

    @property
    def patch_set(self) -> Tuple[Patch, ...]:
        return self._history.patch_set

    @property
    def repair_session(self) -> Optional[RepairSession]:
        return self._history.repair_session

    @property
    def notifications(self) -> Tuple[Notification, ...]:
        return tuple(self._notifications)

    @property
    def is_busy(self) -> bool:
        """True while any Run or Repair call is in flight."""
        return self._runs_in_flight + self._repairs_in_flight > 0

    @property
    def is_repairing(self) -> bool:
        return self._repairs_in_flight > 0

    @property
    def ticker_state(self) -> Optional[TickerState]:
        if self._ticker is None:
            return None
        return self._ticker.state

    @property
    def auto_run_pending(self) -> bool:
        return self._auto_run.pending

    @property
    def discards_stale(self) -> bool:
        return self.config.session.stale_responses == "discard"

    # Editing

    def edit_code(self, text: Optional[str]) -> None:
        """Record a user edit. Repaired code on screen does not count as authored."""
        value = text or ""
        self._session.current_code = value
        if not self._session.is_showing_repaired_code:
            self._session.original_code = value

    def load_code(self, text: str, name: str = "") -> None:
        """Replace the code with loaded file content; it becomes the authored code."""
        self._session.current_code = text
        self._session.original_code = text
        self._notify("File uploaded", name or "Code loaded")
        logger.info("Code loaded", name=name, length=len(text))

    # Actions

    async def trigger_run(self, code: Optional[str] = None) -> ExecutionOutcome:
        """
        User-initiated Run. Cancels any pending auto-run first.

        Args:
            code: Code to run (defaults to the session's current code)
        """
        if self._auto_run.cancel():
            logger.info("Pending auto-run superseded by run")
        if code is None:
            code = self._session.current_code
        return await self._run(code)

    async def trigger_repair(
        self,
        code: str,
        instructions: str,
        persona: "Persona | str | None" = None,
    ) -> RepairAttempt:
        """
        Ask the service to repair `code` following `instructions`.

        Never raises for service problems; the result says what happened.
        The session keeps its code until a reply is applied.

        Raises:
            KeyError: If persona names no known persona
        """
        if not instructions or not instructions.strip():
            notification = self._notify(
                "Missing Instructions",
                "Enter a prompt before repairing.",
                NotificationLevel.ERROR,
            )
            logger.warning("Repair rejected: empty instructions")
            return RepairAttempt(
                accepted=False,
                failure=FailureKind.VALIDATION,
                notification=notification,
            )

        persona = Persona.parse(persona) if persona else self.config.session.default_persona

        if self._auto_run.cancel():
            logger.info("Pending auto-run superseded by repair")

        self._repair_generation += 1
        generation = self._repair_generation
        budget = iteration_budget(code)

        if self._ticker is not None:
            self._ticker.stop()
        ticker = ProgressTicker(
            on_message=self._show_output,
            interval_seconds=self.config.timing.ticker_interval_seconds,
        )
        self._ticker = ticker

        logger.info(
            "Repair started",
            persona=persona.value,
            budget=budget,
            generation=generation,
            code_length=len(code),
        )

        self._repairs_in_flight += 1
        start = time.monotonic()
        try:
            # Leaving the block stops this call's ticker before any state change
            with ticker.running_for(persona):
                response = await self.client.repair(code, instructions, budget)
        except TransportError as e:
            logger.error("Repair failed", error=str(e), generation=generation)
            notification = self._notify(
                "Repair Failed",
                "Unable to repair your code.",
                NotificationLevel.ERROR,
            )
            return RepairAttempt(
                accepted=True,
                failure=FailureKind.TRANSPORT,
                notification=notification,
            )
        finally:
            self._repairs_in_flight -= 1
            if self._ticker is ticker:
                self._ticker = None

        latency_ms = _elapsed_ms(start)
        repair = RepairSession(
            budget=budget,
            final_code=response.final_code,
            patch_set=response.changes,
            pre_repair_code=code,
        )

        if self.discards_stale and generation != self._repair_generation:
            logger.warning(
                "Discarding stale repair response",
                generation=generation,
                current=self._repair_generation,
            )
            return RepairAttempt(accepted=True, repair_session=repair, stale=True)

        return self._apply_repair(repair, response, latency_ms)

    def revert(self) -> bool:
        """
        Restore the code the user authored before the last repair.

        Returns:
            False if there was no repair to revert (nothing changes)
        """
        if not self._history.has_repair:
            logger.debug("Revert ignored: no repair applied")
            return False

        self._auto_run.cancel()
        if self._ticker is not None:
            self._ticker.stop()
        if self.discards_stale:
            # An in-flight repair must not overwrite the restored code
            self._repair_generation += 1

        self._history.revert()
        self._notify("Reverted", "Restored your last edited code.")
        return True

    def clear_output(self) -> None:
        self._outcome = ExecutionOutcome.idle()
        self._show_output("")

    async def wait_for_auto_run(self) -> None:
        """Wait until the pending auto-run (if any) has fired and finished."""
        await self._auto_run.wait()

    async def shutdown(self) -> None:
        """Stop timers and release the service client."""
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
        self._auto_run.cancel()
        if self._owns_client:
            await self.client.aclose()
        logger.info("Orchestrator shut down")

    async def __aenter__(self) -> "SessionOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    # Internals

    async def _run(self, code: str) -> ExecutionOutcome:
        self._run_generation += 1
        generation = self._run_generation

        logger.info("Run started", generation=generation, code_length=len(code))

        self._runs_in_flight += 1
        start = time.monotonic()
        try:
            response = await self.client.run(code)
        except TransportError as e:
            logger.error("Run failed", error=str(e), generation=generation)
            outcome = ExecutionOutcome(
                output=RUN_FAILURE_MESSAGE,
                status=ExecutionStatus.ERROR,
                error_kind=ErrorKind.TRANSPORT,
            )
        else:
            succeeded = response.succeeded
            outcome = ExecutionOutcome(
                output=response.combined_output,
                status=ExecutionStatus.SUCCESS if succeeded else ExecutionStatus.ERROR,
                error_kind=ErrorKind.NONE if succeeded else ErrorKind.parse(response.error_type),
                stdout=response.stdout,
                stderr=response.stderr,
                latency_ms=_elapsed_ms(start),
            )
            logger.info(
                "Run completed",
                status=outcome.status.value,
                latency_ms=outcome.latency_ms,
                generation=generation,
            )
        finally:
            self._runs_in_flight -= 1

        if self.discards_stale and generation != self._run_generation:
            logger.warning(
                "Discarding stale run response",
                generation=generation,
                current=self._run_generation,
            )
            return outcome

        self._set_outcome(outcome)
        return outcome

    def _apply_repair(
        self,
        repair: RepairSession,
        response: RepairResponse,
        latency_ms: int,
    ) -> RepairAttempt:
        if not self._session.is_showing_repaired_code:
            self._session.original_code = repair.pre_repair_code
        self._history.apply(repair)

        succeeded = response.succeeded
        self._set_outcome(ExecutionOutcome(
            output=response.last_stdout,
            status=ExecutionStatus.SUCCESS if succeeded else ExecutionStatus.ERROR,
            error_kind=ErrorKind.NONE if succeeded else ErrorKind.UNKNOWN,
            stdout=response.last_stdout,
            latency_ms=latency_ms,
        ))

        notification = self._notify("Repair Completed", f"Iterations: {repair.budget}")

        logger.info(
            "Repair completed",
            final_status=response.final_status or None,
            patches=repair.patch_count,
            latency_ms=latency_ms,
        )

        if self.config.timing.auto_run_enabled:
            self._auto_run.schedule(
                repair.final_code,
                self.config.timing.auto_run_delay_seconds,
            )

        return RepairAttempt(
            accepted=True,
            failure=None if succeeded else FailureKind.SERVICE_REPORTED,
            repair_session=repair,
            notification=notification,
        )

    def _set_outcome(self, outcome: ExecutionOutcome) -> None:
        self._outcome = outcome
        self._show_output(outcome.output)

    def _show_output(self, text: str) -> None:
        self._display_output = text
        if self._on_output:
            try:
                self._on_output(text)
            except Exception as e:
                logger.error("Output callback failed", error=str(e))

    def _notify(
        self,
        title: str,
        description: str,
        level: NotificationLevel = NotificationLevel.INFO,
    ) -> Notification:
        notification = Notification(title=title, description=description, level=level)
        self._notifications.append(notification)
        if self._on_notify:
            try:
                self._on_notify(notification)
            except Exception as e:
                logger.error("Notification callback failed", error=str(e))
        return notification
