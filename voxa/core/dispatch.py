"""
Dispatch engine.

Runs each accepted call through its own state machine:

    Queued -> Started -> {Completed | Failed}

- Unknown tool: Queued -> Failed (tool_not_found), never raised
- On Started: arguments are validated, then a window selector is resolved
  against the WindowRegistry. "all" fans out into one independent branch per
  window, each with its own Started/Completed|Failed transitions.
- Handler exceptions and error dicts become Failed results for that call only
- Intents returned by a handler are published on the outbound channel and
  awaited before the call completes
- Calls in a batch run strictly one after another, in order
- Successful calls are appended to the conversation's action history;
  failed calls are not, so they can be retried later
"""
import uuid
from typing import Any, Dict, List, Optional

from voxa.core.conversation import ConversationState
from voxa.core.errors import ExecutionError, SelectorResolutionError, UnknownToolError, ValidationError
from voxa.core.intent_plan import ActionRecord, ExecutionResult, ToolCallCandidate
from voxa.core.logger import get_logger
from voxa.core.outbound import OutboundChannel
from voxa.core.reference_resolver import TARGET_KEY, bind_target, is_fan_out, resolve_selector
from voxa.core.state import TaskLifecycle, TaskState
from voxa.tools.registry import ToolRegistry
from voxa.tools.tool_base import ToolBase, intents_of
from voxa.tools.validation import validate_args
from voxa.world.window_registry import WindowRegistry


def _new_task_id() -> str:
    return uuid.uuid4().hex[:12]


class DispatchEngine:
    """Executes merged candidates against the tool registry"""

    def __init__(self, tools: ToolRegistry, windows: WindowRegistry, channel: OutboundChannel):
        self.tools = tools
        self.windows = windows
        self.channel = channel
        self.logger = get_logger()

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def dispatch_batch(
        self,
        candidates: List[ToolCallCandidate],
        conversation: Optional[ConversationState] = None,
    ) -> List[ExecutionResult]:
        """Dispatch calls in order, each awaited before the next starts"""
        results: List[ExecutionResult] = []
        total = len(candidates)
        for i, candidate in enumerate(candidates, 1):
            self.logger.info(f"[DISPATCH] [{i}/{total}] {candidate.tool} {candidate.parameters}")
            results.extend(await self.dispatch(candidate, conversation))
        return results

    async def dispatch(
        self,
        candidate: ToolCallCandidate,
        conversation: Optional[ConversationState] = None,
    ) -> List[ExecutionResult]:
        """
        Dispatch one call.

        Returns:
            One ExecutionResult, or one per window for an "all" fan-out
        """
        life = TaskLifecycle(task_id=_new_task_id(), tool=candidate.tool)
        params = dict(candidate.parameters or {})

        tool = self.tools.get(candidate.tool)
        if tool is None:
            err = UnknownToolError(candidate.tool)
            return [await self._fail(life, params, err.error_type, str(err))]

        life.transition_to(TaskState.STARTED)
        await self._publish_lifecycle("task_started", life, params)

        is_valid, error = validate_args(tool.args_schema, params)
        if not is_valid:
            err = ValidationError(error["message"])
            return [await self._fail(life, params, err.error_type, str(err))]

        selector = None
        if tool.targets_window and not params.get(TARGET_KEY):
            selector = params.get("selector") or tool.default_selector

        if selector:
            try:
                target_ids = resolve_selector(self.windows, selector)
            except SelectorResolutionError as e:
                return [await self._fail(life, params, e.error_type, str(e))]

            if is_fan_out(selector) and tool.allows_fan_out:
                results = await self._fan_out(life, tool, params, target_ids)
                if any(r.success for r in results):
                    self._remember(candidate, conversation)
                return results

            params = bind_target(params, target_ids[0])
            life.entity_id = target_ids[0]

        result = await self._execute(life, tool, params)
        if result.success:
            self._remember(candidate, conversation)
        return [result]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _fan_out(
        self,
        parent: TaskLifecycle,
        tool: ToolBase,
        params: Dict[str, Any],
        target_ids: List[str],
    ) -> List[ExecutionResult]:
        """One independent branch per target; a failed branch does not stop the rest"""
        self.logger.info(f"[DISPATCH] {tool.name} fan-out over {len(target_ids)} window(s)")
        results = []
        for n, window_id in enumerate(target_ids, 1):
            branch = TaskLifecycle(
                task_id=f"{parent.task_id}.{n}",
                tool=tool.name,
                entity_id=window_id,
            )
            branch.transition_to(TaskState.STARTED)
            branch_params = bind_target(params, window_id)
            await self._publish_lifecycle("task_started", branch, branch_params)
            results.append(await self._execute(branch, tool, branch_params))

        succeeded = sum(1 for r in results if r.success)
        if succeeded:
            parent.transition_to(TaskState.COMPLETED)
            await self._publish_lifecycle(
                "task_completed", parent, params,
                extra={"branches": len(results), "succeeded": succeeded},
            )
        else:
            parent.transition_to(TaskState.FAILED)
            await self._publish_lifecycle(
                "task_failed", parent, params,
                extra={"branches": len(results), "succeeded": 0, "error": "All fan-out branches failed"},
            )
        return results

    async def _execute(self, life: TaskLifecycle, tool: ToolBase, params: Dict[str, Any]) -> ExecutionResult:
        """Run a started task's handler and publish its intents"""
        try:
            outcome = tool.run(**params)
        except Exception as e:
            err = ExecutionError(f"{tool.name} failed: {e}")
            self.logger.error(f"[DISPATCH] {life.task_id} {err}")
            return await self._fail(life, params, err.error_type, str(err))

        if not isinstance(outcome, dict):
            return await self._fail(
                life, params, ExecutionError.error_type,
                f"{tool.name} returned {type(outcome).__name__}, expected dict",
            )

        if "error" in outcome:
            error = outcome["error"] if isinstance(outcome["error"], dict) else {"message": str(outcome["error"])}
            return await self._fail(
                life, params,
                error.get("type", ExecutionError.error_type),
                error.get("message", "Unknown error"),
            )

        try:
            for intent in intents_of(outcome):
                await self.channel.publish(intent["type"], intent.get("data"))
        except Exception as e:
            err = ExecutionError(f"Could not deliver {tool.name} intent: {e}")
            return await self._fail(life, params, err.error_type, str(err))

        life.transition_to(TaskState.COMPLETED)
        await self._publish_lifecycle("task_completed", life, params)
        self.logger.debug(f"[DISPATCH] {life.task_id} {tool.name} completed in {life.get_duration_ms()}ms")

        return ExecutionResult(
            task_id=life.task_id,
            success=True,
            result={k: v for k, v in outcome.items() if k != "intents"},
            tool=tool.name,
        )

    async def _fail(
        self,
        life: TaskLifecycle,
        params: Dict[str, Any],
        error_type: str,
        message: str,
    ) -> ExecutionResult:
        life.transition_to(TaskState.FAILED)
        self.logger.warning(f"[DISPATCH] {life.task_id} {life.tool} failed ({error_type}): {message}")
        await self._publish_lifecycle("task_failed", life, params, extra={"error": message, "errorType": error_type})
        return ExecutionResult(
            task_id=life.task_id,
            success=False,
            error=message,
            tool=life.tool,
            error_type=error_type,
        )

    async def _publish_lifecycle(
        self,
        msg_type: str,
        life: TaskLifecycle,
        params: Dict[str, Any],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        data: Dict[str, Any] = {
            "taskId": life.task_id,
            "tool": life.tool,
            "parameters": params,
            "state": life.current_state.value,
        }
        if life.entity_id:
            data["entityId"] = life.entity_id
        if life.is_terminal():
            data["durationMs"] = life.get_duration_ms()
        if extra:
            data.update(extra)
        await self.channel.publish(msg_type, data)

    @staticmethod
    def _remember(candidate: ToolCallCandidate, conversation: Optional[ConversationState]) -> None:
        if conversation is not None:
            conversation.append_action(ActionRecord.from_candidate(candidate))
