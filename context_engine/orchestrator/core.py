"""
Orchestrator core -- the conversation loop that ties everything together.

The engine:
1. Appends the user's prompt to the message history
2. Streams a model turn through the LLM router
3. Rebuilds text and tool calls with a StreamReassembler
4. Dispatches tool calls through the ToolCallRouter and appends one tool
   message per call, in call order
5. Loops until a turn has no tool calls or a tool asks the loop to stop
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from context_engine.llm.reassembler import StreamReassembler
from context_engine.llm.router import LLMRouter
from context_engine.llm.types import Message, TurnResult
from context_engine.orchestrator.dispatch import ToolCallRouter
from context_engine.tools.base import ToolContext

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    STREAMING = "streaming"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


class ConversationEngine:
    """
    Main conversation loop.

    Parameters
    ----------
    router : LLMRouter
        Provider router used for every model turn.
    dispatcher : ToolCallRouter
        Executes the tool calls of a turn.
    system_prompt : str
        System prompt sent with every request.
    tools : list[dict]
        Tool declarations (OpenAI function schema) offered to the model.
    context : ToolContext
        Handed to every tool handler.
    max_turns : int
        Model turns allowed per ``run`` before the loop is forced to end.
    buffer_content : bool
        Hold a turn's text until its tools have run.  A tool that stops the
        loop then suppresses the text of its own turn.
    on_chunk : callable
        Display callback receiving text chunks.
    on_flush : callable
        Called once after a turn's text has been released.
    history : list[Message]
        Initial messages, e.g. to resume a conversation.
    """

    def __init__(
        self,
        router: LLMRouter,
        dispatcher: ToolCallRouter,
        *,
        system_prompt: str = "",
        tools: list[dict] | None = None,
        context: ToolContext | None = None,
        max_turns: int = 50,
        buffer_content: bool = True,
        on_chunk: Callable[[str], None] | None = None,
        on_flush: Callable[[], None] | None = None,
        history: list[Message] | None = None,
    ) -> None:
        self.router = router
        self.dispatcher = dispatcher
        self.system_prompt = system_prompt
        self.tools = list(tools or [])
        self.context = context or ToolContext()
        self.max_turns = max_turns
        self.buffer_content = buffer_content
        self.on_chunk = on_chunk
        self.on_flush = on_flush
        self.history: list[Message] = list(history or [])

        self.state = EngineState.IDLE
        self.done = False
        self.exit_requested = False
        self.turns = 0
        self._generation = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, prompt: str) -> str:
        """
        Process *prompt* through the full loop and return the displayed text.

        Raises ``TransportError`` if the model endpoint fails; tool failures
        never abort the loop.
        """
        self.done = False
        self.turns = 0
        self.history.append(Message.user(prompt))
        released: list[str] = []

        try:
            while not self.done:
                if self.turns >= self.max_turns:
                    logger.warning(
                        "Stopping after %d model turns without a final answer",
                        self.max_turns,
                    )
                    self.done = True
                    break
                self.turns += 1

                pending: list[str] = []
                turn = await self._stream_turn(pending)

                if not turn.has_tool_calls:
                    if turn.text:
                        self.history.append(Message.assistant(turn.text))
                    self._release(pending, turn.text, released)
                    self.done = True
                    break

                stop = await self._run_tools(turn)
                if stop:
                    if pending:
                        logger.debug(
                            "Suppressed %d buffered chunk(s) after stop", len(pending)
                        )
                    self.done = True
                    break

                self._release(pending, turn.text, released)
        except BaseException:
            self.done = True
            raise
        finally:
            self.state = EngineState.DONE

        return "".join(released)

    def reset(self, keep: int = 0) -> None:
        """Truncate history to its first *keep* messages."""
        del self.history[keep:]
        self._generation += 1

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _stream_turn(self, pending: list[str]) -> TurnResult:
        self.state = EngineState.AWAITING_RESPONSE

        if self.buffer_content:
            on_content = pending.append
        else:
            on_content = self._forward

        reassembler = StreamReassembler(on_content=on_content)
        async for event in self.router.stream(
            self.system_prompt, list(self.history), self.tools or None
        ):
            if self.state is EngineState.AWAITING_RESPONSE:
                self.state = EngineState.STREAMING
            reassembler.consume(event)

        return reassembler.finalize()

    async def _run_tools(self, turn: TurnResult) -> bool:
        """Run the turn's calls, append their results and report a stop signal."""
        self.history.append(Message.assistant(turn.text, turn.tool_calls))
        generation = self._generation

        self.state = EngineState.EXECUTING_TOOLS
        results = await self.dispatcher.dispatch(turn.tool_calls, self.context)

        # A tool may have cleared the conversation; its calls are gone with it.
        if generation == self._generation:
            for call, result in zip(turn.tool_calls, results):
                self.history.append(Message.tool(call.id, result.to_content()))

        if any(r.exit_process for r in results):
            self.exit_requested = True
        return any(r.stop_loop or r.exit_process for r in results)

    def _forward(self, text: str) -> None:
        if self.on_chunk is not None:
            self.on_chunk(text)

    def _release(self, pending: list[str], text: str, released: list[str]) -> None:
        for chunk in pending:
            self._forward(chunk)
        if text:
            released.append(text)
            if self.on_flush is not None:
                self.on_flush()
