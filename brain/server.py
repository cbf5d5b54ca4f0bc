"""
Second Brain MCP Server

Exposes the orchestration core as MCP tools over stdio.

Expected MCP Tool Return Format:
{
    "ok": bool,
    ...                     # tool-specific keys if ok is True
    "error": str            # present if ok is False
}
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Annotated, Any, Dict, List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field, ValidationError

from .agents import MockConnectorAgent
from .common.config import BrainConfig, ensure_directories, load_config
from .common.embedding_service import EmbeddingService
from .common.llm_client import LLMClient
from .common.schemas import Task, TaskQuadrant
from .common.store import BrainStore
from .memory import ContextBuilder, ContextManager, SimilarityIndex
from .orchestrator import Dispatcher, Domain, PolicyValidator
from .priority import PriorityEngine, TimeWindow

logger = logging.getLogger("brain.server")

_QUADRANT_ORDER = {q: i for i, q in enumerate(TaskQuadrant)}


class BrainServerApp:
    """
    Main application class for the MCP server.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        store: BrainStore,
        index: Optional[SimilarityIndex] = None,
        engine: Optional[PriorityEngine] = None,
        validator: Optional[PolicyValidator] = None,
        llm: Optional[LLMClient] = None,
        mcp_server_name: str = "second_brain",
    ) -> None:
        """
        Args:
            dispatcher: Request dispatcher with registered handlers
            store: Task and preference store
            index: Memory index; remember/recall report an error without it
            engine: Priority engine
            validator: Policy validator (default: the dispatcher's)
            llm: Generation capability for history handover notes
            mcp_server_name: Advertised MCP server name
        """
        self.dispatcher = dispatcher
        self.store = store
        self.index = index
        self.engine = engine or PriorityEngine()
        self.validator = validator or dispatcher.validator
        self.context_builder = ContextBuilder(store, index=index, engine=self.engine)
        self.context_manager = ContextManager(llm) if llm is not None else None
        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Process Request ---------- #
        @self.mcp.tool(
            name="process_request",
            description=(
                "Route a free-text request to the relevant sources (mail, calendar, "
                "to-do, CRM) and return one synthesized response with a trace summary."
            ),
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_process_request(
            message: Annotated[str, Field(description="user request text")],
        ) -> Dict[str, Any]:
            if not message.strip():
                return {"ok": False, "error": "message is empty"}
            response = await self.dispatcher.process_request({"message": message})
            return {"ok": True, "response": response}

        # ---------- MCP Tools: Prioritized Tasks ---------- #
        @self.mcp.tool(
            name="prioritized_tasks",
            description="List open tasks in the time window, most actionable first.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_prioritized_tasks(
            window: Annotated[str, Field(description="all, today, week or month")] = "today",
        ) -> Dict[str, Any]:
            try:
                tw = TimeWindow(window)
            except ValueError:
                return {"ok": False, "error": f"Unknown window: {window}"}
            self.store.refresh_urgency()
            scored = self.engine.filter_by_window(self.engine.score_tasks(self.store.list_tasks()), tw)
            scored = [t for t in scored if t.is_open]
            scored.sort(key=lambda t: (_QUADRANT_ORDER[t.quadrant], -t.calculated_urgency, -t.calculated_importance))
            return {"ok": True, "window": tw.value, "tasks": [t.to_dict() for t in scored]}

        # ---------- MCP Tools: Eisenhower Matrix ---------- #
        @self.mcp.tool(
            name="eisenhower_matrix",
            description="Group open tasks into the four Eisenhower quadrants.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_eisenhower_matrix(
            window: Annotated[str, Field(description="all, today, week or month")] = "all",
        ) -> Dict[str, Any]:
            try:
                tw = TimeWindow(window)
            except ValueError:
                return {"ok": False, "error": f"Unknown window: {window}"}
            self.store.refresh_urgency()
            matrix = self.engine.eisenhower_matrix(self.store.list_tasks(), tw)
            return {
                "ok": True,
                "window": tw.value,
                "matrix": {q.value: [t.to_dict() for t in tasks] for q, tasks in matrix.items()},
            }

        # ---------- MCP Tools: Store Task ---------- #
        @self.mcp.tool(
            name="store_task",
            description="Capture a new task or appointment in the brain store.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_store_task(
            task: Annotated[Dict[str, Any], Field(description="task fields; 'title' is required")],
        ) -> Dict[str, Any]:
            if not str(task.get("title") or "").strip():
                return {"ok": False, "error": "task title is empty"}
            try:
                Task.model_validate(task)
            except ValidationError as e:
                return {"ok": False, "error": f"Invalid task: {e.errors()[0]['msg']}"}
            entry = await asyncio.to_thread(self.store.store_task, task)
            return {"ok": True, "task": entry}

        # ---------- MCP Tools: Update Task ---------- #
        @self.mcp.tool(
            name="update_task",
            description="Merge field updates into a stored task.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_update_task(
            task_id: Annotated[str, Field(description="id of the task")],
            updates: Annotated[Dict[str, Any], Field(description="fields to overwrite, e.g. status")],
        ) -> Dict[str, Any]:
            if not self.store.update_task(task_id, updates):
                return {"ok": False, "error": f"Task not found: {task_id}"}
            return {"ok": True, "task_id": task_id}

        # ---------- MCP Tools: Delete Task ---------- #
        @self.mcp.tool(
            name="delete_task",
            description="Remove a task from the brain store.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True)
        )
        async def tool_delete_task(
            task_id: Annotated[str, Field(description="id of the task")],
        ) -> Dict[str, Any]:
            if not self.store.delete_task(task_id):
                return {"ok": False, "error": f"Task not found: {task_id}"}
            return {"ok": True, "task_id": task_id}

        # ---------- MCP Tools: Brain Context ---------- #
        @self.mcp.tool(
            name="brain_context",
            description=(
                "Assemble chat context for a message: related memories, "
                "today's prioritized tasks and learned preferences."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_brain_context(
            message: Annotated[str, Field(description="user message the reply is for")],
        ) -> Dict[str, Any]:
            self.store.refresh_urgency()
            context = await asyncio.to_thread(self.context_builder.build, message)
            return {
                "ok": True,
                "context": context.render(),
                "memories": len(context.memories),
                "tasks": [t.id for t in context.tasks],
            }

        # ---------- MCP Tools: Compact History ---------- #
        @self.mcp.tool(
            name="compact_history",
            description=(
                "Return the chat history unchanged, or a single handover note "
                "when it no longer fits the context window."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_compact_history(
            history: Annotated[List[Dict[str, Any]], Field(description="chat messages with role and content")],
        ) -> Dict[str, Any]:
            if self.context_manager is None:
                return {"ok": False, "error": "Handover notes need an LLM provider"}
            managed = await self.context_manager.manage(history)
            return {"ok": True, "compacted": managed is not history, "history": managed}

        # ---------- MCP Tools: Remember ---------- #
        @self.mcp.tool(
            name="remember",
            description="Store a note in conversational memory.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_remember(
            text: Annotated[str, Field(description="text to remember")],
            metadata: Annotated[Optional[Dict[str, Any]], Field(description="optional metadata")] = None,
        ) -> Dict[str, Any]:
            if self.index is None:
                return {"ok": False, "error": "Memory index is not available (no embedding backend)"}
            if not text.strip():
                return {"ok": False, "error": "text is empty"}
            try:
                record = await asyncio.to_thread(self.index.index, text, metadata)
            except Exception as e:
                logger.warning("remember failed: %s", e)
                return {"ok": False, "error": str(e)}
            return {"ok": True, "timestamp": record.timestamp, "total": len(self.index)}

        # ---------- MCP Tools: Recall ---------- #
        @self.mcp.tool(
            name="recall",
            description="Find the remembered notes most similar to a query.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_recall(
            query: Annotated[str, Field(description="natural language query")],
            limit: Annotated[int, Field(description="number of results")] = 3,
        ) -> Dict[str, Any]:
            if self.index is None:
                return {"ok": False, "error": "Memory index is not available (no embedding backend)"}
            try:
                hits = await asyncio.to_thread(self.index.search, query, limit)
            except Exception as e:
                logger.warning("recall failed: %s", e)
                return {"ok": False, "error": str(e)}
            return {"ok": True, "results": [h.to_dict() for h in hits]}

        # ---------- MCP Tools: Check Policy ---------- #
        @self.mcp.tool(
            name="check_policy",
            description="Check a proposed action (type plus fields) against standing policies.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_check_policy(
            action: Annotated[Dict[str, Any], Field(description="action with a 'type' key, e.g. schedule_meeting")],
        ) -> Dict[str, Any]:
            return {"ok": True, **self.validator.validate(action).to_dict()}

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def build_app(config: BrainConfig, mock_agents: bool = False, server_name: str = "second_brain") -> BrainServerApp:
    """Wire capabilities, storage and dispatcher from configuration."""
    ensure_directories(config)

    llm = LLMClient.from_config(config.llm)
    if not llm.is_available:
        logger.warning("LLM provider %s unavailable; summaries use fallback text", config.llm.provider)

    embedder = EmbeddingService.from_config(config)
    index = SimilarityIndex(config.storage.memory_path, embedder) if embedder.is_available else None
    store = BrainStore(config.storage.brain_path, index=index)

    dispatcher = Dispatcher.from_config(config, llm=llm)
    if mock_agents:
        for domain in Domain:
            dispatcher.register_agent(domain, MockConnectorAgent(domain.value))

    return BrainServerApp(dispatcher=dispatcher, store=store, index=index, llm=llm, mcp_server_name=server_name)


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the Second Brain MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default="second_brain",
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--mock-agents",
        action="store_true",
        help="Register offline mock connectors for all domains.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level.",
    )
    args = parser.parse_args()

    # stdout carries the MCP protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=args.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    app = build_app(load_config(), mock_agents=args.mock_agents, server_name=args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
