"""LangGraph-driven assistant session: model query -> tool application."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from storyloom.editing import DispatchResult, MutationDispatcher
from storyloom.errors import ExternalCollaboratorError, InvalidOperationError, NotFoundError, StoryloomError
from storyloom.generation import ASSISTANT_SYSTEM_PROMPT, GREETING_TEMPLATE, format_project_context
from storyloom.models import QueryResult, ToolCall
from storyloom.schema import (
    CharacterSelection,
    NoteSelection,
    Project,
    SectionSelection,
    Selection,
    TaskListSelection,
)
from storyloom.storage import ProjectRepository
from storyloom.tools import TOOL_DEFINITIONS

logger = logging.getLogger(__name__)


class AssistantTurnState(TypedDict, total=False):
    """一次对话轮次的状态。"""

    generation: int
    history: List[Dict[str, Any]]
    context: str
    query_result: QueryResult
    tool_calls: List[ToolCall]
    tool_results: List[DispatchResult]
    discarded: bool


@dataclass
class TurnResult:
    """一次对话轮次的结果。"""
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[DispatchResult] = field(default_factory=list)
    discarded: bool = False

    @property
    def actions_summary(self) -> str:
        parts = []
        for call, result in zip(self.tool_calls, self.tool_results):
            if result.success:
                parts.append(f"✅ {call.name}: {result.summary}")
            else:
                parts.append(f"❌ {call.name}: {result.message}")
        return "\n".join(parts)


class AssistantSession:
    """写作助手会话（query -> apply_tools）。

    同一时间只处理一个轮次；``abandon()`` 之后，正在进行的轮次结果会被丢弃，
    既不写入历史也不修改项目。
    """

    def __init__(
        self,
        project: Project,
        *,
        model: Any = None,
        dispatcher: Optional[MutationDispatcher] = None,
        system_prompt: str = ASSISTANT_SYSTEM_PROMPT,
    ):
        self.project = project
        self._model = model
        self.dispatcher = dispatcher or MutationDispatcher(project)
        self.system_prompt = system_prompt
        self.history: List[Dict[str, Any]] = []
        self.selection: Optional[Selection] = None
        self.save_error: Optional[ExternalCollaboratorError] = None
        self._generation = 0
        self._busy = False
        self._lock = threading.Lock()
        self._graph = self._build_graph()

    # ------------------------------------------------------------------ 状态

    @property
    def model(self) -> Any:
        """未显式传入时，首次对话才按配置创建模型客户端。"""
        if self._model is None:
            from storyloom.models import get_client

            self._model = get_client()
        return self._model

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def generation(self) -> int:
        return self._generation

    def greeting(self) -> str:
        return GREETING_TEMPLATE.format(title=self.project.title)

    def select(self, selection: Optional[Selection]) -> None:
        self.selection = selection

    def abandon(self) -> None:
        """放弃进行中的轮次（切换项目、用户取消）。"""
        with self._lock:
            self._generation += 1
            self._busy = False
        logger.info("已放弃进行中的对话轮次 (generation=%d)", self._generation)

    def reset(self) -> None:
        self.abandon()
        self.history = []
        self.selection = None

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _raise_save_error(self) -> None:
        """变更已留在内存中，但自动保存失败时交给调用方处理。"""
        error, self.save_error = self.save_error, None
        if error is not None:
            raise error

    def refresh_selection(self) -> Optional[Selection]:
        """按 ID 重新解析选中条目（变更或回滚后对象可能已被替换）。"""
        selection = self.selection
        if selection is None:
            return None
        refreshed: Optional[Selection] = None
        if isinstance(selection, CharacterSelection):
            character = self.dispatcher.roster.find_by_id(selection.character.id)
            refreshed = CharacterSelection(character) if character else None
        elif isinstance(selection, SectionSelection):
            section = self.dispatcher.tree.find_by_id(selection.section.id)
            refreshed = SectionSelection(section) if section else None
        elif isinstance(selection, NoteSelection):
            try:
                refreshed = NoteSelection(self.dispatcher.notebook.get_note(selection.note.id))
            except NotFoundError:
                refreshed = None
        elif isinstance(selection, TaskListSelection):
            try:
                refreshed = TaskListSelection(self.dispatcher.notebook.get_task_list(selection.task_list.id))
            except NotFoundError:
                refreshed = None
        else:
            raise TypeError(f"未知的选中类型: {type(selection).__name__}")
        self.selection = refreshed
        return refreshed

    def select_by_id(self, entity_id: str) -> Selection:
        """按 ID 选中角色、大纲节点、笔记或待办清单。"""
        character = self.dispatcher.roster.find_by_id(entity_id)
        if character is not None:
            selection: Selection = CharacterSelection(character)
        else:
            section = self.dispatcher.tree.find_by_id(entity_id)
            if section is not None:
                selection = SectionSelection(section)
            else:
                note = next((item for item in self.project.notes if item.id == entity_id), None)
                task_list = next((item for item in self.project.task_lists if item.id == entity_id), None)
                if note is not None:
                    selection = NoteSelection(note)
                elif task_list is not None:
                    selection = TaskListSelection(task_list)
                else:
                    raise NotFoundError(f"找不到 ID 为 {entity_id} 的条目")
        self.selection = selection
        return selection

    def apply(self, intent: Any) -> DispatchResult:
        """用户直接发起的变更。"""
        self.save_error = None
        result = self.dispatcher.apply(intent)
        self.refresh_selection()
        self._raise_save_error()
        return result

    # ------------------------------------------------------------------ 图

    def _build_graph(self):
        graph = StateGraph(AssistantTurnState)
        graph.add_node("query", self._node_query)
        graph.add_node("apply_tools", self._node_apply_tools)
        graph.add_edge(START, "query")
        graph.add_conditional_edges(
            "query",
            self._route_after_query,
            {
                "apply": "apply_tools",
                "done": END,
            },
        )
        graph.add_edge("apply_tools", END)
        return graph.compile()

    def _node_query(self, state: AssistantTurnState) -> AssistantTurnState:
        result = self.model.query(
            state["history"],
            state["context"],
            tools=TOOL_DEFINITIONS,
            system_prompt=self.system_prompt,
        )
        if not self._is_current(state["generation"]):
            return {"query_result": result, "discarded": True}
        return {"query_result": result, "tool_calls": list(result.tool_calls), "discarded": False}

    def _route_after_query(self, state: AssistantTurnState) -> str:
        if state.get("discarded") or not state.get("tool_calls"):
            return "done"
        return "apply"

    def _node_apply_tools(self, state: AssistantTurnState) -> AssistantTurnState:
        results: List[DispatchResult] = []
        for call in state.get("tool_calls", []):
            if not self._is_current(state["generation"]):
                return {"tool_results": results, "discarded": True}
            results.append(self.dispatcher.apply_tool_call(call))
        return {"tool_results": results}

    # ------------------------------------------------------------------ 轮次

    def send(self, text: str) -> TurnResult:
        """发送一条用户消息并执行一个完整轮次。"""
        if not (text or "").strip():
            raise InvalidOperationError("消息不能为空")
        with self._lock:
            if self._busy:
                raise InvalidOperationError("助手正在处理上一条消息，请稍候")
            self._busy = True
            generation = self._generation

        try:
            self.save_error = None
            self.refresh_selection()
            user_message = {"role": "user", "content": text}
            state: AssistantTurnState = {
                "generation": generation,
                "history": self.history + [user_message],
                "context": format_project_context(self.project, self.selection),
            }
            final = self._graph.invoke(state)
            if final.get("discarded") or not self._is_current(generation):
                logger.info("丢弃过期的对话结果 (generation=%d)", generation)
                return TurnResult(discarded=True)
            turn = self._commit(user_message, final)
            self._raise_save_error()
            return turn
        finally:
            with self._lock:
                if self._is_current(generation):
                    self._busy = False

    async def send_async(self, text: str) -> TurnResult:
        return await asyncio.to_thread(self.send, text)

    def _commit(self, user_message: Dict[str, Any], final: AssistantTurnState) -> TurnResult:
        query_result = final["query_result"]
        tool_calls = final.get("tool_calls", [])
        tool_results = final.get("tool_results", [])

        self.history.append(user_message)
        if tool_calls:
            self.history.append(
                {
                    "role": "assistant",
                    "content": query_result.text,
                    "tool_calls": [call.to_message_dict() for call in tool_calls],
                }
            )
            for call, result in zip(tool_calls, tool_results):
                self.history.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(result.to_dict(), ensure_ascii=False),
                    }
                )
            self.refresh_selection()
        elif query_result.text:
            self.history.append({"role": "assistant", "content": query_result.text})

        return TurnResult(text=query_result.text, tool_calls=list(tool_calls), tool_results=list(tool_results))


def attach_autosave(session: AssistantSession, repository: ProjectRepository) -> None:
    """每次成功变更后把项目写回存储。

    保存失败时记录在 ``session.save_error``，由 ``send``/``apply`` 以 ExternalCollaboratorError 抛给调用方。
    """

    def _save(intent: Any, result: DispatchResult) -> None:
        try:
            repository.save_project(session.project)
        except (StoryloomError, OSError, ValueError) as exc:
            logger.error("自动保存项目 %s 失败 (%s): %s", session.project.id, intent.kind, exc)
            error = ExternalCollaboratorError(f"项目保存失败，修改仅保留在内存中: {exc}")
            error.__cause__ = exc
            session.save_error = error
            return
        session.save_error = None
        logger.debug("已自动保存项目 %s (%s)", session.project.id, intent.kind)

    session.dispatcher.subscribe(_save)
