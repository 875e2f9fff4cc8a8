"""
变更调度器

所有对项目的修改（用户操作或模型工具调用）都经由 ``MutationDispatcher.apply``：
一次只处理一个意图，失败时项目完整回滚，结果总是结构化的 ``DispatchResult``，
从不向调用方抛出异常。
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from storyloom.errors import InvalidOperationError, StoryloomError, UnsupportedOperationError
from storyloom.schema import Project

from . import intents as it
from .crossref import CrossReferenceIndex
from .ids import IdAllocator
from .notebook import Notebook
from .outline_tree import OutlineTree
from .roster import CharacterRoster

logger = logging.getLogger(__name__)


class DispatcherState(Enum):
    IDLE = "idle"
    APPLYING = "applying"


@dataclass
class DispatchResult:
    """调度结果"""
    success: bool
    summary: str = ""
    error_kind: Optional[str] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, summary: str, **data: Any) -> "DispatchResult":
        return cls(success=True, summary=summary, data=data)

    @classmethod
    def failed(cls, error: StoryloomError) -> "DispatchResult":
        return cls(success=False, error_kind=error.kind, message=str(error))

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            payload: Dict[str, Any] = {"success": True, "summary": self.summary}
            if self.data:
                payload["data"] = self.data
            return payload
        return {"success": False, "errorKind": self.error_kind, "message": self.message}


Subscriber = Callable[[Any, DispatchResult], None]


class MutationDispatcher:
    """项目变更的唯一入口。"""

    def __init__(self, project: Project, ids: Optional[IdAllocator] = None):
        self.project = project
        self.ids = ids or IdAllocator()
        self.tree = OutlineTree(project.outline, self.ids)
        self.index = CrossReferenceIndex(self.tree, project.characters)
        self.roster = CharacterRoster(project.characters, self.index, self.ids)
        self.notebook = Notebook(project.notes, project.task_lists, self.ids)
        self.state = DispatcherState.IDLE
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        self._handlers: Dict[type, Callable[[Any], DispatchResult]] = {
            it.AddSection: self._add_section,
            it.UpdateSection: self._update_section,
            it.DeleteSection: self._delete_section,
            it.MoveSection: self._move_section,
            it.SetSectionImage: self._set_section_image,
            it.AddCharacter: self._add_character,
            it.UpdateCharacter: self._update_character,
            it.DeleteCharacter: self._delete_character,
            it.AssociateCharacter: self._associate,
            it.DissociateCharacter: self._dissociate,
            it.ToggleCharacterAssociation: self._toggle,
            it.AddNote: self._add_note,
            it.UpdateNote: self._update_note,
            it.DeleteNote: self._delete_note,
            it.AddTaskList: self._add_task_list,
            it.DeleteTaskList: self._delete_task_list,
            it.AddTask: self._add_task,
            it.SetTaskCompleted: self._set_task_completed,
            it.DeleteTask: self._delete_task,
        }

    def subscribe(self, callback: Subscriber) -> None:
        """注册成功变更后的回调（自动保存、界面刷新）。"""
        self._subscribers.append(callback)

    @property
    def busy(self) -> bool:
        return self.state is DispatcherState.APPLYING

    def apply(self, intent: Any) -> DispatchResult:
        handler = self._handlers.get(type(intent))
        if handler is None:
            kind = getattr(intent, "kind", type(intent).__name__)
            logger.warning("拒绝不支持的意图: %s", kind)
            return DispatchResult.failed(UnsupportedOperationError(f"不支持的操作: {kind}"))

        # 会话线程可能在 abandon 之后仍在应用旧轮次的工具调用
        if not self._lock.acquire(blocking=False):
            return DispatchResult.failed(InvalidOperationError("上一个变更尚未完成，请稍后再试"))
        try:
            self.state = DispatcherState.APPLYING
            snapshot = self._snapshot()
            try:
                result = handler(intent)
            except StoryloomError as exc:
                self._restore(snapshot)
                result = DispatchResult.failed(exc)
            except Exception as exc:  # 参数可能来自外部模型，任何异常都不得越过调度器
                logger.exception("应用意图 %s 时出现意外错误", intent.kind)
                self._restore(snapshot)
                result = DispatchResult.failed(InvalidOperationError(f"无法应用 {intent.kind}: {exc}"))
            finally:
                self.state = DispatcherState.IDLE

            if result.success:
                logger.info("已应用 %s: %s", intent.kind, result.summary)
                self._notify(intent, result)
            else:
                logger.warning("%s 失败 (%s): %s", intent.kind, result.error_kind, result.message)
            return result
        finally:
            self._lock.release()

    def apply_tool_call(self, tool_call: Any) -> DispatchResult:
        """解析并应用一个模型提出的工具调用（不可信输入）。"""
        from storyloom.tools import parse_tool_call

        name = getattr(tool_call, "name", None)
        try:
            intent = parse_tool_call(name, getattr(tool_call, "arguments", None))
        except StoryloomError as exc:
            logger.warning("拒绝工具调用 %s: %s", name, exc)
            return DispatchResult.failed(exc)
        return self.apply(intent)

    # ------------------------------------------------------------------ 回滚

    def _snapshot(self) -> Dict[str, list]:
        return {
            "outline": copy.deepcopy(self.project.outline),
            "characters": copy.deepcopy(self.project.characters),
            "notes": copy.deepcopy(self.project.notes),
            "task_lists": copy.deepcopy(self.project.task_lists),
        }

    def _restore(self, snapshot: Dict[str, list]) -> None:
        # 原地替换，保证各组件持有的列表引用仍然有效
        self.project.outline[:] = snapshot["outline"]
        self.project.characters[:] = snapshot["characters"]
        self.project.notes[:] = snapshot["notes"]
        self.project.task_lists[:] = snapshot["task_lists"]

    def _notify(self, intent: Any, result: DispatchResult) -> None:
        for callback in list(self._subscribers):
            try:
                callback(intent, result)
            except Exception:
                logger.exception("变更回调执行失败")

    # ------------------------------------------------------------------ 大纲

    def _add_section(self, intent: it.AddSection) -> DispatchResult:
        section_id = self.tree.add_section(intent.title, intent.content, intent.parent_id)
        return DispatchResult.ok(f"已添加大纲节点「{intent.title}」", sectionId=section_id)

    def _update_section(self, intent: it.UpdateSection) -> DispatchResult:
        self.tree.update_section(intent.section_id, intent.new_title, intent.new_content)
        title = self.tree.get(intent.section_id).title
        return DispatchResult.ok(f"已更新大纲节点「{title}」", sectionId=intent.section_id)

    def _delete_section(self, intent: it.DeleteSection) -> DispatchResult:
        removed = self.tree.delete_section(intent.section_id)
        removed_ids = [section.id for _, section in OutlineTree([removed]).iter_sections()]
        return DispatchResult.ok(
            f"已删除大纲节点「{removed.title}」及其 {len(removed_ids) - 1} 个子节点",
            removedSectionIds=removed_ids,
        )

    def _move_section(self, intent: it.MoveSection) -> DispatchResult:
        self.tree.move_section(
            intent.section_id,
            target_parent_id=intent.target_parent_id,
            target_sibling_id=intent.target_sibling_id,
            position=intent.position,
        )
        parent = self.tree.parent_of(intent.section_id)
        return DispatchResult.ok(
            f"已移动大纲节点「{self.tree.get(intent.section_id).title}」",
            sectionId=intent.section_id,
            parentId=parent.id if parent else None,
        )

    def _set_section_image(self, intent: it.SetSectionImage) -> DispatchResult:
        self.tree.update_section(intent.section_id, image_url=intent.image_url)
        return DispatchResult.ok("已更新大纲节点配图", sectionId=intent.section_id)

    # ------------------------------------------------------------------ 角色

    def _add_character(self, intent: it.AddCharacter) -> DispatchResult:
        character_id = self.roster.add_character(intent.fields)
        name = self.roster.get(character_id).name
        return DispatchResult.ok(f"已添加角色「{name}」", characterId=character_id)

    def _update_character(self, intent: it.UpdateCharacter) -> DispatchResult:
        self.roster.update_character(intent.character_id, intent.fields)
        name = self.roster.get(intent.character_id).name
        return DispatchResult.ok(
            f"已更新角色「{name}」",
            characterId=intent.character_id,
            updatedFields=sorted(intent.fields),
        )

    def _delete_character(self, intent: it.DeleteCharacter) -> DispatchResult:
        removal = self.roster.delete_character(intent.character_id)
        return DispatchResult.ok(
            f"已删除角色「{removal.character.name}」",
            characterId=intent.character_id,
            affectedSectionIds=removal.affected_section_ids,
        )

    def _associate(self, intent: it.AssociateCharacter) -> DispatchResult:
        changed = self.index.associate(intent.section_id, intent.character_id)
        return DispatchResult.ok("已关联角色" if changed else "角色已处于关联状态", changed=changed)

    def _dissociate(self, intent: it.DissociateCharacter) -> DispatchResult:
        changed = self.index.dissociate(intent.section_id, intent.character_id)
        return DispatchResult.ok("已取消关联" if changed else "角色本就未关联", changed=changed)

    def _toggle(self, intent: it.ToggleCharacterAssociation) -> DispatchResult:
        associated = self.index.toggle(intent.section_id, intent.character_id)
        return DispatchResult.ok("已关联角色" if associated else "已取消关联", associated=associated)

    # ------------------------------------------------------------------ 笔记 / 待办

    def _add_note(self, intent: it.AddNote) -> DispatchResult:
        note_id = self.notebook.add_note(intent.title, intent.content)
        return DispatchResult.ok(f"已添加笔记「{intent.title}」", noteId=note_id)

    def _update_note(self, intent: it.UpdateNote) -> DispatchResult:
        self.notebook.update_note(intent.note_id, intent.new_title, intent.new_content)
        return DispatchResult.ok("已更新笔记", noteId=intent.note_id)

    def _delete_note(self, intent: it.DeleteNote) -> DispatchResult:
        note = self.notebook.delete_note(intent.note_id)
        return DispatchResult.ok(f"已删除笔记「{note.title}」", noteId=intent.note_id)

    def _add_task_list(self, intent: it.AddTaskList) -> DispatchResult:
        task_list_id = self.notebook.add_task_list(intent.title)
        return DispatchResult.ok(f"已添加待办清单「{intent.title}」", taskListId=task_list_id)

    def _delete_task_list(self, intent: it.DeleteTaskList) -> DispatchResult:
        task_list = self.notebook.delete_task_list(intent.task_list_id)
        return DispatchResult.ok(f"已删除待办清单「{task_list.title}」", taskListId=intent.task_list_id)

    def _add_task(self, intent: it.AddTask) -> DispatchResult:
        task_id = self.notebook.add_task(intent.task_list_id, intent.text)
        return DispatchResult.ok("已添加待办", taskId=task_id)

    def _set_task_completed(self, intent: it.SetTaskCompleted) -> DispatchResult:
        self.notebook.set_task_completed(intent.task_list_id, intent.task_id, intent.completed)
        return DispatchResult.ok("已完成待办" if intent.completed else "已重新打开待办", taskId=intent.task_id)

    def _delete_task(self, intent: it.DeleteTask) -> DispatchResult:
        self.notebook.delete_task(intent.task_list_id, intent.task_id)
        return DispatchResult.ok("已删除待办", taskId=intent.task_id)
