"""Notes and task lists: flat collections addressed by id."""

from __future__ import annotations

from typing import List, Optional

from storyloom.errors import InvalidOperationError, NotFoundError
from storyloom.schema import Note, Task, TaskList

from .ids import IdAllocator


class Notebook:
    """笔记与待办清单。"""

    def __init__(
        self,
        notes: List[Note],
        task_lists: List[TaskList],
        ids: Optional[IdAllocator] = None,
    ):
        self.notes = notes
        self.task_lists = task_lists
        self.ids = ids or IdAllocator()

    # 笔记

    def get_note(self, note_id: str) -> Note:
        for note in self.notes:
            if note.id == note_id:
                return note
        raise NotFoundError(f"笔记不存在: {note_id}")

    def add_note(self, title: str, content: str = "") -> str:
        note = Note(id=self.ids.new_id(), title=title or "", content=content or "")
        self.notes.append(note)
        return note.id

    def update_note(self, note_id: str, new_title: Optional[str] = None, new_content: Optional[str] = None) -> None:
        note = self.get_note(note_id)
        if new_title is not None:
            note.title = new_title
        if new_content is not None:
            note.content = new_content

    def delete_note(self, note_id: str) -> Note:
        note = self.get_note(note_id)
        self.notes[:] = [item for item in self.notes if item is not note]
        return note

    # 待办

    def get_task_list(self, task_list_id: str) -> TaskList:
        for task_list in self.task_lists:
            if task_list.id == task_list_id:
                return task_list
        raise NotFoundError(f"待办清单不存在: {task_list_id}")

    def add_task_list(self, title: str) -> str:
        task_list = TaskList(id=self.ids.new_id(), title=title or "")
        self.task_lists.append(task_list)
        return task_list.id

    def rename_task_list(self, task_list_id: str, new_title: str) -> None:
        self.get_task_list(task_list_id).title = new_title

    def delete_task_list(self, task_list_id: str) -> TaskList:
        task_list = self.get_task_list(task_list_id)
        self.task_lists[:] = [item for item in self.task_lists if item is not task_list]
        return task_list

    def _get_task(self, task_list: TaskList, task_id: str) -> Task:
        for task in task_list.tasks:
            if task.id == task_id:
                return task
        raise NotFoundError(f"待办项不存在: {task_id}")

    def add_task(self, task_list_id: str, text: str) -> str:
        if not (text or "").strip():
            raise InvalidOperationError("待办内容不能为空")
        task_list = self.get_task_list(task_list_id)
        task = Task(text=text, id=self.ids.new_id())
        task_list.tasks.append(task)
        return task.id

    def set_task_completed(self, task_list_id: str, task_id: str, completed: bool = True) -> None:
        task = self._get_task(self.get_task_list(task_list_id), task_id)
        task.is_completed = completed

    def delete_task(self, task_list_id: str, task_id: str) -> Task:
        task_list = self.get_task_list(task_list_id)
        task = self._get_task(task_list, task_id)
        task_list.tasks[:] = [item for item in task_list.tasks if item is not task]
        return task
