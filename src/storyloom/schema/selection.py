"""
当前选中条目 - 带标签的变体类型

界面与上下文构建只通过 isinstance 穷举匹配这些类型；新增一种可选条目时，
``describe_selection`` 等消费点会在未处理分支上直接报错。
"""
from dataclasses import dataclass
from typing import Union

from .character import Character
from .outline import OutlineSection
from .project import Note, TaskList


@dataclass(frozen=True)
class CharacterSelection:
    character: Character
    kind: str = "character"


@dataclass(frozen=True)
class SectionSelection:
    section: OutlineSection
    kind: str = "outline"


@dataclass(frozen=True)
class NoteSelection:
    note: Note
    kind: str = "note"


@dataclass(frozen=True)
class TaskListSelection:
    task_list: TaskList
    kind: str = "taskList"


Selection = Union[CharacterSelection, SectionSelection, NoteSelection, TaskListSelection]


def selection_id(selection: Selection) -> str:
    """返回被选条目的 ID。"""
    if isinstance(selection, CharacterSelection):
        return selection.character.id
    if isinstance(selection, SectionSelection):
        return selection.section.id
    if isinstance(selection, NoteSelection):
        return selection.note.id
    if isinstance(selection, TaskListSelection):
        return selection.task_list.id
    raise TypeError(f"未知的选中类型: {type(selection).__name__}")
