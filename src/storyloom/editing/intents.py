"""
编辑意图 - 封闭的变体集合

无论来自用户操作还是模型工具调用，都先归一为这里的某个类型再交给调度器。
``kind`` 与模型工具名一致（如果该操作对模型开放）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class AddSection:
    title: str
    content: Optional[str] = None
    parent_id: Optional[str] = None
    kind: str = field(default="addOutlineSection", init=False)


@dataclass(frozen=True)
class UpdateSection:
    section_id: str
    new_title: Optional[str] = None
    new_content: Optional[str] = None
    kind: str = field(default="updateOutlineSection", init=False)


@dataclass(frozen=True)
class DeleteSection:
    section_id: str
    kind: str = field(default="deleteOutlineSection", init=False)


@dataclass(frozen=True)
class MoveSection:
    section_id: str
    target_parent_id: Optional[str] = None
    target_sibling_id: Optional[str] = None
    position: Optional[str] = None
    kind: str = field(default="moveOutlineSection", init=False)


@dataclass(frozen=True)
class SetSectionImage:
    section_id: str
    image_url: str
    kind: str = field(default="setSectionImage", init=False)


@dataclass(frozen=True)
class AddCharacter:
    fields: Dict[str, Any]
    kind: str = field(default="addCharacter", init=False)


@dataclass(frozen=True)
class UpdateCharacter:
    character_id: str
    fields: Dict[str, Any]
    kind: str = field(default="updateCharacter", init=False)


@dataclass(frozen=True)
class DeleteCharacter:
    character_id: str
    kind: str = field(default="deleteCharacter", init=False)


@dataclass(frozen=True)
class AssociateCharacter:
    section_id: str
    character_id: str
    kind: str = field(default="associateCharacter", init=False)


@dataclass(frozen=True)
class DissociateCharacter:
    section_id: str
    character_id: str
    kind: str = field(default="dissociateCharacter", init=False)


@dataclass(frozen=True)
class ToggleCharacterAssociation:
    section_id: str
    character_id: str
    kind: str = field(default="toggleCharacterAssociation", init=False)


@dataclass(frozen=True)
class AddNote:
    title: str
    content: str = ""
    kind: str = field(default="addNote", init=False)


@dataclass(frozen=True)
class UpdateNote:
    note_id: str
    new_title: Optional[str] = None
    new_content: Optional[str] = None
    kind: str = field(default="updateNote", init=False)


@dataclass(frozen=True)
class DeleteNote:
    note_id: str
    kind: str = field(default="deleteNote", init=False)


@dataclass(frozen=True)
class AddTaskList:
    title: str
    kind: str = field(default="addTaskList", init=False)


@dataclass(frozen=True)
class DeleteTaskList:
    task_list_id: str
    kind: str = field(default="deleteTaskList", init=False)


@dataclass(frozen=True)
class AddTask:
    task_list_id: str
    text: str
    kind: str = field(default="addTask", init=False)


@dataclass(frozen=True)
class SetTaskCompleted:
    task_list_id: str
    task_id: str
    completed: bool = True
    kind: str = field(default="setTaskCompleted", init=False)


@dataclass(frozen=True)
class DeleteTask:
    task_list_id: str
    task_id: str
    kind: str = field(default="deleteTask", init=False)


Intent = Union[
    AddSection,
    UpdateSection,
    DeleteSection,
    MoveSection,
    SetSectionImage,
    AddCharacter,
    UpdateCharacter,
    DeleteCharacter,
    AssociateCharacter,
    DissociateCharacter,
    ToggleCharacterAssociation,
    AddNote,
    UpdateNote,
    DeleteNote,
    AddTaskList,
    DeleteTaskList,
    AddTask,
    SetTaskCompleted,
    DeleteTask,
]
