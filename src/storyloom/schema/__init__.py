"""Schema 模块 - 数据模型定义"""
from .character import CHARACTER_PROFILE_FIELDS, PROFILE_FIELD_LABELS, PROFILE_FIELD_NAMES, Character
from .outline import OutlineSection
from .project import Note, Project, Task, TaskList
from .selection import (
    CharacterSelection,
    NoteSelection,
    SectionSelection,
    Selection,
    TaskListSelection,
    selection_id,
)

__all__ = [
    "CHARACTER_PROFILE_FIELDS",
    "PROFILE_FIELD_LABELS",
    "PROFILE_FIELD_NAMES",
    "Character",
    "OutlineSection",
    "Note",
    "Project",
    "Task",
    "TaskList",
    "CharacterSelection",
    "NoteSelection",
    "SectionSelection",
    "Selection",
    "TaskListSelection",
    "selection_id",
]
