"""
Storyloom 数据模型 - 项目

项目是持久化与上下文序列化的基本单位，独占其中的全部实体。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .character import Character
from .outline import OutlineSection


@dataclass
class Note:
    """笔记"""
    id: str
    title: str = ""
    content: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            content=str(data.get("content") or ""),
        )


@dataclass
class Task:
    """待办项"""
    text: str
    is_completed: bool = False
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"text": self.text, "isCompleted": self.is_completed}
        if self.id:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            text=str(data.get("text", "")),
            is_completed=bool(data.get("isCompleted", data.get("is_completed", False))),
            id=data.get("id"),
        )


@dataclass
class TaskList:
    """待办清单"""
    id: str
    title: str = ""
    tasks: List[Task] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "tasks": [task.to_dict() for task in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskList":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            tasks=[Task.from_dict(item) for item in data.get("tasks") or []],
        )


@dataclass
class Project:
    """项目 - 整合大纲、角色、笔记与待办"""
    id: str
    title: str = "Untitled"
    genre: str = ""
    description: str = ""

    outline: List[OutlineSection] = field(default_factory=list)
    characters: List[Character] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    task_lists: List[TaskList] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "genre": self.genre,
            "description": self.description,
            "outline": [section.to_dict() for section in self.outline],
            "characters": [character.to_dict() for character in self.characters],
            "notes": [note.to_dict() for note in self.notes],
            "taskLists": [task_list.to_dict() for task_list in self.task_lists],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        notes = data.get("notes") or []
        # 早期数据里 notes 是一整段文本
        if isinstance(notes, str):
            notes = [{"id": f"{data['id']}-notes", "title": "Notes", "content": notes}] if notes.strip() else []
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            genre=str(data.get("genre", "")),
            description=str(data.get("description", "")),
            outline=[OutlineSection.from_dict(item) for item in data.get("outline") or []],
            characters=[Character.from_dict(item) for item in data.get("characters") or []],
            notes=[Note.from_dict(item) for item in notes],
            task_lists=[
                TaskList.from_dict(item)
                for item in data.get("taskLists") or data.get("task_lists") or []
            ],
        )
