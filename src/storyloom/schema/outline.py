"""
Storyloom 数据模型 - 大纲结构

大纲是一片有序森林：每个节点有标题、正文、子节点，以及关联角色的弱引用。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OutlineSection:
    """大纲节点"""
    id: str
    title: str = ""
    content: str = ""
    children: List["OutlineSection"] = field(default_factory=list)
    character_ids: List[str] = field(default_factory=list)  # 关联角色（集合语义，保持插入顺序）
    image_url: Optional[str] = None                          # 原始 base64 或 image-<id> 存储键

    def to_dict(self) -> Dict[str, Any]:
        """转为 JSON 友好的字典（显式栈，避免深层递归）。"""
        root = self._shallow_dict(self)
        stack = [(self, root)]
        while stack:
            section, data = stack.pop()
            for child in section.children:
                child_data = self._shallow_dict(child)
                data["children"].append(child_data)
                stack.append((child, child_data))
        return root

    @staticmethod
    def _shallow_dict(section: "OutlineSection") -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": section.id,
            "title": section.title,
            "content": section.content,
            "children": [],
            "characterIds": list(section.character_ids),
        }
        if section.image_url:
            data["imageUrl"] = section.image_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutlineSection":
        root = cls._shallow_from(data)
        stack = [(data, root)]
        while stack:
            raw, section = stack.pop()
            for child_raw in raw.get("children") or []:
                child = cls._shallow_from(child_raw)
                section.children.append(child)
                stack.append((child_raw, child))
        return root

    @classmethod
    def _shallow_from(cls, data: Dict[str, Any]) -> "OutlineSection":
        character_ids: List[str] = []
        for character_id in data.get("characterIds") or data.get("character_ids") or []:
            character_id = str(character_id)
            if character_id not in character_ids:
                character_ids.append(character_id)
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            content=str(data.get("content") or ""),
            character_ids=character_ids,
            image_url=data.get("imageUrl") or data.get("image_url") or None,
        )
