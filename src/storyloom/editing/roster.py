"""Flat, insertion-ordered character roster."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

from storyloom.errors import InvalidOperationError, NotFoundError
from storyloom.schema import Character

from .crossref import CrossReferenceIndex
from .ids import IdAllocator

logger = logging.getLogger(__name__)

_IMAGE_KEYS = ("imageUrl", "image_url")
_IGNORED_KEYS = ("id", "type")


@dataclass
class CharacterRemoval:
    """删除角色的结果：被删记录 + 因引用清理而被修改的节点。"""
    character: Character
    affected_section_ids: List[str]


def _clean_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class CharacterRoster:
    """角色名册。删除角色时总会触发交叉引用清理。"""

    def __init__(
        self,
        characters: List[Character],
        index: CrossReferenceIndex,
        ids: Optional[IdAllocator] = None,
    ):
        self.characters = characters
        self.index = index
        self.ids = ids or IdAllocator()

    def __iter__(self) -> Iterator[Character]:
        return iter(self.characters)

    def __len__(self) -> int:
        return len(self.characters)

    def find_by_id(self, character_id: str) -> Optional[Character]:
        for character in self.characters:
            if character.id == character_id:
                return character
        return None

    def get(self, character_id: str) -> Character:
        character = self.find_by_id(character_id)
        if character is None:
            raise NotFoundError(f"角色不存在: {character_id}")
        return character

    def add_character(self, fields: Mapping[str, Any]) -> str:
        """新增角色；name 与 description 必填，其余字段原样写入档案。"""
        name = _clean_text(fields.get("name"))
        description = fields.get("description")
        if not name:
            raise InvalidOperationError("角色必须有 name")
        if description is None or not str(description).strip():
            raise InvalidOperationError("角色必须有 description")

        character_id = self.ids.new_id()
        while self.find_by_id(character_id) is not None:
            character_id = self.ids.new_id()

        profile: Dict[str, Any] = {
            key: value
            for key, value in fields.items()
            if key not in ("name", "description") + _IMAGE_KEYS + _IGNORED_KEYS
        }
        image_url = next((fields[key] for key in _IMAGE_KEYS if fields.get(key)), None)
        self.characters.append(
            Character(
                id=character_id,
                name=name,
                description=str(description),
                profile=profile,
                image_url=image_url,
            )
        )
        return character_id

    def update_character(self, character_id: str, fields: Mapping[str, Any]) -> None:
        """只覆盖传入的键。"""
        character = self.get(character_id)
        if "name" in fields and not _clean_text(fields["name"]):
            raise InvalidOperationError("角色 name 不能为空")

        for key, value in fields.items():
            if key in _IGNORED_KEYS:
                continue
            if key == "name":
                character.name = _clean_text(value)
            elif key == "description":
                character.description = "" if value is None else str(value)
            elif key in _IMAGE_KEYS:
                character.image_url = value or None
            else:
                character.profile[key] = value

    def delete_character(self, character_id: str) -> CharacterRemoval:
        character = self.get(character_id)
        position = next(i for i, item in enumerate(self.characters) if item is character)
        del self.characters[position]
        affected = self.index.on_character_deleted(character_id)
        if affected:
            logger.info("角色 %s 删除后清理了 %d 个大纲节点的关联", character_id, len(affected))
        return CharacterRemoval(character=character, affected_section_ids=affected)
