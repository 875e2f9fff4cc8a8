"""Derived section <-> character associations read from ``character_ids``."""

from __future__ import annotations

from typing import List

from storyloom.errors import NotFoundError
from storyloom.schema import Character, OutlineSection

from .outline_tree import OutlineTree


class CrossReferenceIndex:
    """大纲节点与角色的多对多弱关联。

    不单独持久化，每次都直接读写节点上的 character_ids。
    """

    def __init__(self, tree: OutlineTree, characters: List[Character]):
        self.tree = tree
        self.characters = characters

    def _require_character(self, character_id: str) -> Character:
        for character in self.characters:
            if character.id == character_id:
                return character
        raise NotFoundError(f"角色不存在: {character_id}")

    def associate(self, section_id: str, character_id: str) -> bool:
        """建立关联，返回状态是否发生变化。"""
        section = self.tree.get(section_id)
        self._require_character(character_id)
        if character_id in section.character_ids:
            return False
        section.character_ids.append(character_id)
        return True

    def dissociate(self, section_id: str, character_id: str) -> bool:
        """解除关联，返回状态是否发生变化。"""
        section = self.tree.get(section_id)
        self._require_character(character_id)
        if character_id not in section.character_ids:
            return False
        section.character_ids.remove(character_id)
        return True

    def toggle(self, section_id: str, character_id: str) -> bool:
        """切换关联，返回切换后的状态。"""
        section = self.tree.get(section_id)
        if character_id in section.character_ids:
            self.dissociate(section_id, character_id)
            return False
        self.associate(section_id, character_id)
        return True

    def on_character_deleted(self, character_id: str) -> List[str]:
        """从整棵大纲中移除该角色，返回受影响的节点 ID（深度优先顺序）。"""
        affected: List[str] = []
        for _, section in self.tree.iter_sections():
            if character_id in section.character_ids:
                section.character_ids = [cid for cid in section.character_ids if cid != character_id]
                affected.append(section.id)
        return affected

    def characters_for_section(self, section_id: str) -> List[Character]:
        """节点关联的角色（按名册顺序，跳过悬空 ID）。"""
        section = self.tree.get(section_id)
        wanted = set(section.character_ids)
        return [character for character in self.characters if character.id in wanted]

    def sections_for_character(self, character_id: str) -> List[OutlineSection]:
        self._require_character(character_id)
        return [
            section
            for _, section in self.tree.iter_sections()
            if character_id in section.character_ids
        ]
