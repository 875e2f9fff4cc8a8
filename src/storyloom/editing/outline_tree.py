"""
大纲树

有序、任意深度的大纲森林。所有遍历都使用显式栈，深度只受用户数据限制，
不依赖 Python 递归上限。所有结构操作先完成校验再修改，失败时森林保持原样。
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Tuple

from storyloom.errors import InvalidOperationError, NotFoundError
from storyloom.schema import OutlineSection

from .ids import IdAllocator

MOVE_POSITIONS = ("before", "after")

_LISTING_ID_PATTERN = re.compile(r"\(ID: ([^()]+)\)\s*$")

# (depth, parent, siblings, index, section)
_Location = Tuple[int, Optional[OutlineSection], List[OutlineSection], int, OutlineSection]


class OutlineListing:
    """带 ID 与缩进的大纲文本视图。

    每次迭代都基于当前大纲重新生成，可重复遍历；每行格式为
    ``"<两空格缩进>- <标题> (ID: <id>)"``。
    """

    def __init__(self, tree: "OutlineTree"):
        self._tree = tree

    def __iter__(self) -> Iterator[str]:
        for depth, section in self._tree.iter_sections():
            yield f"{'  ' * depth}- {section.title} (ID: {section.id})"

    def __str__(self) -> str:
        return "\n".join(self)


def parse_listing_ids(lines: Iterable[str]) -> List[str]:
    """从大纲文本视图中按顺序取回 ID。"""
    ids: List[str] = []
    for line in lines:
        match = _LISTING_ID_PATTERN.search(line)
        if match:
            ids.append(match.group(1))
    return ids


class OutlineTree:
    """大纲森林的结构操作（原地修改项目的 outline 列表）。"""

    def __init__(self, roots: List[OutlineSection], ids: Optional[IdAllocator] = None):
        self.roots = roots
        self.ids = ids or IdAllocator()

    # ------------------------------------------------------------------ 查询

    def _walk(self) -> Iterator[_Location]:
        """深度优先先序遍历，附带父节点与兄弟列表位置。"""
        stack: List[Tuple[int, Optional[OutlineSection], List[OutlineSection], int]] = [
            (0, None, self.roots, index) for index in reversed(range(len(self.roots)))
        ]
        while stack:
            depth, parent, siblings, index = stack.pop()
            section = siblings[index]
            yield depth, parent, siblings, index, section
            for child_index in reversed(range(len(section.children))):
                stack.append((depth + 1, section, section.children, child_index))

    def _locate(self, section_id: str) -> Optional[_Location]:
        for location in self._walk():
            if location[4].id == section_id:
                return location
        return None

    def iter_sections(self) -> Iterator[Tuple[int, OutlineSection]]:
        """按深度优先先序返回 (深度, 节点)。"""
        for depth, _, _, _, section in self._walk():
            yield depth, section

    def section_ids(self) -> List[str]:
        return [section.id for _, section in self.iter_sections()]

    def find_by_id(self, section_id: str) -> Optional[OutlineSection]:
        location = self._locate(section_id)
        return location[4] if location else None

    def get(self, section_id: str) -> OutlineSection:
        section = self.find_by_id(section_id)
        if section is None:
            raise NotFoundError(f"大纲节点不存在: {section_id}")
        return section

    def contains(self, section_id: str) -> bool:
        return self._locate(section_id) is not None

    def parent_of(self, section_id: str) -> Optional[OutlineSection]:
        """返回父节点；根节点返回 None，不存在时抛 NotFoundError。"""
        location = self._locate(section_id)
        if location is None:
            raise NotFoundError(f"大纲节点不存在: {section_id}")
        return location[1]

    @staticmethod
    def subtree_contains(section: OutlineSection, target_id: str) -> bool:
        """target_id 是否为 section 自身或其后代。"""
        stack = [section]
        while stack:
            node = stack.pop()
            if node.id == target_id:
                return True
            stack.extend(node.children)
        return False

    def serialize_with_ids(self) -> OutlineListing:
        return OutlineListing(self)

    # ------------------------------------------------------------------ 修改

    def _fresh_id(self) -> str:
        candidate = self.ids.new_id()
        while self.contains(candidate):
            candidate = self.ids.new_id()
        return candidate

    def add_section(
        self,
        title: str,
        content: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> str:
        """新增节点；未指定 parent_id 时追加为最后一个根节点。"""
        if title is None:
            raise InvalidOperationError("新节点必须提供标题")
        parent = self.get(parent_id) if parent_id is not None else None

        section = OutlineSection(id=self._fresh_id(), title=str(title), content=content or "")
        if parent is None:
            self.roots.append(section)
        else:
            parent.children.append(section)
        return section.id

    def update_section(
        self,
        section_id: str,
        new_title: Optional[str] = None,
        new_content: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> None:
        """更新标题/正文/配图；为 None 的字段保持不变，image_url="" 表示清除配图。"""
        section = self.get(section_id)
        if new_title is not None:
            section.title = new_title
        if new_content is not None:
            section.content = new_content
        if image_url is not None:
            section.image_url = image_url or None

    def delete_section(self, section_id: str) -> OutlineSection:
        """删除节点及其整棵子树，返回被删除的子树。"""
        location = self._locate(section_id)
        if location is None:
            raise NotFoundError(f"大纲节点不存在: {section_id}")
        _, _, siblings, index, _ = location
        return siblings.pop(index)

    def move_section(
        self,
        section_id: str,
        target_parent_id: Optional[str] = None,
        target_sibling_id: Optional[str] = None,
        position: Optional[str] = None,
    ) -> None:
        """移动节点（连同子树）。

        目标解析顺序：target_sibling_id（必须带 position）优先，其次
        target_parent_id（成为最后一个子节点），都没有时成为最后一个根节点。
        """
        location = self._locate(section_id)
        if location is None:
            raise NotFoundError(f"大纲节点不存在: {section_id}")
        _, _, siblings, index, section = location

        if target_sibling_id is not None:
            self._move_beside(section, siblings, index, target_sibling_id, position)
            return

        if target_parent_id is not None:
            if target_parent_id == section_id:
                raise InvalidOperationError("不能把节点移动到自身之下")
            parent = self.get(target_parent_id)
            if self.subtree_contains(section, target_parent_id):
                raise InvalidOperationError("不能把节点移动到自己的子节点之下")
            destination = parent.children
        else:
            destination = self.roots

        if destination is siblings and index == len(siblings) - 1:
            return
        siblings.pop(index)
        destination.append(section)

    def _move_beside(
        self,
        section: OutlineSection,
        siblings: List[OutlineSection],
        index: int,
        target_sibling_id: str,
        position: Optional[str],
    ) -> None:
        if position is None:
            raise InvalidOperationError("指定 targetSiblingId 时必须提供 position (before/after)")
        if position not in MOVE_POSITIONS:
            raise InvalidOperationError(f"position 只能是 before 或 after: {position}")
        if target_sibling_id == section.id:
            return

        sibling_location = self._locate(target_sibling_id)
        if sibling_location is None:
            raise NotFoundError(f"目标兄弟节点不存在: {target_sibling_id}")
        if self.subtree_contains(section, target_sibling_id):
            raise InvalidOperationError("不能把节点移动到自己的子树内")

        _, _, destination, _, sibling = sibling_location
        siblings.pop(index)
        # 同一列表中移除后下标可能前移，按对象重新定位
        sibling_index = next(i for i, node in enumerate(destination) if node is sibling)
        insert_at = sibling_index if position == "before" else sibling_index + 1
        destination.insert(insert_at, section)
