"""
项目生成器

根据标题、类型与一句话简介，让模型生成初始角色、顶层大纲与笔记。
"""

import json
import logging
from typing import Any, Dict, List, Optional

from json_repair import repair_json

from storyloom.editing import IdAllocator
from storyloom.errors import InvalidOperationError, MalformedResponseError
from storyloom.schema import PROFILE_FIELD_NAMES, Character, Note, OutlineSection, Project

from .prompts import PROJECT_GENERATION_PROMPT, PROJECT_GENERATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def _extract_json_dict(response_text: str) -> Optional[Dict[str, Any]]:
    cleaned = str(response_text or "").strip()
    if not cleaned:
        return None

    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline > 0:
            cleaned = cleaned[first_newline + 1 :]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3].strip()

    json_start = cleaned.find("{")
    json_end = cleaned.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        return None

    json_str = cleaned[json_start:json_end]
    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError:
        parsed = repair_json(json_str, return_objects=True)
    return parsed if isinstance(parsed, dict) else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value).strip()


class ProjectGenerator:
    """从项目简介生成初始内容。"""

    def __init__(self, ai_client=None, ids: Optional[IdAllocator] = None):
        if ai_client is None:
            from storyloom.models import get_client

            ai_client = get_client()
        self.ai = ai_client
        self.ids = ids or IdAllocator()

    def _build_characters(self, items: Any) -> List[Character]:
        characters: List[Character] = []
        for item in items if isinstance(items, list) else []:
            if not isinstance(item, dict) or not _text(item.get("name")):
                logger.warning("忽略无效的生成角色: %r", item)
                continue
            profile = {
                key: _text(item[key])
                for key in PROFILE_FIELD_NAMES
                if key in item and _text(item[key])
            }
            characters.append(
                Character(
                    id=self.ids.new_id(),
                    name=_text(item.get("name")),
                    description=_text(item.get("description")),
                    profile=profile,
                )
            )
        return characters

    def _build_sections(self, items: Any) -> List[OutlineSection]:
        return [
            OutlineSection(id=self.ids.new_id(), title=_text(item.get("title")), content=_text(item.get("content")))
            for item in (items if isinstance(items, list) else [])
            if isinstance(item, dict) and _text(item.get("title"))
        ]

    def _build_notes(self, items: Any) -> List[Note]:
        return [
            Note(id=self.ids.new_id(), title=_text(item.get("title")), content=_text(item.get("content")))
            for item in (items if isinstance(items, list) else [])
            if isinstance(item, dict) and (_text(item.get("title")) or _text(item.get("content")))
        ]

    def generate(
        self,
        title: str,
        genre: str = "",
        description: str = "",
        project_id: Optional[str] = None,
    ) -> Project:
        """生成带初始角色、大纲与笔记的新项目（尚未持久化）。"""
        if not (title or "").strip():
            raise InvalidOperationError("项目标题不能为空")

        prompt = PROJECT_GENERATION_PROMPT.format(
            title=title,
            genre=genre or "Unspecified",
            description=description or "(none)",
            profile_fields=", ".join(f'"{name}": "..."' for name in PROFILE_FIELD_NAMES),
        )
        response = self.ai.chat(prompt, system_prompt=PROJECT_GENERATION_SYSTEM_PROMPT)
        parsed = _extract_json_dict(response if isinstance(response, str) else str(response))
        if parsed is None:
            raise MalformedResponseError("模型未返回可解析的项目 JSON")

        project = Project(
            id=project_id or self.ids.new_id(),
            title=title.strip(),
            genre=genre,
            description=description,
            outline=self._build_sections(parsed.get("outline")),
            characters=self._build_characters(parsed.get("characters")),
            notes=self._build_notes(parsed.get("notes")),
        )
        if not (project.outline or project.characters or project.notes):
            raise MalformedResponseError("模型返回的项目内容为空")
        logger.info(
            "已生成项目 %s: %d 个角色, %d 个大纲节点, %d 条笔记",
            project.title,
            len(project.characters),
            len(project.outline),
            len(project.notes),
        )
        return project
