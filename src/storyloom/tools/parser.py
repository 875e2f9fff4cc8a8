"""
模型工具调用解析

模型给出的参数是不可信的 JSON：这里负责校验并收敛为封闭的意图集合，
任何无法干净映射的调用都以 UnsupportedOperationError 拒绝。
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Optional

from storyloom.editing.intents import (
    AddCharacter,
    AddSection,
    DeleteCharacter,
    DeleteSection,
    Intent,
    MoveSection,
    UpdateCharacter,
    UpdateSection,
)
from storyloom.errors import UnsupportedOperationError
from storyloom.schema import PROFILE_FIELD_NAMES

from .catalogue import (
    ADD_CHARACTER,
    ADD_SECTION,
    DELETE_CHARACTER,
    DELETE_SECTION,
    MOVE_SECTION,
    UPDATE_CHARACTER,
    UPDATE_SECTION,
    update_argument_name,
)

_DIRECT_CHARACTER_KEYS = frozenset(("name", "description") + PROFILE_FIELD_NAMES)
# updateCharacter 同时接受 newXxx 与字段原名
_UPDATE_CHARACTER_KEYS = {update_argument_name(key): key for key in _DIRECT_CHARACTER_KEYS}
_UPDATE_CHARACTER_KEYS.update({key: key for key in _DIRECT_CHARACTER_KEYS})


def _load_arguments(arguments: Any) -> Dict[str, Any]:
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str):
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError as exc:
            raise UnsupportedOperationError(f"工具参数不是合法 JSON: {exc.msg}") from exc
        if isinstance(parsed, dict):
            return parsed
    raise UnsupportedOperationError("工具参数必须是 JSON 对象")


def _optional_str(args: Dict[str, Any], key: str, *, blank_is_missing: bool = False) -> Optional[str]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise UnsupportedOperationError(f"参数 {key} 必须是字符串")
    if blank_is_missing and not value.strip():
        return None
    return value


def _optional_id(args: Dict[str, Any], key: str) -> Optional[str]:
    value = _optional_str(args, key, blank_is_missing=True)
    return value.strip() if value is not None else None


def _required_id(args: Dict[str, Any], key: str) -> str:
    value = _optional_id(args, key)
    if value is None:
        raise UnsupportedOperationError(f"缺少必填参数 {key}")
    return value


def _field_value(key: str, value: Any) -> Any:
    """档案字段只接受标量；字符串列表合并为一行。"""
    if isinstance(value, (str, int, float, bool)):
        return value if isinstance(value, str) else str(value)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return ", ".join(value)
    raise UnsupportedOperationError(f"字段 {key} 的取值类型不受支持")


def _add_section(args: Dict[str, Any]) -> Intent:
    title = _optional_str(args, "title")
    if title is None:
        raise UnsupportedOperationError("缺少必填参数 title")
    return AddSection(
        title=title,
        content=_optional_str(args, "content"),
        parent_id=_optional_id(args, "parentId"),
    )


def _update_section(args: Dict[str, Any]) -> Intent:
    return UpdateSection(
        section_id=_required_id(args, "sectionId"),
        new_title=_optional_str(args, "newTitle", blank_is_missing=True),
        new_content=_optional_str(args, "newContent"),
    )


def _delete_section(args: Dict[str, Any]) -> Intent:
    return DeleteSection(section_id=_required_id(args, "sectionId"))


def _move_section(args: Dict[str, Any]) -> Intent:
    return MoveSection(
        section_id=_required_id(args, "sectionId"),
        target_parent_id=_optional_id(args, "targetParentId"),
        target_sibling_id=_optional_id(args, "targetSiblingId"),
        position=_optional_id(args, "position"),
    )


def _add_character(args: Dict[str, Any]) -> Intent:
    fields: Dict[str, Any] = {}
    for key, value in args.items():
        if key not in _DIRECT_CHARACTER_KEYS:
            raise UnsupportedOperationError(f"addCharacter 不支持参数 {key}")
        if value is not None:
            fields[key] = _field_value(key, value)
    return AddCharacter(fields=fields)


def _update_character(args: Dict[str, Any]) -> Intent:
    character_id = _required_id(args, "characterId")
    fields: Dict[str, Any] = {}
    for key, value in args.items():
        if key == "characterId":
            continue
        field_name = _UPDATE_CHARACTER_KEYS.get(key)
        if field_name is None:
            raise UnsupportedOperationError(f"updateCharacter 不支持参数 {key}")
        if value is not None:
            fields[field_name] = _field_value(key, value)
    return UpdateCharacter(character_id=character_id, fields=fields)


def _delete_character(args: Dict[str, Any]) -> Intent:
    return DeleteCharacter(character_id=_required_id(args, "characterId"))


_PARSERS: Dict[str, Callable[[Dict[str, Any]], Intent]] = {
    ADD_SECTION: _add_section,
    UPDATE_SECTION: _update_section,
    DELETE_SECTION: _delete_section,
    MOVE_SECTION: _move_section,
    ADD_CHARACTER: _add_character,
    UPDATE_CHARACTER: _update_character,
    DELETE_CHARACTER: _delete_character,
}


def parse_tool_call(name: Optional[str], arguments: Any) -> Intent:
    """把模型的工具调用 (名称 + JSON 参数) 转为意图。"""
    parser = _PARSERS.get(name or "")
    if parser is None:
        raise UnsupportedOperationError(f"未知工具: {name}")
    return parser(_load_arguments(arguments))
