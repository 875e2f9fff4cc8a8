"""
项目上下文序列化

把项目与当前选中条目整理成模型可读的文本；所有可被工具引用的实体都带 ID。
"""
import json
from typing import List, Optional

from storyloom.editing import OutlineTree
from storyloom.schema import (
    PROFILE_FIELD_LABELS,
    Character,
    CharacterSelection,
    NoteSelection,
    Project,
    SectionSelection,
    Selection,
    TaskListSelection,
)

# 一致性检查关注的外形 / 能力字段
PHYSICAL_FIELDS = ("healthAbilities", "heightBuild", "faceHairEyes", "styleOutfit")


def _character_line(character: Character) -> str:
    group = character.get("group") or "Ungrouped"
    return f"- {character.name} (ID: {character.id}) [Group: {group}]: {character.description}"


def describe_selection(selection: Selection) -> str:
    """当前选中条目的完整描述。"""
    if isinstance(selection, CharacterSelection):
        character = selection.character
        profile = {key: value for key, value in character.to_dict().items() if key != "imageUrl"}
        return (
            f"Character: {character.name} (ID: {character.id})\n"
            f"Full Profile: {json.dumps(profile, ensure_ascii=False, indent=2)}"
        )
    if isinstance(selection, SectionSelection):
        section = selection.section
        return f"Outline Section: {section.title} (ID: {section.id})\nContent: {section.content}"
    if isinstance(selection, NoteSelection):
        note = selection.note
        return f"Note: {note.title} (ID: {note.id})\nContent: {note.content}"
    if isinstance(selection, TaskListSelection):
        task_list = selection.task_list
        tasks = json.dumps([task.to_dict() for task in task_list.tasks], ensure_ascii=False)
        return f"Task List: {task_list.title} (ID: {task_list.id})\nTasks: {tasks}"
    raise TypeError(f"未知的选中类型: {type(selection).__name__}")


def format_project_context(project: Project, selection: Optional[Selection] = None) -> str:
    """构建发送给模型的项目上下文。"""
    lines: List[str] = [
        "PROJECT CONTEXT:",
        f"Title: {project.title}",
        f"Genre: {project.genre}",
        f"Description: {project.description}",
        "",
        "CHARACTERS (with IDs for targeting):",
    ]
    lines.extend(_character_line(character) for character in project.characters)

    lines.append("")
    lines.append("OUTLINE (with IDs for targeting):")
    lines.extend(OutlineTree(project.outline).serialize_with_ids())

    lines.append("")
    lines.append("PROJECT NOTES (with IDs for targeting):")
    lines.extend(f"- {note.title} (ID: {note.id})" for note in project.notes)

    if project.task_lists:
        lines.append("")
        lines.append("TASK LISTS (with IDs for targeting):")
        for task_list in project.task_lists:
            tasks = ", ".join(
                f"{task.text} [{'x' if task.is_completed else ' '}]" for task in task_list.tasks
            )
            lines.append(f"- {task_list.title} (ID: {task_list.id}): {tasks}")

    if selection is not None:
        lines.append("")
        lines.append("CURRENTLY VIEWING:")
        lines.append(describe_selection(selection))
    return "\n".join(lines)


def format_character_profile(character: Character) -> str:
    """一致性检查使用的角色外形档案。"""
    lines = [f"--- CHARACTER: {character.name} ---"]
    if character.description.strip():
        lines.append(f"Description: {character.description}")
    for key in PHYSICAL_FIELDS:
        value = str(character.get(key) or "").strip()
        if value:
            lines.append(f"{PROFILE_FIELD_LABELS[key]}: {value}")
    return "\n".join(lines) + "\n"


def describe_story_graph(project: Project) -> str:
    """角色 / 场景关联图的文本描述。"""
    names = {character.id: character.name for character in project.characters}
    lines = [f"Project: {project.title}", f"Genre: {project.genre}", "", "NODES (Characters):"]
    for character in project.characters:
        lines.append(f"- {character.name} (Role: {character.get('storyRole') or 'Unspecified'})")

    lines.append("")
    lines.append("NODES (Outline Sections & Associations):")
    for _, section in OutlineTree(project.outline).iter_sections():
        associated = [names[cid] for cid in section.character_ids if cid in names]
        lines.append(f'- Scene: "{section.title}" contains characters: [{", ".join(associated) or "None"}]')
    return "\n".join(lines)

