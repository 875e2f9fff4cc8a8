"""Chainlit web entrypoint for Storyloom."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Optional, Tuple

import chainlit as cl
from dotenv import load_dotenv

load_dotenv()

from storyloom.config import config, configure_logging
from storyloom.editing import IdAllocator, OutlineTree
from storyloom.errors import ExternalCollaboratorError, StoryloomError
from storyloom.generation import EditorialReviewer, Illustrator, ProjectGenerator
from storyloom.interactive import AssistantSession, attach_autosave
from storyloom.models import get_client
from storyloom.schema import Project, SectionSelection, selection_id
from storyloom.storage import StorageManager

configure_logging()
logger = logging.getLogger(__name__)

HELP_TEXT = """可用命令：
/projects                     列出项目
/open <项目ID>                打开项目
/new <标题> | <类型> | <简介>  创建项目（模型可用时自动生成初始内容）
/outline                      查看大纲
/characters                   查看角色
/select <ID>                  选中角色 / 大纲节点 / 笔记 / 待办清单
/check                        对选中的大纲节点做连贯性检查
/council <问题>               召开写作委员会
/portrait <角色ID>            生成角色肖像
/illustrate <大纲节点ID>      生成场景配图
/cancel                       放弃正在进行的回复
/help                         查看帮助"""


def _parse_command(text: str) -> Tuple[str, str]:
    raw = text.strip()
    if not raw.startswith("/"):
        return "", ""
    parts = raw.split(maxsplit=1)
    cmd = parts[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else ""
    return cmd, arg


def _session_storage() -> StorageManager:
    storage = cl.user_session.get("storage")
    if storage is None:
        storage = StorageManager(config.data_dir)
        cl.user_session.set("storage", storage)
    return storage


def _session_ai() -> Optional[Any]:
    return cl.user_session.get("ai")


def _assistant() -> Optional[AssistantSession]:
    return cl.user_session.get("assistant")


async def _say(content: str) -> None:
    await cl.Message(content=content).send()


async def _send_image(caption: str, value: Optional[str]) -> None:
    payload = _session_storage().resolve_image(value)
    if not payload:
        await _say(caption)
        return
    try:
        data = base64.b64decode(payload)
    except (binascii.Error, ValueError):
        logger.warning("无法解码图像数据: %s", value)
        await _say(caption)
        return
    image = cl.Image(name="image.png", content=data, display="inline", mime="image/png")
    await cl.Message(content=caption, elements=[image]).send()


def _open_project(project: Project) -> AssistantSession:
    previous = _assistant()
    if previous is not None:
        previous.abandon()

    assistant = AssistantSession(project, model=_session_ai())
    if config.autosave:
        attach_autosave(assistant, _session_storage())
    cl.user_session.set("assistant", assistant)
    return assistant


async def _list_projects() -> None:
    projects = await asyncio.to_thread(_session_storage().load_all_projects)
    if not projects:
        await _say("暂无项目，使用 `/new <标题> | <类型> | <简介>` 创建。")
        return
    lines = ["项目列表："]
    for project in projects:
        lines.append(f"- **{project.title}** `{project.id}` [{project.genre or '未分类'}]")
    await _say("\n".join(lines))


async def _create_project(arg: str) -> None:
    fields = [part.strip() for part in arg.split("|")]
    title = fields[0] if fields else ""
    genre = fields[1] if len(fields) > 1 else ""
    description = fields[2] if len(fields) > 2 else ""
    if not title:
        await _say("❌ 用法：/new <标题> | <类型> | <简介>")
        return

    ai = _session_ai()
    if ai is not None:
        await _say("📝 正在生成初始角色、大纲与笔记...")
        project = await asyncio.to_thread(ProjectGenerator(ai).generate, title, genre, description)
    else:
        project = Project(id=IdAllocator().new_id(), title=title, genre=genre, description=description)
    await asyncio.to_thread(_session_storage().create_project, project)
    assistant = _open_project(project)
    await _say(f"✨ 已创建并打开项目 **{project.title}** `{project.id}`\n\n{assistant.greeting()}")


async def _open(arg: str) -> None:
    if not arg:
        await _say("❌ 用法：/open <项目ID>")
        return
    project = await asyncio.to_thread(_session_storage().load_project, arg)
    assistant = _open_project(project)
    await _say(assistant.greeting())


def _outline_text(project: Project) -> str:
    listing = str(OutlineTree(project.outline).serialize_with_ids())
    return f"```\n{listing}\n```" if listing else "（大纲为空）"


def _characters_text(project: Project) -> str:
    if not project.characters:
        return "（暂无角色）"
    return "\n".join(
        f"- **{character.name}** `{character.id}` [{character.get('group') or 'Ungrouped'}]: {character.description}"
        for character in project.characters
    )


async def _check(assistant: AssistantSession) -> None:
    selection = assistant.refresh_selection()
    if not isinstance(selection, SectionSelection):
        await _say("❌ 请先用 /select 选中一个大纲节点")
        return
    reviewer = EditorialReviewer(_session_ai())
    report = await asyncio.to_thread(
        reviewer.consistency_check, selection.section, assistant.project.characters
    )
    await _say(f"🔍 **{selection.section.title}**\n\n{report}")


async def _council(assistant: AssistantSession, query: str) -> None:
    if not query:
        await _say("❌ 用法：/council <问题>")
        return
    reviewer = EditorialReviewer(_session_ai())
    await _say("🏛️ 委员会正在讨论...")
    verdict = await reviewer.run_council(query, assistant.project, assistant.refresh_selection())
    await _say(verdict)


async def _portrait(assistant: AssistantSession, character_id: str) -> None:
    character = assistant.dispatcher.roster.get(character_id)
    await _say(f"🎨 正在为 {character.name} 生成肖像...")
    intent = await asyncio.to_thread(Illustrator().portrait, character)
    result = assistant.apply(intent)
    if not result.success:
        await _say(f"❌ {result.message}")
        return
    await _send_image(f"✅ {character.name} 的肖像", assistant.dispatcher.roster.get(character_id).image_url)


async def _illustrate(assistant: AssistantSession, section_id: str) -> None:
    section = assistant.dispatcher.tree.get(section_id)
    await _say(f"🎨 正在为「{section.title}」生成配图...")
    intent = await asyncio.to_thread(Illustrator().illustrate, section, assistant.project.genre)
    result = assistant.apply(intent)
    if not result.success:
        await _say(f"❌ {result.message}")
        return
    await _send_image(f"✅ 「{section.title}」配图", assistant.dispatcher.tree.get(section_id).image_url)


async def _handle_command(cmd: str, arg: str) -> None:
    if cmd in {"/help", "/"}:
        await _say(HELP_TEXT)
        return
    if cmd == "/projects":
        await _list_projects()
        return
    if cmd == "/new":
        await _create_project(arg)
        return
    if cmd == "/open":
        await _open(arg)
        return

    assistant = _assistant()
    if assistant is None:
        await _say("❌ 请先打开项目：/open <项目ID>，或 /projects 查看列表")
        return

    if cmd == "/cancel":
        assistant.abandon()
        await _say("🛑 已放弃正在进行的回复")
    elif cmd == "/outline":
        await _say(_outline_text(assistant.project))
    elif cmd == "/characters":
        await _say(_characters_text(assistant.project))
    elif cmd == "/select":
        if not arg:
            assistant.select(None)
            await _say("已取消选中")
        else:
            selection = assistant.select_by_id(arg)
            await _say(f"📌 已选中 {selection.kind} `{selection_id(selection)}`")
    elif cmd == "/check":
        await _check(assistant)
    elif cmd == "/council":
        await _council(assistant, arg)
    elif cmd == "/portrait":
        await _portrait(assistant, arg)
    elif cmd == "/illustrate":
        await _illustrate(assistant, arg)
    else:
        await _say(f"❓ 未知命令: {cmd}，输入 /help 查看帮助。")


@cl.on_chat_start
async def on_chat_start() -> None:
    cl.user_session.set("assistant", None)
    storage = _session_storage()
    seeded = await asyncio.to_thread(storage.seed_sample_projects)

    try:
        ai = get_client()
    except ValueError as exc:
        ai = None
        await _say(f"⚠️ 模型初始化失败：{exc}")
    cl.user_session.set("ai", ai)

    intro = "Storyloom Web 已启动。"
    if seeded:
        intro += f"\n已写入 {seeded} 个示例项目。"
    await _say(intro + "\n输入 `/projects` 查看项目，`/open <项目ID>` 打开，`/help` 查看命令。")


@cl.on_message
async def on_message(message: cl.Message) -> None:
    text = message.content.strip()
    cmd, arg = _parse_command(text)

    try:
        if cmd:
            await _handle_command(cmd, arg)
            return

        assistant = _assistant()
        if assistant is None:
            await _say("❌ 请先打开项目：/open <项目ID>")
            return
        if _session_ai() is None:
            await _say("❌ 模型客户端不可用，请检查环境变量后重启。")
            return

        result = await assistant.send_async(text)
        if result.discarded:
            return
        if result.tool_calls:
            await _say(result.actions_summary)
        if result.text:
            await _say(result.text)
        elif not result.tool_calls:
            await _say("（模型没有返回文字）")
    except ExternalCollaboratorError as exc:
        hint = "，可稍后重试" if exc.retryable else ""
        await _say(f"❌ {exc}{hint}")
    except StoryloomError as exc:
        await _say(f"❌ {exc}")
    except ValueError as exc:
        # 缺少 API Key 等配置问题
        await _say(f"❌ {exc}")
