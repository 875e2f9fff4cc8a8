#!/usr/bin/env python3
"""
Storyloom CLI - 命令行交互入口
"""
import argparse
import asyncio
import os
import shutil
import subprocess

from dotenv import load_dotenv

# 加载 .env（须在读取配置之前）
load_dotenv()

from storyloom.config import config, configure_logging
from storyloom.errors import ExternalCollaboratorError, StoryloomError
from storyloom.schema import Project, SectionSelection, selection_id
from storyloom.storage import StorageManager


def _storage(args) -> StorageManager:
    return StorageManager(args.data_dir)


def _client(args):
    from storyloom.models import get_client

    return get_client(args.provider)


def _print_outline(project: Project):
    from storyloom.editing import OutlineTree

    listing = str(OutlineTree(project.outline).serialize_with_ids())
    print(listing or "  (大纲为空)")


def _print_characters(project: Project):
    if not project.characters:
        print("  (暂无角色)")
        return
    for character in project.characters:
        group = character.get("group") or "Ungrouped"
        print(f"  - {character.name} (ID: {character.id}) [{group}]")


def cmd_list(args):
    """列出所有项目"""
    storage = _storage(args)
    projects = storage.load_all_projects()
    if not projects:
        print("暂无项目。可使用 `storyloom seed` 写入示例项目。")
        return
    print("\n📚 项目列表:")
    for i, project in enumerate(projects, 1):
        print(
            f"  {i}. {project.title} (ID: {project.id})  "
            f"[{project.genre or '未分类'}] {len(project.characters)}个角色"
        )


def cmd_new(args):
    """创建新项目"""
    from storyloom.editing import IdAllocator

    storage = _storage(args)
    if args.generate:
        from storyloom.generation import ProjectGenerator

        print("📝 正在生成初始角色、大纲与笔记...")
        project = ProjectGenerator(_client(args)).generate(args.title, args.genre, args.description)
    else:
        project = Project(
            id=IdAllocator().new_id(),
            title=args.title,
            genre=args.genre,
            description=args.description,
        )
    storage.create_project(project)
    print(f"✨ 已创建项目: {project.title} (ID: {project.id})")
    if args.generate:
        print(f"   角色 {len(project.characters)} 个，大纲 {len(project.outline)} 节，笔记 {len(project.notes)} 条")


def cmd_show(args):
    """查看项目"""
    project = _storage(args).load_project(args.project)
    print(f"📚 {project.title}  (ID: {project.id})")
    print(f"🏷️ {project.genre}")
    if project.description:
        print(f"\n{project.description}")
    print("\n📖 大纲:")
    _print_outline(project)
    print("\n👥 角色:")
    _print_characters(project)
    if project.notes:
        print("\n🗒️ 笔记:")
        for note in project.notes:
            print(f"  - {note.title} (ID: {note.id})")
    for task_list in project.task_lists:
        done = sum(1 for task in task_list.tasks if task.is_completed)
        print(f"\n✅ {task_list.title}: {done}/{len(task_list.tasks)}")


def cmd_delete(args):
    """删除项目"""
    storage = _storage(args)
    if not args.yes:
        answer = input(f"确认删除项目 {args.project}？(y/N) ").strip().lower()
        if answer != "y":
            print("已取消")
            return
    if storage.delete_project(args.project):
        print(f"🗑️ 已删除项目 {args.project}")
    else:
        print(f"❌ 项目不存在: {args.project}")


def cmd_seed(args):
    """写入示例项目"""
    count = _storage(args).seed_sample_projects()
    if count:
        print(f"✅ 已写入 {count} 个示例项目")
    else:
        print("数据目录中已有项目，未写入示例")


def cmd_check(args):
    """对大纲节点做连贯性检查"""
    from storyloom.editing import OutlineTree
    from storyloom.generation import EditorialReviewer

    project = _storage(args).load_project(args.project)
    section = OutlineTree(project.outline).get(args.section)
    print(f"🔍 正在检查「{section.title}」...")
    reviewer = EditorialReviewer(_client(args))
    print("\n" + reviewer.consistency_check(section, project.characters))


def cmd_web(args):
    """启动 Chainlit Web 交互模式。"""
    chainlit_bin = shutil.which("chainlit")
    if chainlit_bin is None:
        print("❌ 未检测到 chainlit 命令。请先安装：pip install chainlit")
        return

    app_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "chainlit_app.py")
    command = [chainlit_bin, "run", app_path]
    if args.watch:
        command.append("-w")
    if args.host:
        command.extend(["--host", args.host])
    if args.port:
        command.extend(["--port", str(args.port)])

    env = dict(os.environ)
    if args.data_dir:
        env["STORYLOOM_DATA_DIR"] = args.data_dir
    if args.provider:
        env["STORYLOOM_PROVIDER"] = args.provider

    print("🌐 启动 Web 交互模式中...")
    print("   访问地址将由 Chainlit 输出。")
    subprocess.run(command, check=False, env=env)


CHAT_COMMANDS = {
    "/outline": "查看大纲",
    "/characters": "查看角色",
    "/select": "选中条目（/select <ID>，不带参数则取消选中）",
    "/check": "对选中的大纲节点做连贯性检查",
    "/graph": "分析角色与场景的关联",
    "/council": "召开写作委员会（/council <问题>）",
    "/clear": "清空对话历史",
    "/help": "显示帮助",
    "/quit": "退出",
}


def cmd_chat(args):
    """与写作助手连续对话"""
    from prompt_toolkit import prompt
    from prompt_toolkit.completion import Completer, Completion
    from prompt_toolkit.history import InMemoryHistory

    from storyloom.generation import EditorialReviewer
    from storyloom.interactive import AssistantSession, attach_autosave

    class ChatCompleter(Completer):
        """命令补全（带说明）"""

        def get_completions(self, document, complete_event):
            text = document.text_before_cursor
            if text.startswith("/") and " " not in text:
                for cmd, desc in CHAT_COMMANDS.items():
                    if cmd.startswith(text):
                        yield Completion(cmd, start_position=-len(text), display_meta=desc)

    storage = _storage(args)
    project = storage.load_project(args.project)
    client = _client(args)
    session = AssistantSession(project, model=client)
    if config.autosave:
        attach_autosave(session, storage)
    reviewer = EditorialReviewer(client)

    print("=" * 50)
    print(f"    📚 Storyloom - {project.title}")
    print("=" * 50)
    print("\n输入 / 按 Tab 选择命令（带说明）")
    print("-" * 50)
    print(f"\n🤖 {session.greeting()}")

    input_history = InMemoryHistory()
    while True:
        try:
            user_input = prompt("\n你: ", history=input_history, completer=ChatCompleter()).strip()
        except (EOFError, KeyboardInterrupt):
            print("\n👋 再见!")
            break

        if not user_input:
            continue

        try:
            if user_input.startswith("/"):
                parts = user_input.split(maxsplit=1)
                cmd = parts[0].lower()
                rest = parts[1].strip() if len(parts) > 1 else ""

                if cmd in ("/quit", "/exit"):
                    print("👋 再见!")
                    break
                elif cmd in ("/", "/help"):
                    print("\n命令列表:")
                    for name, desc in CHAT_COMMANDS.items():
                        print(f"  {name:<12} {desc}")
                elif cmd == "/outline":
                    _print_outline(project)
                elif cmd == "/characters":
                    _print_characters(project)
                elif cmd == "/select":
                    if rest:
                        selection = session.select_by_id(rest)
                        print(f"📌 已选中 {selection.kind} {selection_id(selection)}")
                    else:
                        session.select(None)
                        print("已取消选中")
                elif cmd == "/check":
                    selection = session.refresh_selection()
                    if not isinstance(selection, SectionSelection):
                        print("❌ 请先用 /select 选中一个大纲节点")
                        continue
                    print(reviewer.consistency_check(selection.section, project.characters))
                elif cmd == "/graph":
                    print(reviewer.graph_analysis(project))
                elif cmd == "/council":
                    print(asyncio.run(reviewer.run_council(rest, project, session.refresh_selection())))
                elif cmd == "/clear":
                    session.reset()
                    print("🧹 对话历史已清空")
                else:
                    print(f"❌ 未知命令: {cmd}，输入 /help 查看帮助")
                continue

            result = session.send(user_input)
            if result.tool_calls:
                print(f"\n🛠️ {result.actions_summary}")
            if result.text:
                print(f"\n🤖 {result.text}")
            elif not result.tool_calls:
                print("\n🤖 (模型没有返回文字)")
        except ExternalCollaboratorError as exc:
            hint = "，可稍后重试" if exc.retryable else ""
            print(f"❌ {exc}{hint}")
        except StoryloomError as exc:
            print(f"❌ {exc}")


def main():
    parser = argparse.ArgumentParser(
        description="Storyloom - AI 故事构思助手",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  # 写入示例项目并查看
  storyloom seed
  storyloom list

  # 创建新项目并让模型生成初始内容
  storyloom new "Chronoscape" --genre "Sci-Fi" --description "..." --generate

  # 与写作助手对话
  storyloom chat proj-1

  # 连贯性检查
  storyloom check proj-1 out-1-1
""",
    )
    parser.add_argument("-d", "--data-dir", default=None, help="数据目录（默认 STORYLOOM_DATA_DIR）")
    parser.add_argument("--provider", default=None, help="模型服务: openai / gemini / deepseek")
    parser.add_argument("--log-level", default=None, help="日志级别")

    subparsers = parser.add_subparsers(dest="command")

    p_list = subparsers.add_parser("list", help="列出所有项目")
    p_list.set_defaults(func=cmd_list)

    p_new = subparsers.add_parser("new", help="创建新项目")
    p_new.add_argument("title", help="项目标题")
    p_new.add_argument("--genre", default="", help="类型")
    p_new.add_argument("--description", default="", help="一句话简介")
    p_new.add_argument("--generate", action="store_true", help="由模型生成初始角色、大纲与笔记")
    p_new.set_defaults(func=cmd_new)

    p_show = subparsers.add_parser("show", help="查看项目")
    p_show.add_argument("project", help="项目 ID")
    p_show.set_defaults(func=cmd_show)

    p_delete = subparsers.add_parser("delete", help="删除项目")
    p_delete.add_argument("project", help="项目 ID")
    p_delete.add_argument("-y", "--yes", action="store_true", help="不再确认")
    p_delete.set_defaults(func=cmd_delete)

    p_chat = subparsers.add_parser("chat", help="与写作助手对话")
    p_chat.add_argument("project", help="项目 ID")
    p_chat.set_defaults(func=cmd_chat)

    p_check = subparsers.add_parser("check", help="大纲节点连贯性检查")
    p_check.add_argument("project", help="项目 ID")
    p_check.add_argument("section", help="大纲节点 ID")
    p_check.set_defaults(func=cmd_check)

    p_seed = subparsers.add_parser("seed", help="写入示例项目")
    p_seed.set_defaults(func=cmd_seed)

    p_web = subparsers.add_parser("web", help="启动 Chainlit Web 交互模式")
    p_web.add_argument("--host", default="0.0.0.0", help="监听地址")
    p_web.add_argument("--port", type=int, default=8000, help="监听端口")
    p_web.add_argument("-w", "--watch", action="store_true", help="源码变更自动重载")
    p_web.set_defaults(func=cmd_web)

    args = parser.parse_args()
    configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except ExternalCollaboratorError as exc:
        hint = "（可稍后重试）" if exc.retryable else ""
        print(f"❌ {exc}{hint}")
        raise SystemExit(1)
    except StoryloomError as exc:
        print(f"❌ {exc}")
        raise SystemExit(1)
    except ValueError as exc:
        # 缺少 API Key、未知 provider 等配置问题
        print(f"❌ {exc}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
