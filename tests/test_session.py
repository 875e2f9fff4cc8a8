import json
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from storyloom.editing import AddSection, IdAllocator, MutationDispatcher, sequential_ids
from storyloom.errors import ExternalCollaboratorError, InvalidOperationError, NotFoundError
from storyloom.interactive import AssistantSession, attach_autosave
from storyloom.models import QueryResult, ToolCall
from storyloom.schema import Character, CharacterSelection, Note, OutlineSection, Project, SectionSelection, selection_id


class MockModel:
    """按顺序返回预设结果的模型。"""

    def __init__(self, results, on_query=None):
        self.results = list(results)
        self.on_query = on_query
        self.calls = []

    def query(self, history, context, tools=None, system_prompt=None):
        self.calls.append({"history": list(history), "context": context, "tools": tools})
        if self.on_query is not None:
            self.on_query()
        return self.results.pop(0)


class MockRepository:
    def __init__(self):
        self.saved = []

    def save_project(self, project):
        self.saved.append(project.to_dict())


class FailingRepository:
    def __init__(self):
        self.attempts = 0

    def save_project(self, project):
        self.attempts += 1
        raise OSError("磁盘已满")


def _project():
    return Project(
        id="p1",
        title="Chronoscape",
        genre="Sci-Fi",
        outline=[OutlineSection(id="s1", title="Part I", character_ids=["c1"])],
        characters=[Character(id="c1", name="Kaelen", description="时间修复师")],
        notes=[Note(id="n1", title="世界观", content="时间裂隙")],
    )


def _session(model, project=None):
    project = project or _project()
    dispatcher = MutationDispatcher(project, IdAllocator(sequential_ids("new")))
    return AssistantSession(project, model=model, dispatcher=dispatcher)


def test_plain_reply_is_recorded_in_history():
    model = MockModel([QueryResult(text="可以从 Kaelen 的动机入手。")])
    session = _session(model)

    result = session.send("下一步写什么？")

    assert result.text == "可以从 Kaelen 的动机入手。"
    assert result.tool_calls == []
    assert session.history == [
        {"role": "user", "content": "下一步写什么？"},
        {"role": "assistant", "content": "可以从 Kaelen 的动机入手。"},
    ]
    assert "Kaelen (ID: c1)" in model.calls[0]["context"]
    assert model.calls[0]["tools"]
    assert session.busy is False


def test_tool_calls_are_applied_and_reported_to_history():
    calls = [
        ToolCall(id="call-1", name="addOutlineSection", arguments='{"title": "Part II"}'),
        ToolCall(id="call-2", name="updateOutlineSection", arguments='{"sectionId": "ghost", "newTitle": "X"}'),
    ]
    model = MockModel([QueryResult(text=None, tool_calls=calls)])
    session = _session(model)

    result = session.send("加一个第二部分")

    assert [item.success for item in result.tool_results] == [True, False]
    assert [section.title for section in session.project.outline] == ["Part I", "Part II"]
    assert "✅ addOutlineSection" in result.actions_summary
    assert "❌ updateOutlineSection" in result.actions_summary

    roles = [message["role"] for message in session.history]
    assert roles == ["user", "assistant", "tool", "tool"]
    assert session.history[1]["tool_calls"][0]["function"]["name"] == "addOutlineSection"
    failure = json.loads(session.history[3]["content"])
    assert session.history[3]["tool_call_id"] == "call-2"
    assert failure == {"success": False, "errorKind": "NotFoundError", "message": failure["message"]}


def test_history_is_sent_on_next_turn():
    model = MockModel([QueryResult(text="好的"), QueryResult(text="继续")])
    session = _session(model)
    session.send("第一句")
    session.send("第二句")

    second_history = model.calls[1]["history"]
    assert [message["content"] for message in second_history] == ["第一句", "好的", "第二句"]


def test_blank_message_is_rejected():
    session = _session(MockModel([]))
    with pytest.raises(InvalidOperationError):
        session.send("   ")


def test_second_send_while_busy_is_rejected():
    errors = []
    holder = {}

    def reenter():
        try:
            holder["session"].send("插队")
        except InvalidOperationError as exc:
            errors.append(exc)

    model = MockModel([QueryResult(text="完成")], on_query=reenter)
    session = _session(model)
    holder["session"] = session

    assert session.send("第一条").text == "完成"
    assert len(errors) == 1
    assert session.busy is False


def test_abandoned_turn_is_discarded():
    holder = {}
    calls = [ToolCall(id="call-1", name="deleteOutlineSection", arguments='{"sectionId": "s1"}')]
    model = MockModel(
        [QueryResult(text="删掉了", tool_calls=calls)],
        on_query=lambda: holder["session"].abandon(),
    )
    session = _session(model)
    holder["session"] = session

    result = session.send("删除第一部分")

    assert result.discarded is True
    assert session.history == []
    assert [section.id for section in session.project.outline] == ["s1"]
    assert session.busy is False


def test_selection_follows_mutations():
    calls = [ToolCall(id="call-1", name="updateOutlineSection", arguments='{"sectionId": "s1", "newTitle": "序章"}')]
    model = MockModel([QueryResult(tool_calls=calls)])
    session = _session(model)
    session.select_by_id("s1")

    session.send("改个标题")

    assert isinstance(session.selection, SectionSelection)
    assert session.selection.section.title == "序章"


def test_selection_is_cleared_when_entity_is_deleted():
    calls = [ToolCall(id="call-1", name="deleteCharacter", arguments='{"characterId": "c1"}')]
    session = _session(MockModel([QueryResult(tool_calls=calls)]))
    assert isinstance(session.select_by_id("c1"), CharacterSelection)

    session.send("删掉 Kaelen")

    assert session.selection is None
    assert session.project.outline[0].character_ids == []


def test_select_by_unknown_id():
    session = _session(MockModel([]))
    selection = session.select_by_id("n1")
    assert selection.note.title == "世界观"
    assert selection_id(selection) == "n1"
    with pytest.raises(NotFoundError):
        session.select_by_id("ghost")


def test_reset_clears_history_and_selection():
    session = _session(MockModel([QueryResult(text="好")]))
    session.send("你好")
    session.select_by_id("s1")
    generation = session.generation

    session.reset()

    assert session.history == []
    assert session.selection is None
    assert session.generation == generation + 1


def test_autosave_after_successful_changes():
    calls = [
        ToolCall(id="call-1", name="addOutlineSection", arguments='{"title": "Part II"}'),
        ToolCall(id="call-2", name="deleteOutlineSection", arguments='{"sectionId": "ghost"}'),
    ]
    session = _session(MockModel([QueryResult(tool_calls=calls)]))
    repository = MockRepository()
    attach_autosave(session, repository)

    session.send("加一节")

    assert len(repository.saved) == 1
    assert [item["title"] for item in repository.saved[0]["outline"]] == ["Part I", "Part II"]


def test_greeting_mentions_project_title():
    session = _session(MockModel([]))
    assert "Chronoscape" in session.greeting()


def test_failed_autosave_is_reported_by_send():
    calls = [ToolCall(id="call-1", name="addOutlineSection", arguments='{"title": "Part II"}')]
    session = _session(MockModel([QueryResult(text="已添加", tool_calls=calls)]))
    repository = FailingRepository()
    attach_autosave(session, repository)

    with pytest.raises(ExternalCollaboratorError, match="项目保存失败"):
        session.send("加一节")

    assert repository.attempts == 1
    # 修改和对话历史仍保留在内存中，下一次保存可以补上
    assert [section.title for section in session.project.outline] == ["Part I", "Part II"]
    assert session.history[0] == {"role": "user", "content": "加一节"}
    assert session.save_error is None
    assert session.busy is False


def test_failed_autosave_is_reported_by_apply():
    session = _session(MockModel([]))
    attach_autosave(session, FailingRepository())

    with pytest.raises(ExternalCollaboratorError) as excinfo:
        session.apply(AddSection(title="Part II"))

    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.retryable is False


def test_later_successful_save_clears_the_save_error():
    session = _session(MockModel([]))
    repository = FailingRepository()
    attach_autosave(session, repository)
    with pytest.raises(ExternalCollaboratorError):
        session.apply(AddSection(title="Part II"))

    session.dispatcher._subscribers.clear()
    working = MockRepository()
    attach_autosave(session, working)
    result = session.apply(AddSection(title="Part III"))

    assert result.success
    assert len(working.saved) == 1
    assert [item["title"] for item in working.saved[0]["outline"]] == ["Part I", "Part II", "Part III"]
