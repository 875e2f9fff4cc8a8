import os
import sys
import threading

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from storyloom.editing import (
    AddCharacter,
    AddNote,
    AddSection,
    AddTask,
    AddTaskList,
    AssociateCharacter,
    DeleteCharacter,
    DeleteSection,
    IdAllocator,
    MoveSection,
    MutationDispatcher,
    SetSectionImage,
    SetTaskCompleted,
    ToggleCharacterAssociation,
    UpdateCharacter,
    UpdateSection,
    sequential_ids,
)
from storyloom.models.base import ToolCall
from storyloom.schema import Project


def _dispatcher(project=None):
    project = project or Project(id="p1", title="测试项目", genre="奇幻")
    return MutationDispatcher(project, IdAllocator(sequential_ids("d")))


def test_update_unknown_section_fails_and_leaves_project_unchanged():
    dispatcher = _dispatcher()
    dispatcher.apply(AddSection(title="Act I"))
    before = dispatcher.project.to_dict()

    result = dispatcher.apply(UpdateSection(section_id="ghost", new_title="X"))

    assert result.success is False
    assert result.to_dict()["errorKind"] == "NotFoundError"
    assert dispatcher.project.to_dict() == before
    assert dispatcher.busy is False


def test_add_section_returns_new_id():
    dispatcher = _dispatcher()
    result = dispatcher.apply(AddSection(title="Act I", content="开场"))
    assert result.success
    section_id = result.data["sectionId"]
    assert dispatcher.tree.get(section_id).content == "开场"
    assert result.to_dict()["data"]["sectionId"] == section_id


def test_move_scenario_through_dispatcher():
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    b = dispatcher.apply(AddSection(title="Scene 1", parent_id=a)).data["sectionId"]

    result = dispatcher.apply(MoveSection(section_id=b))

    assert result.success
    assert result.data["parentId"] is None
    assert [section.id for section in dispatcher.project.outline] == [a, b]


def test_cycle_move_is_invalid_operation():
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    b = dispatcher.apply(AddSection(title="Scene 1", parent_id=a)).data["sectionId"]
    before = dispatcher.project.to_dict()

    result = dispatcher.apply(MoveSection(section_id=a, target_parent_id=b))

    assert result.error_kind == "InvalidOperationError"
    assert dispatcher.project.to_dict() == before


def test_delete_section_lists_removed_subtree():
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    b = dispatcher.apply(AddSection(title="Scene 1", parent_id=a)).data["sectionId"]
    result = dispatcher.apply(DeleteSection(section_id=a))
    assert result.data["removedSectionIds"] == [a, b]
    assert dispatcher.project.outline == []


def test_delete_character_reports_affected_sections():
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    c = dispatcher.apply(AddCharacter(fields={"name": "Kaelen", "description": "时间修复师"})).data["characterId"]
    assert dispatcher.apply(AssociateCharacter(section_id=a, character_id=c)).data["changed"] is True

    result = dispatcher.apply(DeleteCharacter(character_id=c))

    assert result.success
    assert result.data["affectedSectionIds"] == [a]
    assert dispatcher.tree.get(a).character_ids == []


def test_toggle_and_image_intents():
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    c = dispatcher.apply(AddCharacter(fields={"name": "Eva", "description": "指挥官"})).data["characterId"]

    assert dispatcher.apply(ToggleCharacterAssociation(section_id=a, character_id=c)).data["associated"] is True
    assert dispatcher.apply(SetSectionImage(section_id=a, image_url="aGVsbG8=")).success
    assert dispatcher.tree.get(a).image_url == "aGVsbG8="

    result = dispatcher.apply(UpdateCharacter(character_id=c, fields={"imageUrl": "d29ybGQ="}))
    assert result.success
    assert dispatcher.roster.get(c).image_url == "d29ybGQ="


def test_note_and_task_intents():
    dispatcher = _dispatcher()
    assert dispatcher.apply(AddNote(title="世界观", content="双月")).success
    list_id = dispatcher.apply(AddTaskList(title="修订")).data["taskListId"]
    task_id = dispatcher.apply(AddTask(task_list_id=list_id, text="补写序章")).data["taskId"]
    assert dispatcher.apply(SetTaskCompleted(task_list_id=list_id, task_id=task_id)).success
    assert dispatcher.project.task_lists[0].tasks[0].is_completed is True

    result = dispatcher.apply(AddTask(task_list_id=list_id, text=""))
    assert result.error_kind == "InvalidOperationError"
    assert len(dispatcher.project.task_lists[0].tasks) == 1


def test_unknown_intent_is_unsupported():
    class Teleport:
        kind = "teleportSection"

    dispatcher = _dispatcher()
    result = dispatcher.apply(Teleport())
    assert result.success is False
    assert result.error_kind == "UnsupportedOperationError"
    assert "teleportSection" in result.message


def test_unexpected_error_rolls_back_partial_changes(monkeypatch):
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    before = dispatcher.project.to_dict()

    def broken_update(section_id, new_title=None, new_content=None, image_url=None):
        dispatcher.project.outline[0].title = "改了一半"
        raise RuntimeError("boom")

    monkeypatch.setattr(dispatcher.tree, "update_section", broken_update)
    result = dispatcher.apply(UpdateSection(section_id=a, new_title="新标题"))

    assert result.success is False
    assert result.error_kind == "InvalidOperationError"
    assert dispatcher.project.to_dict() == before
    assert dispatcher.busy is False


def test_rollback_keeps_component_list_references():
    dispatcher = _dispatcher()
    dispatcher.apply(AddSection(title="Act I"))
    dispatcher.apply(MoveSection(section_id="ghost"))

    assert dispatcher.tree.roots is dispatcher.project.outline
    assert dispatcher.roster.characters is dispatcher.project.characters
    assert dispatcher.apply(AddSection(title="Act II")).success
    assert len(dispatcher.project.outline) == 2


def test_subscribers_only_see_successful_changes():
    dispatcher = _dispatcher()
    seen = []
    dispatcher.subscribe(lambda intent, result: seen.append((intent.kind, result.success)))

    dispatcher.apply(AddSection(title="Act I"))
    dispatcher.apply(DeleteSection(section_id="ghost"))

    assert seen == [("addOutlineSection", True)]


def test_failing_subscriber_does_not_fail_the_change():
    dispatcher = _dispatcher()

    def explode(intent, result):
        raise RuntimeError("磁盘已满")

    dispatcher.subscribe(explode)
    assert dispatcher.apply(AddSection(title="Act I")).success


def test_concurrent_apply_is_rejected_while_another_thread_applies(monkeypatch):
    dispatcher = _dispatcher()
    a = dispatcher.apply(AddSection(title="Act I")).data["sectionId"]
    entered = threading.Event()
    release = threading.Event()
    original = dispatcher.tree.update_section

    def slow_then_broken(section_id, new_title=None, new_content=None, image_url=None):
        original(section_id, new_title=new_title)
        entered.set()
        release.wait(timeout=5)
        raise RuntimeError("旧轮次失败")

    monkeypatch.setattr(dispatcher.tree, "update_section", slow_then_broken)
    results = []
    worker = threading.Thread(target=lambda: results.append(dispatcher.apply(UpdateSection(section_id=a, new_title="改了一半"))))
    worker.start()
    assert entered.wait(timeout=5)

    concurrent = dispatcher.apply(AddSection(title="Act II"))
    release.set()
    worker.join(timeout=5)

    assert concurrent.success is False
    assert concurrent.error_kind == "InvalidOperationError"
    assert results[0].success is False
    # 旧调用回滚后不会抹掉任何已经提交的新变更
    assert [section.title for section in dispatcher.project.outline] == ["Act I"]
    assert dispatcher.busy is False
    assert dispatcher.apply(AddSection(title="Act II")).success
    assert [section.title for section in dispatcher.project.outline] == ["Act I", "Act II"]


def test_apply_tool_call_parses_and_applies():
    dispatcher = _dispatcher()
    result = dispatcher.apply_tool_call(
        ToolCall(id="call-1", name="addOutlineSection", arguments='{"title": "序章"}')
    )
    assert result.success
    assert dispatcher.project.outline[0].title == "序章"


def test_apply_tool_call_rejects_unknown_tool_and_bad_arguments():
    dispatcher = _dispatcher()
    unknown = dispatcher.apply_tool_call(ToolCall(id="c1", name="renameProject", arguments="{}"))
    assert unknown.error_kind == "UnsupportedOperationError"

    bad_json = dispatcher.apply_tool_call(ToolCall(id="c2", name="addOutlineSection", arguments="{title"))
    assert bad_json.error_kind == "UnsupportedOperationError"
    assert dispatcher.project.outline == []
