import asyncio
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from storyloom.config import config
from storyloom.editing import IdAllocator, MutationDispatcher, SetSectionImage, UpdateCharacter, sequential_ids
from storyloom.errors import (
    ContentSafetyError,
    ExternalCollaboratorError,
    InvalidOperationError,
    MalformedResponseError,
    TransientCollaboratorError,
    UnsupportedOperationError,
)
from storyloom.generation import (
    NO_INCONSISTENCIES,
    EditorialReviewer,
    Illustrator,
    ProjectGenerator,
    describe_selection,
    describe_story_graph,
    format_project_context,
    portrait_prompt,
)
from storyloom.schema import (
    Character,
    CharacterSelection,
    Note,
    OutlineSection,
    Project,
    SectionSelection,
    Task,
    TaskList,
)


class MockAI:
    """记录调用并返回预设文本的模型。"""

    def __init__(self, response="", fail_when=None):
        self.response = response
        self.fail_when = fail_when
        self.calls = []

    def chat(self, prompt, system_prompt="", history=None, **kwargs):
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt})
        if self.fail_when is not None and self.fail_when(system_prompt):
            raise TransientCollaboratorError("超时")
        return self.response(prompt) if callable(self.response) else self.response


class MockImages:
    def __init__(self, payload="aW1n", error=None):
        self.payload = payload
        self.error = error
        self.requests = []

    def generate(self, prompt, aspect_ratio="1:1"):
        self.requests.append((prompt, aspect_ratio))
        if self.error is not None:
            raise self.error
        return self.payload


def _project():
    return Project(
        id="p1",
        title="Chronoscape",
        genre="Sci-Fi",
        description="时间裂隙",
        outline=[
            OutlineSection(
                id="s1",
                title="Part I",
                content="Kaelen 走进实验室。",
                character_ids=["c1"],
                children=[OutlineSection(id="s2", title="Scene 1")],
            )
        ],
        characters=[
            Character(
                id="c1",
                name="Kaelen",
                description="时间修复师",
                profile={"group": "Protagonists", "faceHairEyes": "灰色眼睛", "storyRole": "Protagonist"},
                image_url="aW1hZ2U=",
            ),
            Character(id="c2", name="Eva", description="指挥官"),
        ],
        notes=[Note(id="n1", title="世界观", content="双月")],
        task_lists=[TaskList(id="t1", title="修订", tasks=[Task(text="补写序章", is_completed=True, id="k1")])],
    )


# ---------------------------------------------------------------- 上下文


def test_project_context_lists_every_targetable_entity():
    context = format_project_context(_project())

    assert context.startswith("PROJECT CONTEXT:\nTitle: Chronoscape")
    assert "- Kaelen (ID: c1) [Group: Protagonists]: 时间修复师" in context
    assert "- Eva (ID: c2) [Group: Ungrouped]: 指挥官" in context
    assert "- Part I (ID: s1)\n  - Scene 1 (ID: s2)" in context
    assert "- 世界观 (ID: n1)" in context
    assert "- 修订 (ID: t1): 补写序章 [x]" in context
    assert "CURRENTLY VIEWING" not in context


def test_project_context_describes_selection():
    project = _project()
    context = format_project_context(project, CharacterSelection(project.characters[0]))

    viewing = context.split("CURRENTLY VIEWING:\n", 1)[1]
    assert viewing.startswith("Character: Kaelen (ID: c1)")
    profile = json.loads(viewing.split("Full Profile: ", 1)[1])
    assert profile["faceHairEyes"] == "灰色眼睛"
    assert "imageUrl" not in profile


def test_describe_selection_rejects_unknown_kind():
    with pytest.raises(TypeError):
        describe_selection(object())


def test_story_graph_lists_associations():
    graph = describe_story_graph(_project())
    assert '- Scene: "Part I" contains characters: [Kaelen]' in graph
    assert '- Scene: "Scene 1" contains characters: [None]' in graph
    assert "- Kaelen (Role: Protagonist)" in graph


# ---------------------------------------------------------------- 项目生成


GENERATED = {
    "characters": [
        {"name": "Kaelen", "description": "时间修复师", "age": 34, "favouriteFood": "面条"},
        {"description": "没有名字的角色"},
    ],
    "outline": [{"title": "Part I", "content": "开端"}, {"title": ""}],
    "notes": [{"title": "世界观", "content": "双月"}],
}


def test_generator_builds_project_from_fenced_json():
    ai = MockAI("```json\n" + json.dumps(GENERATED, ensure_ascii=False) + "\n```")
    generator = ProjectGenerator(ai, ids=IdAllocator(sequential_ids("g")))

    project = generator.generate("Chronoscape", "Sci-Fi", "时间裂隙", project_id="p-new")

    assert project.id == "p-new"
    assert [character.name for character in project.characters] == ["Kaelen"]
    assert project.characters[0].profile == {"age": "34"}
    assert [section.title for section in project.outline] == ["Part I"]
    assert project.notes[0].content == "双月"
    assert "Chronoscape" in ai.calls[0]["prompt"]


def test_generator_repairs_almost_json():
    ai = MockAI('Here you go: {"outline": [{"title": "Act I", "content": "开端"},], "characters": [],}')
    project = ProjectGenerator(ai).generate("草稿")
    assert [section.title for section in project.outline] == ["Act I"]


def test_generator_rejects_unusable_responses():
    with pytest.raises(MalformedResponseError):
        ProjectGenerator(MockAI("抱歉，我无法完成。")).generate("草稿")
    with pytest.raises(MalformedResponseError):
        ProjectGenerator(MockAI('{"characters": [], "outline": []}')).generate("草稿")
    with pytest.raises(InvalidOperationError):
        ProjectGenerator(MockAI("{}")).generate("  ")


# ---------------------------------------------------------------- 审阅


def test_consistency_check_uses_associated_profiles():
    ai = MockAI("Kaelen 的眼睛颜色前后不一致。")
    reviewer = EditorialReviewer(ai, ai)
    project = _project()

    report = reviewer.consistency_check(project.outline[0], project.characters)

    assert report == "Kaelen 的眼睛颜色前后不一致。"
    prompt = ai.calls[0]["prompt"]
    assert "--- CHARACTER: Kaelen ---" in prompt
    assert "Face/Hair/Eyes: 灰色眼睛" in prompt
    assert "Eva" not in prompt


def test_consistency_check_defaults_when_model_is_silent():
    ai = MockAI("   ")
    project = _project()
    assert EditorialReviewer(ai, ai).consistency_check(project.outline[0], project.characters) == NO_INCONSISTENCIES


def test_consistency_check_requires_associated_characters():
    ai = MockAI("unused")
    project = _project()
    with pytest.raises(InvalidOperationError):
        EditorialReviewer(ai, ai).consistency_check(project.outline[0].children[0], project.characters)
    assert ai.calls == []


def test_clean_up_and_reading_level():
    reviewer = EditorialReviewer(MockAI(""), MockAI(""))
    assert reviewer.clean_up("原文") == "原文"
    with pytest.raises(InvalidOperationError):
        reviewer.reading_level("")


def test_council_collects_opinions_and_synthesises():
    members = MockAI("我的建议。")
    chair = MockAI(lambda prompt: "最终建议：" + str(prompt.count("我的建议。")))
    reviewer = EditorialReviewer(members, chair)

    verdict = asyncio.run(reviewer.run_council("结局该怎么写？", _project(), SectionSelection(_project().outline[0])))

    assert verdict == "最终建议：4"
    assert len(members.calls) == 4
    assert all("CURRENTLY VIEWING" in call["system_prompt"] for call in members.calls)


def test_council_fails_when_one_member_fails():
    members = MockAI("意见", fail_when=lambda system_prompt: "Ruthless Mechanics" in system_prompt)
    chair = MockAI("不应被调用")
    reviewer = EditorialReviewer(members, chair)

    with pytest.raises(ExternalCollaboratorError):
        asyncio.run(reviewer.run_council("节奏如何？", _project()))
    assert chair.calls == []


def test_council_wraps_unexpected_member_errors():
    class BrokenAI(MockAI):
        def chat(self, prompt, system_prompt="", history=None, **kwargs):
            raise RuntimeError("连接被重置")

    reviewer = EditorialReviewer(BrokenAI(), MockAI("unused"))
    with pytest.raises(ExternalCollaboratorError, match="写作委员会无法召开"):
        asyncio.run(reviewer.run_council("节奏如何？", _project()))


def test_council_can_tolerate_a_failing_member():
    members = MockAI("意见", fail_when=lambda system_prompt: "Ruthless Mechanics" in system_prompt)
    chair = MockAI(lambda prompt: prompt)
    reviewer = EditorialReviewer(members, chair)

    verdict = asyncio.run(reviewer.run_council("节奏如何？", _project(), tolerate_failures=True))

    assert "(unavailable)" in verdict
    assert verdict.count("意见") == 3


def test_tolerant_council_fails_when_every_member_fails():
    members = MockAI("", fail_when=lambda system_prompt: True)
    reviewer = EditorialReviewer(members, MockAI("unused"))
    with pytest.raises(TransientCollaboratorError):
        asyncio.run(reviewer.run_council("节奏如何？", _project(), tolerate_failures=True))


def test_council_can_be_disabled(monkeypatch):
    monkeypatch.setattr(config, "council_enabled", False)
    reviewer = EditorialReviewer(MockAI("x"), MockAI("x"))
    with pytest.raises(UnsupportedOperationError):
        asyncio.run(reviewer.run_council("节奏如何？", _project()))


# ---------------------------------------------------------------- 配图


def test_portrait_returns_update_intent_applied_by_dispatcher():
    images = MockImages("cG9ydHJhaXQ=")
    project = _project()
    intent = Illustrator(images).portrait(project.characters[0])

    assert intent == UpdateCharacter(character_id="c1", fields={"imageUrl": "cG9ydHJhaXQ="})
    assert images.requests[0][1] == "1:1"
    assert "灰色眼睛" in images.requests[0][0]
    assert MutationDispatcher(project).apply(intent).success
    assert project.characters[0].image_url == "cG9ydHJhaXQ="


def test_illustration_uses_wide_ratio():
    images = MockImages("c2NlbmU=")
    project = _project()
    intent = Illustrator(images).illustrate(project.outline[0], project.genre)
    assert intent == SetSectionImage(section_id="s1", image_url="c2NlbmU=")
    assert images.requests[0][1] == "16:9"
    assert "Sci-Fi" in images.requests[0][0]


def test_batch_portraits_can_keep_going_after_refusal():
    class PickyImages(MockImages):
        def generate(self, prompt, aspect_ratio="1:1"):
            if "Eva" in prompt:
                raise ContentSafetyError("拒绝")
            return super().generate(prompt, aspect_ratio)

    outcomes = asyncio.run(
        Illustrator(PickyImages()).portraits(_project().characters, tolerate_failures=True)
    )

    assert [outcome.character_id for outcome in outcomes] == ["c1", "c2"]
    assert outcomes[0].intent is not None
    assert isinstance(outcomes[1].error, ContentSafetyError)


def test_portrait_prompt_falls_back_for_missing_fields():
    prompt = portrait_prompt(Character(id="c9", name="无名", description="旅人"))
    assert "Unspecified" in prompt
    assert "Visual Reference" not in prompt


def test_batch_portraits_fail_as_a_whole_by_default():
    images = MockImages(error=ContentSafetyError("拒绝"))
    with pytest.raises(ContentSafetyError):
        asyncio.run(Illustrator(images).portraits(_project().characters))


def test_batch_portraits_return_one_outcome_per_character():
    outcomes = asyncio.run(Illustrator(MockImages("cA==")).portraits(_project().characters))
    assert [outcome.intent.character_id for outcome in outcomes] == ["c1", "c2"]
    assert all(outcome.error is None for outcome in outcomes)
