"""
编辑审阅

连贯性检查、阅读难度、文字润色、关联图分析，以及多角色“写作委员会”。
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Tuple

from storyloom.config import config
from storyloom.errors import ExternalCollaboratorError, InvalidOperationError, UnsupportedOperationError
from storyloom.schema import Character, OutlineSection, Project, Selection

from .context import describe_story_graph, format_character_profile, format_project_context
from .prompts import (
    CHAIRPERSON_SYSTEM_PROMPT,
    CLEAN_UP_PROMPT,
    CONSISTENCY_CHECK_PROMPT,
    COUNCIL_MEMBERS,
    COUNCIL_SYNTHESIS_PROMPT,
    GRAPH_ANALYSIS_PROMPT,
    NO_INCONSISTENCIES,
    READING_LEVEL_PROMPT,
)

logger = logging.getLogger(__name__)

EDITOR_SYSTEM_PROMPT = "You are a careful fiction editor."


def _require_text(text: str, what: str) -> str:
    if text is None or not str(text).strip():
        raise InvalidOperationError(f"{what}不能为空")
    return str(text)


class EditorialReviewer:
    """编辑审阅服务。

    ``ai_client`` 处理轻量任务（阅读难度、润色、委员会成员），
    ``review_client`` 处理需要更强推理的任务（连贯性、关联图、委员会总结）。
    """

    def __init__(self, ai_client=None, review_client=None):
        if ai_client is None:
            from storyloom.models import get_client

            ai_client = get_client()
        if review_client is None:
            if config.review_model:
                from storyloom.models import get_review_client

                review_client = get_review_client()
            else:
                review_client = ai_client
        self.ai = ai_client
        self.reviewer = review_client

    def consistency_check(self, section: OutlineSection, characters: Sequence[Character]) -> str:
        """对照关联角色的外形与能力档案检查场景。"""
        wanted = set(section.character_ids)
        associated = [character for character in characters if character.id in wanted]
        if not associated:
            raise InvalidOperationError(f"大纲节点「{section.title}」没有关联角色，无法进行连贯性检查")

        prompt = CONSISTENCY_CHECK_PROMPT.format(
            no_issues=NO_INCONSISTENCIES,
            character_profiles="\n".join(format_character_profile(character) for character in associated),
            title=section.title,
            content=section.content,
        )
        report = self.reviewer.chat(prompt, system_prompt=EDITOR_SYSTEM_PROMPT).strip()
        return report or NO_INCONSISTENCIES

    def reading_level(self, text: str) -> str:
        prompt = READING_LEVEL_PROMPT.format(text=_require_text(text, "待分析文本"))
        return self.ai.chat(prompt, system_prompt=EDITOR_SYSTEM_PROMPT).strip()

    def clean_up(self, text: str) -> str:
        """润色文本；模型返回为空时原样返回。"""
        original = _require_text(text, "待润色文本")
        cleaned = self.ai.chat(CLEAN_UP_PROMPT.format(text=original), system_prompt=EDITOR_SYSTEM_PROMPT).strip()
        return cleaned or original

    def graph_analysis(self, project: Project) -> str:
        prompt = GRAPH_ANALYSIS_PROMPT.format(graph=describe_story_graph(project))
        return self.reviewer.chat(prompt, system_prompt=EDITOR_SYSTEM_PROMPT).strip()

    @staticmethod
    def _collect_tolerant(results: Sequence[Any]) -> List[str]:
        opinions: List[str] = []
        errors: List[BaseException] = []
        for (name, _), result in zip(COUNCIL_MEMBERS, results):
            if isinstance(result, BaseException):
                logger.warning("委员会成员 %s 未能给出意见: %s", name, result)
                errors.append(result)
                opinions.append(f"**{name}**: (unavailable)")
            else:
                opinions.append(f"**{result[0]}**: {result[1]}")

        if len(errors) == len(COUNCIL_MEMBERS):
            first = errors[0]
            if isinstance(first, ExternalCollaboratorError):
                raise first
            raise ExternalCollaboratorError(f"写作委员会无法召开: {first}") from first
        return opinions

    async def _ask_member(self, name: str, role: str, query: str, context: str) -> Tuple[str, str]:
        response = await asyncio.to_thread(self.ai.chat, query, system_prompt=f"{role}\n\n{context}")
        return name, (response or "").strip() or "(No comment)"

    async def run_council(
        self,
        query: str,
        project: Project,
        selection: Optional[Selection] = None,
        *,
        tolerate_failures: bool = False,
    ) -> str:
        """四位成员并发给出意见，再由主席汇总。

        默认任一成员失败即整体失败；``tolerate_failures=True`` 时失败成员在汇总中标注为
        unavailable，只有全部失败才抛出第一个错误。
        """
        if not config.council_enabled:
            raise UnsupportedOperationError("写作委员会功能已关闭 (STORYLOOM_COUNCIL_ENABLED)")
        query = _require_text(query, "讨论问题")
        context = format_project_context(project, selection)
        asks = [self._ask_member(name, role, query, context) for name, role in COUNCIL_MEMBERS]

        if not tolerate_failures:
            try:
                results = await asyncio.gather(*asks)
            except ExternalCollaboratorError:
                raise
            except Exception as exc:
                raise ExternalCollaboratorError(f"写作委员会无法召开: {exc}") from exc
            opinions = [f"**{name}**: {opinion}" for name, opinion in results]
        else:
            opinions = self._collect_tolerant(await asyncio.gather(*asks, return_exceptions=True))

        synthesis = COUNCIL_SYNTHESIS_PROMPT.format(query=query, opinions="\n\n".join(opinions))
        verdict = await asyncio.to_thread(self.reviewer.chat, synthesis, system_prompt=CHAIRPERSON_SYSTEM_PROMPT)
        return (verdict or "").strip() or "The Chairperson remained silent."
