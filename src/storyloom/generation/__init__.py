"""
Generation 模块 - 上下文构建、项目生成、编辑审阅与配图
"""
from .context import (
    describe_selection,
    describe_story_graph,
    format_character_profile,
    format_project_context,
)
from .illustration import Illustrator, PortraitOutcome, illustration_prompt, portrait_prompt
from .project_builder import ProjectGenerator
from .prompts import ASSISTANT_SYSTEM_PROMPT, GREETING_TEMPLATE, NO_INCONSISTENCIES
from .review import EditorialReviewer

__all__ = [
    "describe_selection",
    "describe_story_graph",
    "format_character_profile",
    "format_project_context",
    "Illustrator",
    "PortraitOutcome",
    "illustration_prompt",
    "portrait_prompt",
    "ProjectGenerator",
    "ASSISTANT_SYSTEM_PROMPT",
    "GREETING_TEMPLATE",
    "NO_INCONSISTENCIES",
    "EditorialReviewer",
]
