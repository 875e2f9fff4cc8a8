"""
角色肖像与场景配图

生成结果不直接写入项目，而是返回意图，交由调度器统一应用。
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from storyloom.editing import SetSectionImage, UpdateCharacter
from storyloom.errors import ExternalCollaboratorError
from storyloom.schema import Character, OutlineSection

from .prompts import ILLUSTRATION_PROMPT, PORTRAIT_PROMPT

logger = logging.getLogger(__name__)


def portrait_prompt(character: Character) -> str:
    basic_info = " ".join(
        f"{label}: {character.get(key)}."
        for key, label in (("age", "Age"), ("gender", "Gender"), ("species", "Species"))
        if character.get(key)
    )
    appearance = ", ".join(
        str(character.get(key)) for key in ("faceHairEyes", "heightBuild") if character.get(key)
    )
    reference = character.get("actorVisualReference")
    return PORTRAIT_PROMPT.format(
        name=character.name,
        basic_info=basic_info or "Unspecified.",
        description=character.description,
        appearance=appearance or "Unspecified",
        outfit=character.get("styleOutfit") or "Unspecified",
        visual_reference=f"Visual Reference: {reference}.\n" if reference else "",
    )


def illustration_prompt(section: OutlineSection, genre: str) -> str:
    return ILLUSTRATION_PROMPT.format(
        genre=genre or "fiction",
        title=section.title,
        content=section.content,
    )


@dataclass
class PortraitOutcome:
    """批量生成肖像时单个角色的结果。"""
    character_id: str
    intent: Optional[UpdateCharacter] = None
    error: Optional[ExternalCollaboratorError] = None


class Illustrator:
    """图像生成的业务封装。"""

    def __init__(self, image_generator=None):
        if image_generator is None:
            from storyloom.models import ImageGenerator

            image_generator = ImageGenerator()
        self.images = image_generator

    def portrait(self, character: Character) -> UpdateCharacter:
        """生成 1:1 角色肖像。"""
        payload = self.images.generate(portrait_prompt(character), aspect_ratio="1:1")
        return UpdateCharacter(character_id=character.id, fields={"imageUrl": payload})

    def illustrate(self, section: OutlineSection, genre: str) -> SetSectionImage:
        """生成 16:9 场景配图。"""
        payload = self.images.generate(illustration_prompt(section, genre), aspect_ratio="16:9")
        return SetSectionImage(section_id=section.id, image_url=payload)

    async def portraits(
        self,
        characters: Sequence[Character],
        *,
        tolerate_failures: bool = False,
    ) -> List[PortraitOutcome]:
        """并发为多个角色生成肖像。

        默认任一角色失败即整体失败；``tolerate_failures=True`` 时失败记录在对应结果里。
        """
        if not tolerate_failures:
            intents = await asyncio.gather(
                *(asyncio.to_thread(self.portrait, character) for character in characters)
            )
            return [
                PortraitOutcome(character_id=character.id, intent=intent)
                for character, intent in zip(characters, intents)
            ]

        async def _one(character: Character) -> PortraitOutcome:
            try:
                intent = await asyncio.to_thread(self.portrait, character)
            except ExternalCollaboratorError as exc:
                logger.warning("角色 %s 肖像生成失败: %s", character.name, exc)
                return PortraitOutcome(character_id=character.id, error=exc)
            return PortraitOutcome(character_id=character.id, intent=intent)

        return list(await asyncio.gather(*(_one(character) for character in characters)))
