"""
Storyloom 数据模型 - 角色

角色只有 name / description 是必填项，其余叙事档案字段是开放集合，原样保存。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# 常用档案字段（与模型交换时使用的 camelCase 键）及展示标签
CHARACTER_PROFILE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("group", "Group"),
    ("aliases", "Aliases/Titles"),
    ("age", "Age"),
    ("gender", "Gender/Pronouns"),
    ("species", "Species/Origin"),
    ("occupation", "Occupation/Rank"),
    ("affiliations", "Affiliations"),
    ("heightBuild", "Height/Build"),
    ("faceHairEyes", "Face/Hair/Eyes"),
    ("styleOutfit", "Style/Outfit"),
    ("vocalTraits", "Vocal Traits"),
    ("healthAbilities", "Health/Abilities/Limitations"),
    ("coreMotivation", "Core Motivation"),
    ("longTermGoal", "Long-term Goal"),
    ("fearFlaw", "Fear/Flaw"),
    ("moralAlignment", "Moral Alignment"),
    ("temperament", "Temperament"),
    ("emotionalTriggers", "Emotional Triggers"),
    ("originStory", "Origin Story"),
    ("familyMentors", "Family/Mentors"),
    ("secretsRegrets", "Secrets/Regrets"),
    ("relationshipsTimeline", "Relationships Timeline"),
    ("storyRole", "Story Role"),
    ("introductionPoint", "Introduction Point"),
    ("arcSummary", "Arc Summary"),
    ("conflictContribution", "Conflict Contribution"),
    ("changeMetric", "Change Metric"),
    ("dictionSlangTone", "Diction/Slang/Tone"),
    ("gesturesHabits", "Gestures/Habits"),
    ("signaturePhrases", "Signature Phrases"),
    ("internalThoughtStyle", "Internal Thought Style"),
    ("homeEnvironmentInfluence", "Home Environment Influence"),
    ("culturalReligiousBackground", "Cultural/Religious Background"),
    ("economicPoliticalStatus", "Economic/Political Status"),
    ("technologyMagicInteraction", "Technology/Magic Interaction"),
    ("tiesToWorldEvents", "Ties to World Events"),
    ("firstLastAppearance", "First/Last Appearance"),
    ("actorVisualReference", "Actor/Visual Reference"),
    ("symbolicObjectsThemes", "Symbolic Objects/Themes"),
    ("evolutionNotes", "Evolution Notes"),
    ("crossLinks", "Cross Links"),
    ("innerMonologueExample", "Inner Monologue Example"),
    ("playlistSoundPalette", "Playlist/Sound Palette"),
    ("colorPaletteMotifs", "Color Palette/Motifs"),
    ("aiGameReference", "AI/Game Reference"),
    ("developmentNotes", "Development Notes"),
)

PROFILE_FIELD_NAMES = tuple(name for name, _ in CHARACTER_PROFILE_FIELDS)
PROFILE_FIELD_LABELS = dict(CHARACTER_PROFILE_FIELDS)

# 档案之外的核心键
CORE_FIELDS = ("id", "name", "description", "imageUrl", "image_url", "type")


@dataclass
class Character:
    """角色定义"""
    id: str
    name: str                                             # 姓名
    description: str = ""                                 # 概述
    profile: Dict[str, Any] = field(default_factory=dict)  # 叙事档案（开放字段）
    image_url: Optional[str] = None

    def get(self, key: str, default: Any = "") -> Any:
        """读取档案字段，缺失时返回默认值。"""
        return self.profile.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
        data.update(self.profile)
        if self.image_url:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Character":
        profile = {key: value for key, value in data.items() if key not in CORE_FIELDS}
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            description=str(data.get("description") or ""),
            profile=profile,
            image_url=data.get("imageUrl") or data.get("image_url") or None,
        )
