"""Tool declarations offered to the model, in OpenAI function-tool format."""

from __future__ import annotations

from typing import Any, Dict, List

from storyloom.schema import CHARACTER_PROFILE_FIELDS

ADD_SECTION = "addOutlineSection"
UPDATE_SECTION = "updateOutlineSection"
DELETE_SECTION = "deleteOutlineSection"
MOVE_SECTION = "moveOutlineSection"
ADD_CHARACTER = "addCharacter"
UPDATE_CHARACTER = "updateCharacter"
DELETE_CHARACTER = "deleteCharacter"

TOOL_NAMES = (
    ADD_SECTION,
    UPDATE_SECTION,
    DELETE_SECTION,
    MOVE_SECTION,
    ADD_CHARACTER,
    UPDATE_CHARACTER,
    DELETE_CHARACTER,
)


def update_argument_name(field_name: str) -> str:
    """originStory -> newOriginStory"""
    return "new" + field_name[0].upper() + field_name[1:]


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _function(name: str, description: str, properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        },
    }


def _profile_properties() -> Dict[str, Any]:
    return {
        name: _string(f"The character's {label.lower()}. Make a creative, genre-appropriate guess if not specified.")
        for name, label in CHARACTER_PROFILE_FIELDS
    }


def _update_profile_properties() -> Dict[str, Any]:
    return {
        update_argument_name(name): _string(f"The character's new {label.lower()}.")
        for name, label in CHARACTER_PROFILE_FIELDS
    }


def build_tool_definitions() -> List[Dict[str, Any]]:
    add_character_properties = {
        "name": _string("The name of the new character."),
        "description": _string("A detailed description of the character."),
    }
    add_character_properties.update(_profile_properties())

    update_character_properties = {
        "characterId": _string("The ID of the character to update."),
        "newName": _string("The new name for the character."),
        "newDescription": _string("The new description for the character."),
    }
    update_character_properties.update(_update_profile_properties())

    return [
        _function(
            ADD_SECTION,
            "Adds a new section to the project outline. Can be a root section or a sub-section of an existing one.",
            {
                "title": _string("The title of the new section."),
                "content": _string("Optional content for the new section."),
                "parentId": _string("Optional ID of the parent section. If omitted, the section is added to the root."),
            },
            ["title"],
        ),
        _function(
            UPDATE_SECTION,
            "Updates an existing section in the project outline. Can update the title, content, or both.",
            {
                "sectionId": _string("The ID of the section to update."),
                "newTitle": _string("The new title for the section."),
                "newContent": _string("The new content for the section."),
            },
            ["sectionId"],
        ),
        _function(
            DELETE_SECTION,
            "Deletes an existing section, and all of its sub-sections, from the project outline.",
            {"sectionId": _string("The ID of the section to delete.")},
            ["sectionId"],
        ),
        _function(
            MOVE_SECTION,
            "Moves an existing section to a new position in the outline. "
            "Can be used to reorder sections or change their nesting level.",
            {
                "sectionId": _string("The ID of the section to move."),
                "targetParentId": _string(
                    "Optional. The ID of the new parent section. "
                    "If omitted and no sibling is specified, the section becomes a root item."
                ),
                "targetSiblingId": _string("Optional. The ID of an existing section to place the moved section next to."),
                "position": {
                    "type": "string",
                    "description": "Required if 'targetSiblingId' is provided. Can be 'before' or 'after'.",
                    "enum": ["before", "after"],
                },
            },
            ["sectionId"],
        ),
        _function(
            ADD_CHARACTER,
            "Adds a new character to the project, including their core identity details.",
            add_character_properties,
            ["name", "description"],
        ),
        _function(
            UPDATE_CHARACTER,
            "Updates an existing character in the project. Only the supplied fields are changed.",
            update_character_properties,
            ["characterId"],
        ),
        _function(
            DELETE_CHARACTER,
            "Deletes an existing character from the project and removes it from every outline section.",
            {"characterId": _string("The ID of the character to delete.")},
            ["characterId"],
        ),
    ]


TOOL_DEFINITIONS = build_tool_definitions()
