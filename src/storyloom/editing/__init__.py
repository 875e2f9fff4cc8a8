"""Editing core: outline tree, character roster, cross references and the mutation dispatcher."""

from .crossref import CrossReferenceIndex
from .dispatcher import DispatchResult, DispatcherState, MutationDispatcher
from .ids import RESERVED_IMAGE_PREFIX, IdAllocator, sequential_ids
from .intents import (
    AddCharacter,
    AddNote,
    AddSection,
    AddTask,
    AddTaskList,
    AssociateCharacter,
    DeleteCharacter,
    DeleteNote,
    DeleteSection,
    DeleteTask,
    DeleteTaskList,
    DissociateCharacter,
    Intent,
    MoveSection,
    SetSectionImage,
    SetTaskCompleted,
    ToggleCharacterAssociation,
    UpdateCharacter,
    UpdateNote,
    UpdateSection,
)
from .notebook import Notebook
from .outline_tree import MOVE_POSITIONS, OutlineListing, OutlineTree, parse_listing_ids
from .roster import CharacterRemoval, CharacterRoster

__all__ = [
    "CrossReferenceIndex",
    "DispatchResult",
    "DispatcherState",
    "MutationDispatcher",
    "RESERVED_IMAGE_PREFIX",
    "IdAllocator",
    "sequential_ids",
    "AddCharacter",
    "AddNote",
    "AddSection",
    "AddTask",
    "AddTaskList",
    "AssociateCharacter",
    "DeleteCharacter",
    "DeleteNote",
    "DeleteSection",
    "DeleteTask",
    "DeleteTaskList",
    "DissociateCharacter",
    "Intent",
    "MoveSection",
    "SetSectionImage",
    "SetTaskCompleted",
    "ToggleCharacterAssociation",
    "UpdateCharacter",
    "UpdateNote",
    "UpdateSection",
    "Notebook",
    "MOVE_POSITIONS",
    "OutlineListing",
    "OutlineTree",
    "parse_listing_ids",
    "CharacterRemoval",
    "CharacterRoster",
]
