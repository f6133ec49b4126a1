"""Display modes of a saved place and what each one allows."""
from enum import Enum
from typing import Dict

from app.models.places import SavedEntryResponse


class DisplayMode(str, Enum):
    OWN = "own"
    FRIEND = "friend"
    TOP_SAVED = "top_saved"
    LIST = "list"


CAPABILITIES: Dict[DisplayMode, Dict[str, bool]] = {
    DisplayMode.OWN: {
        "can_edit": True,
        "can_delete": True,
        "can_save_copy": False,
        "can_remove_from_list": False,
        "shows_personal_notes": True,
    },
    DisplayMode.FRIEND: {
        "can_edit": False,
        "can_delete": False,
        "can_save_copy": True,
        "can_remove_from_list": False,
        "shows_personal_notes": True,
    },
    DisplayMode.TOP_SAVED: {
        "can_edit": False,
        "can_delete": False,
        "can_save_copy": True,
        "can_remove_from_list": False,
        "shows_personal_notes": False,
    },
    DisplayMode.LIST: {
        "can_edit": False,
        "can_delete": False,
        "can_save_copy": True,
        "can_remove_from_list": True,
        "shows_personal_notes": False,
    },
}


def capabilities_for(mode: DisplayMode) -> Dict[str, bool]:
    """Capability flags of a display mode (a copy, safe to mutate)."""
    return dict(CAPABILITIES[mode])


def present_saved_entry(entry, mode: DisplayMode) -> SavedEntryResponse:
    """Serialize a saved entry as seen in ``mode``; personal notes are hidden where the mode says so."""
    response = SavedEntryResponse.model_validate(entry)
    response.capabilities = capabilities_for(mode)
    if not response.capabilities["shows_personal_notes"]:
        response.note = None
    return response
