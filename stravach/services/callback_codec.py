"""Compact payloads for Telegram inline buttons.

Telegram caps ``callback_data`` at 64 bytes, so a button never carries the
name itself, only ``activity:<activity_id>:<action>`` where action is the
1-based index into the options currently held for that chat and activity,
``0`` for regenerate or ``C`` for a custom prompt.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from stravach.errors import InvalidCallback

CALLBACK_TAG = "activity"
CALLBACK_DELIMITER = ":"
MAX_CALLBACK_BYTES = 64

REGENERATE_TOKEN = "0"
CUSTOM_PROMPT_TOKEN = "C"

MAX_NAME_LENGTH = 44

_UNSAFE_NAME_CHARS = re.compile(r"[^\w\s!&()\-\"'?,.]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


class CallbackAction(str, Enum):
    REGENERATE = "regenerate"
    CUSTOM_PROMPT = "enter-custom-prompt"


Action = Union[int, CallbackAction]


@dataclass(frozen=True)
class CallbackPayload:
    tag: str
    activity_id: int
    action: Action

    @property
    def is_selection(self) -> bool:
        return isinstance(self.action, int)


def _encode_action(action: Action) -> str:
    if action == CallbackAction.REGENERATE:
        return REGENERATE_TOKEN
    if action == CallbackAction.CUSTOM_PROMPT:
        return CUSTOM_PROMPT_TOKEN
    if isinstance(action, int) and not isinstance(action, bool) and action >= 1:
        return str(action)
    raise ValueError(f"Unsupported callback action: {action!r}")


def encode_callback(activity_id: int, action: Action) -> str:
    if activity_id < 0:
        raise ValueError(f"Activity id must be non-negative, got {activity_id}")
    data = CALLBACK_DELIMITER.join([CALLBACK_TAG, str(activity_id), _encode_action(action)])
    if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
        raise ValueError(f"Callback data too long: {data}")
    return data


def decode_callback(data: str | None) -> CallbackPayload:
    """Parse button payload. Raises InvalidCallback for anything not produced by encode_callback."""
    if not data:
        raise InvalidCallback("Empty callback data")

    parts = data.split(CALLBACK_DELIMITER)
    if len(parts) < 3:
        raise InvalidCallback(f"Invalid callback data: {data}")

    tag, raw_activity_id, raw_action = parts[0], parts[1], parts[2]
    if tag != CALLBACK_TAG:
        raise InvalidCallback(f"Unexpected callback tag: {tag}")
    if not _is_decimal(raw_activity_id):
        raise InvalidCallback(f"Invalid activity id in callback: {raw_activity_id}")

    return CallbackPayload(tag=tag, activity_id=int(raw_activity_id), action=_decode_action(raw_action))


def _is_decimal(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _decode_action(raw_action: str) -> Action:
    if raw_action == REGENERATE_TOKEN:
        return CallbackAction.REGENERATE
    if raw_action == CUSTOM_PROMPT_TOKEN:
        return CallbackAction.CUSTOM_PROMPT
    if _is_decimal(raw_action) and int(raw_action) >= 1:
        return int(raw_action)
    raise InvalidCallback(f"Unknown callback action: {raw_action}")


def clean_name(name: str) -> str:
    """Drop characters Strava titles should not carry and normalize whitespace."""
    cleaned = _UNSAFE_NAME_CHARS.sub("", name or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if len(cleaned) > MAX_NAME_LENGTH:
        return cleaned[:40] + "..."
    return cleaned
