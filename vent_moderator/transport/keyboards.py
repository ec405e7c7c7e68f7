"""
Keyboard builders and button payload codec.

Inline buttons carry `<action>_<vent id>` as callback data; the published
channel post links to the bot with a `comments_<vent id>` start payload.
"""

from typing import Any, Dict, Optional, Tuple

VENT_NOW_LABEL = "🗣️ Vent Now"
COMMENTS_DEEP_LINK_PREFIX = "comments_"

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
ACTION_BROWSE = "browse"
ACTION_ADD_COMMENT = "addcomment"
CALLBACK_ACTIONS = (ACTION_APPROVE, ACTION_REJECT, ACTION_BROWSE, ACTION_ADD_COMMENT)


def encode_callback(action: str, vent_id: str) -> str:
    return f"{action}_{vent_id}"


def parse_callback(data: str) -> Optional[Tuple[str, str]]:
    """
    Splits callback data into (action, vent id).

    Returns:
        None when the data is not one of the known actions or carries no id.
    """
    action, sep, vent_id = (data or "").partition("_")
    if not sep or action not in CALLBACK_ACTIONS or not vent_id.strip():
        return None
    return action, vent_id.strip()


def parse_start_payload(text: str) -> Optional[str]:
    """
    Extracts the vent id from a `/start comments_<id>` message.

    Returns:
        The vent id, or None for a plain /start.
    """
    parts = (text or "").split(maxsplit=1)
    if len(parts) < 2:
        return None
    payload = parts[1].strip()
    if not payload.startswith(COMMENTS_DEEP_LINK_PREFIX):
        return None
    vent_id = payload[len(COMMENTS_DEEP_LINK_PREFIX):].strip()
    return vent_id or None


def comments_deep_link(bot_username: str, vent_id: str) -> str:
    return f"https://t.me/{bot_username}?start={COMMENTS_DEEP_LINK_PREFIX}{vent_id}"


def main_keyboard() -> Dict[str, Any]:
    """Persistent reply keyboard with the single "Vent Now" button."""
    return {
        "keyboard": [[{"text": VENT_NOW_LABEL}]],
        "resize_keyboard": True,
        "one_time_keyboard": False,
        "is_persistent": True,
    }


def decision_buttons(vent_id: str) -> Dict[str, Any]:
    return {
        "inline_keyboard": [[
            {"text": "✅ Approve", "callback_data": encode_callback(ACTION_APPROVE, vent_id)},
            {"text": "❌ Reject", "callback_data": encode_callback(ACTION_REJECT, vent_id)},
        ]]
    }


def comments_button(bot_username: str, vent_id: str, count: int) -> Dict[str, Any]:
    """The button under a published vent, showing the live comment count."""
    return {
        "inline_keyboard": [[
            {"text": f"💬 Comments ({count})", "url": comments_deep_link(bot_username, vent_id)},
        ]]
    }


def comment_menu_buttons(vent_id: str) -> Dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": "📖 Browse Comments", "callback_data": encode_callback(ACTION_BROWSE, vent_id)}],
            [{"text": "✍️ Add Comment", "callback_data": encode_callback(ACTION_ADD_COMMENT, vent_id)}],
        ]
    }
