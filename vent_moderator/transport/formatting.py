"""
Message texts sent by the bot.

Everything here renders with parse mode HTML; user-supplied text is escaped.
"""

from html import escape

from vent_moderator.models.dtos import CommentDTO, VentDTO


def channel_post_text(vent: VentDTO, signature: str) -> str:
    return f"<b>Vent #{vent.public_number}</b>\n\n{escape(vent.text)}\n\n<b>{escape(signature)}</b>"


def admin_submission_text(vent: VentDTO) -> str:
    handle = f"@{vent.username}" if vent.username else "no_username"
    return (
        "🆕 <b>New Vent Submission</b>\n\n"
        f"From: {escape(vent.display_name or '')} ({escape(handle)})\n"
        f"ID: <code>{vent.id}</code>\n\n"
        f"{escape(vent.text)}"
    )


def pending_item_text(vent: VentDTO) -> str:
    return f"ID: <code>{vent.id}</code>\nFrom: {escape(vent.display_name or '')}\n\n{escape(vent.text)}"


def approved_notice(public_number: int) -> str:
    return f"✅ Your vent has been approved and posted as Vent #{public_number}.\nThank you for sharing!"


def rejected_notice() -> str:
    return "❌ Your vent has been reviewed but was not approved for posting."


def comment_menu_text(vent: VentDTO, signature: str) -> str:
    number = vent.public_number if vent.public_number is not None else "?"
    return f"Vent #{number}\n\n{escape(vent.text)}\n\n{escape(signature)}"


def comment_text(comment: CommentDTO) -> str:
    return f"💬 {escape(comment.text)}\n\n👤 Anonymous"
