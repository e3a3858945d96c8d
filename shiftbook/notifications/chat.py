"""Chat webhook transport (Teams-style adaptive cards)."""

import logging
import re

import httpx

from ..config import settings
from .schemas import ChatTarget, NotificationPlan

logger = logging.getLogger(__name__)

_HTML_RULES = [
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"<(?:b|strong)>(.*?)</(?:b|strong)>", re.IGNORECASE | re.DOTALL), r"**\1**"),
    (re.compile(r"<(?:i|em)>(.*?)</(?:i|em)>", re.IGNORECASE | re.DOTALL), r"*\1*"),
    (re.compile(r"<p>(.*?)</p>", re.IGNORECASE | re.DOTALL), "\\1\n\n"),
    (re.compile(r"<[^>]*>"), ""),
]


def html_to_markdown(text: str) -> str:
    for pattern, replacement in _HTML_RULES:
        text = pattern.sub(replacement, text)
    return text


def build_chat_card(plan: NotificationPlan) -> dict:
    details = plan.details
    facts = [
        {"title": "Plant", "value": details.plant or "N/A"},
        {"title": "Shop Order", "value": details.shop_order or "N/A"},
        {
            "title": "Step/Split",
            "value": f"{details.step_id}/{details.split}" if details.step_id and details.split else "N/A",
        },
        {"title": "Workcenter", "value": details.work_center or "N/A"},
        {"title": "User", "value": details.user_id or "N/A"},
        {
            "title": "Timestamp",
            "value": details.created_at.isoformat() if details.created_at else "N/A",
        },
    ]
    return {
        "attachments": [
            {
                "contentType": "application/vnd.microsoft.card.adaptive",
                "content": {
                    "type": "AdaptiveCard",
                    "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
                    "version": "1.4",
                    "body": [
                        {"type": "TextBlock", "text": plan.subject, "weight": "Bolder", "size": "Medium"},
                        {"type": "FactSet", "facts": facts},
                        {"type": "TextBlock", "text": html_to_markdown(plan.message), "wrap": True, "markdown": True},
                    ],
                },
            }
        ]
    }


def send_chat_message(target: ChatTarget, card: dict) -> bool:
    """POST the card to the webhook. Returns True on a 2xx response."""
    try:
        response = httpx.post(target.url, json=card, timeout=settings.chat_timeout_seconds)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            "Chat webhook %s rejected notification: status %s, body %s",
            target.name or "channel", exc.response.status_code, exc.response.text[:500],
        )
        return False
    except httpx.HTTPError:
        logger.exception("Chat webhook %s unreachable", target.name or "channel")
        return False
    return True
