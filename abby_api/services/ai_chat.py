"""
AI therapist replies
Single best-effort call to the Cohere chat API with a static fallback
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import (
    AI_REQUEST_TIMEOUT_SECONDS,
    AI_RESPONSE_DELAY_SECONDS,
    COHERE_API_KEY,
    COHERE_API_URL,
    COHERE_MODEL,
)

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I'm here for you. I'm having a little trouble finding the right words right now, "
    "but I'd like to keep listening. Could you tell me more about how you're feeling?"
)

PREAMBLE = (
    "You are Abby, a warm and supportive AI therapy companion. Respond with empathy, "
    "ask gentle follow-up questions, suggest evidence-based coping strategies such as "
    "breathing exercises or CBT reframing, and never give a medical diagnosis. "
    "Encourage the client to contact emergency services if they are in danger."
)

# Stored sender -> Cohere chat_history role
_HISTORY_ROLES = {"user": "USER", "ai": "CHATBOT", "doctor": "CHATBOT"}


def build_chat_history(history: list[dict]) -> list[dict]:
    return [
        {"role": _HISTORY_ROLES.get(item["sender"], "USER"), "message": item["content"]}
        for item in history
        if item.get("content")
    ]


async def generate_ai_reply(
    message: str,
    history: Optional[list[dict]] = None,
    client: Optional[httpx.AsyncClient] = None,
    delay: Optional[float] = None,
    api_key: Optional[str] = None,
) -> str:
    """
    Ask Cohere for the next therapist message.

    Never raises: any failure is logged and FALLBACK_REPLY is returned.
    """
    await asyncio.sleep(AI_RESPONSE_DELAY_SECONDS if delay is None else delay)

    api_key = api_key or COHERE_API_KEY
    if not api_key:
        logger.warning("⚠️ COHERE_API_KEY not configured - using fallback reply")
        return FALLBACK_REPLY

    payload = {
        "model": COHERE_MODEL,
        "message": message,
        "preamble": PREAMBLE,
        "chat_history": build_chat_history(history or []),
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    try:
        if client is not None:
            response = await client.post(COHERE_API_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=AI_REQUEST_TIMEOUT_SECONDS) as http:
                response = await http.post(COHERE_API_URL, json=payload, headers=headers)

        if response.status_code != 200:
            logger.error(f"❌ Cohere chat failed: HTTP {response.status_code} {response.text[:200]}")
            return FALLBACK_REPLY

        text = (response.json().get("text") or "").strip()
        if not text:
            logger.error("❌ Cohere chat returned an empty reply")
            return FALLBACK_REPLY
        return text
    except Exception as e:
        logger.error(f"❌ Error calling Cohere chat: {e}")
        return FALLBACK_REPLY
