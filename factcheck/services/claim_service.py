"""
Claim detection: ask the chat model for every declarative factual assertion in a
transcript segment, verbatim. Which sentences count is decided by the model via the
instruction below; locally we only validate the JSON shape.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from factcheck.errors import ResponseShapeError
from factcheck.services.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

CLAIMS_SYSTEM_PROMPT = """Jesteś precyzyjnym asystentem AI. Twoim zadaniem jest znalezienie twierdzeń faktograficznych w podanym tekście. Wyodrębnij **każde** zdanie, które przedstawia informację jako fakt, bez względu na to, czy jest prawdziwe, fałszywe, powszechnie znane czy kontrowersyjne. Pomijaj pytania, polecenia, opinie, wyrażenia subiektywne i niepełne zdania.

Przykłady twierdzeń do wyodrębnienia:
- "Ziemia jest płaska." (nawet jeśli fałszywe)
- "Woda wrze w 100 stopniach Celsjusza na poziomie morza."
- "Słońce nie istnieje." (nawet jeśli absurdalne)
- "Ten samochód jest czerwony."

Przykłady zdań do pominięcia:
- "Myślę, że jutro będzie padać." (opinia)
- "Czy to prawda?" (pytanie)
- "Zamknij drzwi." (polecenie)
- "To jest piękne." (subiektywne)

Zwróć **wyłącznie** obiekt JSON z jednym kluczem "claims", którego wartością jest tablica stringów: dokładnie te zdania z oryginalnego tekstu (bez przeformułowania), które są twierdzeniami faktograficznymi. Jeśli nie ma żadnych, zwróć {"claims": []}. Nie dodawaj nic poza tym obiektem JSON."""


def _build_user_message(text: str) -> str:
    return f'Tekst:\n"{text}"\n\nObiekt JSON:'


def strip_code_fence(raw: str) -> str:
    """Models sometimes wrap JSON in a markdown block even in JSON mode."""
    raw = raw.strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```\s*$", "", raw)
    return raw


def parse_claims(raw: str) -> list[str]:
    """
    Parse model output into claim strings.
    Non-JSON raises ResponseShapeError; JSON without a "claims" list means zero claims.
    """
    try:
        parsed: Any = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as e:
        logger.error("Failed to parse claims JSON: %s. Raw: %r", e, raw)
        raise ResponseShapeError("Failed to parse claims from AI response", str(e)) from e

    claims = parsed.get("claims") if isinstance(parsed, dict) else None
    if not isinstance(claims, list):
        logger.warning("Response did not contain a valid 'claims' array. Raw: %r", raw)
        return []

    out: list[str] = []
    for item in claims:
        if not isinstance(item, str):
            logger.warning("Dropping non-string claim: %r", item)
            continue
        item = item.strip()
        if item:
            out.append(item)
    return out


async def detect_claims(text: str, client: OpenAIClient) -> list[str]:
    """Detect factual claims in one transcript segment. Order follows the model's answer."""
    logger.info("Detecting claims in text: %r", text)
    settings = client.settings
    raw = await client.chat_json(
        CLAIMS_SYSTEM_PROMPT,
        _build_user_message(text),
        temperature=settings.CLAIMS_TEMPERATURE,
    )
    logger.debug("Raw model response for claims: %r", raw)
    if not raw:
        raise ResponseShapeError("Empty response from OpenAI API")
    claims = parse_claims(raw)
    logger.info("Detected %d claim(s)", len(claims))
    return claims
