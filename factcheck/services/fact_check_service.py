"""
Fact-check: ask the chat model for a verdict on one claim.

Parsing problems never escape as exceptions: an unreadable answer becomes an
"uncertain" verdict that says so. Provider/config failures still raise so the API
layer can report them with a proper status code.
"""
from __future__ import annotations

import json
import logging

from factcheck.services.claim_service import strip_code_fence
from factcheck.services.openai_client import OpenAIClient
from factcheck.verdict import Verdict, coerce_verdict, uncertain

logger = logging.getLogger(__name__)

FACT_CHECK_SYSTEM_PROMPT = """Jesteś precyzyjnym i obiektywnym analitykiem faktów. Oceń prawdziwość podanego twierdzenia. Odpowiedz **wyłącznie** obiektem JSON z kluczami:
- "status": jedna z wartości "true" (twierdzenie w przeważającej mierze prawdziwe), "false" (w przeważającej mierze fałszywe) lub "uncertain" (trudne do jednoznacznego ustalenia, sporne, wymaga kontekstu lub jest subiektywne).
- "explanation": krótkie (1-2 zdania), neutralne uzasadnienie oceny, skupione na meritum.
- "source": (opcjonalnie) JEDEN adres URL wiarygodnego, publicznie dostępnego źródła potwierdzającego ocenę (np. Wikipedia, renomowany serwis informacyjny, encyklopedia). Jeśli nie masz dobrego źródła, pomiń ten klucz lub ustaw null.

Opieraj się na ogólnodostępnej, aktualnej wiedzy. Bądź obiektywny i bezstronny. Unikaj ogólników."""


def _build_user_message(claim: str) -> str:
    return f'Twierdzenie do oceny:\n"{claim}"\n\nOdpowiedź JSON:'


def parse_verdict(raw: str) -> Verdict:
    """Model output -> Verdict. Never raises."""
    if not raw:
        return uncertain("Failed to parse AI response: empty response")
    try:
        payload = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as e:
        logger.error("Failed to parse fact-check JSON: %s. Raw: %r", e, raw)
        return uncertain(f"Failed to parse AI response: {e}")
    return coerce_verdict(payload)


async def fact_check_claim(claim: str, client: OpenAIClient) -> Verdict:
    logger.info("Fact-checking claim: %r", claim)
    settings = client.settings
    raw = await client.chat_json(
        FACT_CHECK_SYSTEM_PROMPT,
        _build_user_message(claim),
        temperature=settings.FACT_CHECK_TEMPERATURE,
        max_tokens=settings.FACT_CHECK_MAX_TOKENS,
    )
    logger.debug("Raw model response for fact-check: %r", raw)
    verdict = parse_verdict(raw)
    logger.info("Fact-check result for %r: %s", claim, verdict.status)
    return verdict
