"""Services: OpenAI access, claim detection, fact-checking."""
from factcheck.services.openai_client import OpenAIClient
from factcheck.services.claim_service import detect_claims, parse_claims
from factcheck.services.fact_check_service import fact_check_claim, parse_verdict

__all__ = [
    "OpenAIClient",
    "detect_claims",
    "parse_claims",
    "fact_check_claim",
    "parse_verdict",
]
