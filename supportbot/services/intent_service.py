from supportbot.logging_config import get_logger

logger = get_logger("intent_service")

# Substring match, accents optional: "assistência técnica", "quero um humano", "atendente".
TECHNICIAN_KEYWORDS = (
    "técnico",
    "tecnico",
    "assistência",
    "assistencia",
    "atendente",
    "humano",
)


def normalize_for_matching(text: str | None) -> str:
    if not text:
        return ""
    return " ".join(text.casefold().split())


def wants_technician(text: str | None) -> bool:
    """Client asks for a person. Blunt on purpose: no negation handling."""
    normalized = normalize_for_matching(text)
    if not normalized:
        return False
    matched = next((keyword for keyword in TECHNICIAN_KEYWORDS if keyword in normalized), None)
    if matched:
        logger.debug(f"Handover keyword matched: {matched}")
    return matched is not None
