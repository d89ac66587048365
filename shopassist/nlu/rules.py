"""Tokenization and the fixed vocabularies used by search and scoring."""
import re
from typing import Dict, List

# Hyphens are kept so compound terms like "noise-cancelling" survive as one token
_SPLIT_RE = re.compile(r"[\s,.;:!?()\[\]{}\"'¿¡/]+")

MIN_TOKEN_LENGTH = 3

STOP_WORDS = {
    "the", "and", "for", "with", "are", "you", "this", "that", "what", "how",
    "does", "have", "has", "can", "any", "its", "about",
    "de", "la", "el", "los", "las", "del", "para", "con", "que", "una", "uno",
    "por", "como", "tiene", "este", "esta", "cual", "son",
}

# Generic terms that show up across many products; they count for less
WEAK_TERMS = {
    "bluetooth", "wireless", "smart", "pro", "premium", "portable", "deluxe",
    "inteligente", "inalambrico", "inalámbrico", "portatil", "portátil",
}

SYNONYMS: Dict[str, List[str]] = {
    "headphones": [
        "headphone", "headphones", "audifono", "audífono", "audifonos", "audífonos",
        "auricular", "auriculares", "cascos", "noise", "cancelación", "cancelacion",
        "noise-cancelling", "over-ear", "bluetooth",
    ],
    "smartwatch": [
        "smartwatch", "watch", "reloj", "reloj inteligente", "fitness", "deportivo",
        "tracker", "pulsera", "gps",
    ],
    "chair": [
        "chair", "silla", "silla de oficina", "oficina", "ergonómica", "ergonomica",
        "respaldo", "lumbar", "escritorio",
    ],
    "bottle": ["bottle", "botella", "termo", "acero", "inoxidable", "stainless", "steel", "reusable", "deportiva"],
    "keyboard": ["keyboard", "teclado", "mecánico", "mecanico", "gamer", "gaming", "switch", "switches", "rgb", "retroiluminado"],
    "yogamat": ["yoga", "yoga mat", "tapete", "colchoneta", "mat", "antideslizante"],
    "coffeemaker": ["coffee", "coffe maker", "coffee maker", "cafetera", "espresso", "goteo", "filtro"],
    "laptopbag": ["laptop", "notebook", "maletin", "maletín", "maleta", "mochila", "bolso", "bag", "funda", "cuero", "case"],
    "smartspeaker": ["smart speaker", "bocina", "altavoz", "altavoz inteligente", "bocina inteligente", "asistente", "hogar", "smart home"],
    "runningshoes": ["running", "shoes", "tenis", "zapatillas", "correr", "deportivos"],
    "btspeaker": ["bluetooth", "speaker", "parlante", "bocina", "portatil", "portátil", "portable"],
    "standingdesk": ["standing", "desk", "converter", "convertidor", "escritorio de pie", "elevador", "soporte", "ajustable"],
}

# Scanned in order; the first category whose terms meet the query wins
CATEGORY_ALIASES: Dict[str, List[str]] = {
    "Electronics": (
        SYNONYMS["headphones"] + SYNONYMS["smartwatch"] + SYNONYMS["keyboard"]
        + SYNONYMS["smartspeaker"] + SYNONYMS["btspeaker"]
    ),
    "Furniture": SYNONYMS["chair"] + SYNONYMS["standingdesk"],
    "Home & Kitchen": SYNONYMS["coffeemaker"] + SYNONYMS["bottle"],
    "Sports": SYNONYMS["yogamat"] + SYNONYMS["runningshoes"],
    "Accessories": SYNONYMS["laptopbag"],
}


def tokenize(text: str) -> List[str]:
    """Lowercase and split on whitespace/punctuation, dropping empty pieces."""
    if not text:
        return []
    return [t for t in _SPLIT_RE.split(text.lower()) if t]


def content_tokens(text: str) -> List[str]:
    """Tokens long enough to carry meaning, without stop words."""
    return [t for t in tokenize(text) if len(t) >= MIN_TOKEN_LENGTH and t not in STOP_WORDS]


def infer_category(tokens) -> str:
    """Return the first category whose alias set meets the tokens, or ''."""
    token_set = set(tokens)
    for category, words in CATEGORY_ALIASES.items():
        if token_set.intersection(words):
            return category
    return ""
