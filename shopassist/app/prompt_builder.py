#!/usr/bin/env python3
"""
Prompt builder module for the shopping assistant.

This module constructs fact-constrained prompts for the LLM. A product is
sanitized first so placeholder or invalid values never reach the prompt as
facts; everything the model may state must come from the facts, specs or
context blocks.
"""

import math
from typing import Any, Dict, List, Sequence

from .config import Config
from ..schemas.io_models import ProductRecord
from ..utils.normalize import normalize_chunks, normalize_product, to_float

PLACEHOLDER_NAMES = {"product name", "product", "nombre del producto", "producto", "untitled", "n/a"}
PLACEHOLDER_DESCRIPTIONS = {
    "product description", "description", "descripción del producto",
    "descripcion del producto", "n/a", "none", "null",
}

MAX_SPECS = 8
MAX_CHUNKS = 6

NO_FACTS = "(no additional facts)"
NO_CONTEXT = "(no additional context)"


def _clean_text(value: Any, placeholders) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if not text or text.lower() in placeholders:
        return ""
    return text


def _positive(value: Any):
    f = to_float(value)
    if f is None or not math.isfinite(f) or f <= 0:
        return None
    return f


def sanitize(product: Any) -> Dict[str, Any]:
    """Return only the product fields that are safe to present as facts.

    Absent keys mean "drop it"; callers must not mention them at all.
    """
    record = normalize_product(product)
    if record is None:
        return {}

    out: Dict[str, Any] = {}
    name = _clean_text(record.name, PLACEHOLDER_NAMES)
    if name:
        out["name"] = name
    category = _clean_text(record.category, set())
    if category:
        out["category"] = category
    price = _positive(record.price)
    if price is not None:
        out["price"] = price
    rating = _positive(record.rating)
    if rating is not None and rating <= 5:
        out["rating"] = rating
    description = _clean_text(record.description, PLACEHOLDER_DESCRIPTIONS)
    if description:
        out["description"] = description
    if isinstance(record.specs, dict) and record.specs:
        out["specs"] = dict(record.specs)
    return out


def format_price(price: float) -> str:
    return f"${price:,.2f}"


class PromptBuilder:
    """Builds prompts for the LLM from a product, retrieved chunks and the query."""

    def __init__(self, language: str = None):
        """Initialize the prompt builder."""
        self.language = language or Config.ANSWER_LANGUAGE

    def facts_block(self, facts: Dict[str, Any]) -> str:
        lines = []
        if "name" in facts:
            lines.append(f"- Name: {facts['name']}")
        if "category" in facts:
            lines.append(f"- Category: {facts['category']}")
        if "price" in facts:
            lines.append(f"- Price: {format_price(facts['price'])}")
        if "rating" in facts:
            lines.append(f"- Rating: {facts['rating']:.1f}/5")
        if "description" in facts:
            lines.append(f"- Description: {facts['description']}")
        return "\n".join(lines) if lines else NO_FACTS

    def specs_block(self, specs: Dict[str, Any]) -> str:
        lines = []
        for key, value in (specs or {}).items():
            k = str(key).strip()
            v = "" if value is None else str(value).strip()
            if not k or not v:
                continue
            lines.append(f"- {k.replace('_', ' ')}: {v}")
            if len(lines) >= MAX_SPECS:
                break
        return "\n".join(lines)

    def context_block(self, chunks: Sequence[Any]) -> str:
        items = normalize_chunks(list(chunks or []))[:MAX_CHUNKS]
        if not items:
            return NO_CONTEXT
        return "\n".join(f"[{i}] {c.text.strip()}" for i, c in enumerate(items, 1))

    def build_prompt(self, product: Any, chunks: Sequence[Any], user_query: str) -> str:
        """
        Build the grounded answer prompt.

        Args:
            product: Product in any accepted shape
            chunks: Retrieved chunks (RetrievedChunk, dicts or strings)
            user_query: The user's question

        Returns:
            Formatted prompt string
        """
        facts = sanitize(product)
        specs = self.specs_block(facts.get("specs", {}))
        sections = [
            "RELIABLE FACTS:",
            self.facts_block(facts),
        ]
        if specs:
            sections += ["", "FEATURES / SPECS:", specs]
        sections += ["", "CONTEXT:", self.context_block(chunks)]

        return f"""You are a shopping assistant for an online marketplace.
Answer ONLY in {self.language}.

{chr(10).join(sections)}

RULES:
- Use only the information in RELIABLE FACTS, FEATURES / SPECS and CONTEXT. Do not invent data.
- Never mention empty, placeholder or missing values, and never say a field is "unavailable".
- Never show a price of zero or less.
- Keep the answer between 3 and 6 lines.
- If the question asks about an attribute that is not supported by the facts, specs or context,
  say clearly that you cannot confirm it, then suggest 2 or 3 concrete ways to refine the question
  (for example a specific feature, a price range or a similar product). Do not guess.

Customer question: {(user_query or '').strip()}
Answer:"""

    def build_simple_prompt(self, product_name: str, user_query: str) -> str:
        """Reduced prompt used when the grounded one could not be answered."""
        name = _clean_text(product_name, PLACEHOLDER_NAMES)
        about = f' about the product "{name}"' if name else ""
        return (
            f"You are a shopping assistant. Answer ONLY in {self.language}.\n"
            f'The customer asks{about}: "{(user_query or "").strip()}".\n'
            "Be brief (3-5 lines) and helpful. Do not invent prices, stock or specifications; "
            "if you do not know something, say so."
        )

    def build_suggestions_prompt(self, user_query: str) -> str:
        """Prompt asking for search keywords/filters when nothing in the catalog matched."""
        return (
            f"You are a shopping assistant. Answer ONLY in {self.language}.\n"
            f'The customer said: "{(user_query or "").strip()}".\n'
            "No catalog product matched. Suggest 3 to 5 short search keywords or filters "
            "(category, price range, feature) they could try. Do not invent products, prices or stock."
        )

    def format_candidates(self, candidates: List[ProductRecord], limit: int = 3) -> str:
        """Clarification listing of the top matches."""
        top = list(candidates)[:limit]
        lines = [f"I found {len(top)} products that could match. Which one do you mean?"]
        for i, p in enumerate(top, 1):
            facts = sanitize(p)
            bits = [facts.get("name", "Unnamed product")]
            if "price" in facts:
                bits.append(format_price(facts["price"]))
            if "rating" in facts:
                bits.append(f"{facts['rating']:.1f}/5")
            if "category" in facts:
                bits.append(facts["category"])
            lines.append(f"{i}. " + " - ".join(bits))
        return "\n".join(lines)
