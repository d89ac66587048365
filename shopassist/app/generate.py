#!/usr/bin/env python3
"""
Generation module for the shopping assistant.

This module handles answer generation using the Gemini LLM API. Candidate
models are tried in priority order and the first one that returns non-empty
text wins.
"""

import requests
from typing import Any, Dict, List, Optional, Tuple
from .config import Config
from ..utils.logger import get_logger

logger = get_logger()


class GenerationError(Exception):
    """Raised when every candidate model failed."""


def system_prefix(language: str) -> str:
    return (
        f"You are a helpful shopping assistant and you ALWAYS answer in {language}, clearly and concisely.\n"
        "Do not invent data. If something is missing, say so and offer alternatives."
    )


class GenerationClient:
    """Client for generating answers using Gemini LLM API."""

    def __init__(self, api_key: str = None, models: Optional[List[str]] = None, language: str = None):
        """Initialize the generation client."""
        self.api_key = api_key or Config.GEMINI_API_KEY
        self.models = models or Config.candidate_models()
        self.language = language or Config.ANSWER_LANGUAGE
        self.generation_config = {
            "temperature": Config.GENERATION_TEMPERATURE,
            "topP": Config.GENERATION_TOP_P,
            "topK": Config.GENERATION_TOP_K,
            "maxOutputTokens": Config.GENERATION_MAX_TOKENS,
        }

        if not self.api_key:
            raise ValueError("Gemini API key is required")
        if not self.models:
            raise ValueError("At least one Gemini model is required")

    def _url(self, model: str) -> str:
        return f"{Config.GEMINI_API_BASE}/models/{model}:generateContent"

    def _call_once(self, model: str, prompt: str) -> Tuple[str, Dict[str, Any]]:
        payload = {
            "contents": [
                {"role": "user", "parts": [{"text": f"{system_prefix(self.language)}\n\n{prompt or ''}"}]}
            ],
            "generationConfig": self.generation_config,
        }
        response = requests.post(
            self._url(model),
            params={"key": self.api_key},
            json=payload,
            timeout=Config.REQUEST_TIMEOUT,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code != 200:
            message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
            raise GenerationError(message or f"HTTP {response.status_code} ({model})")

        try:
            return self._parse(model, data)
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise GenerationError(f"Malformed response from {model}: {e}") from e

    def _parse(self, model: str, data: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return "", {"model": model, "reason": "no-candidates"}

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
        finish = candidates[0].get("finishReason") or (data.get("promptFeedback") or {}).get("blockReason")
        return text, {"model": model, "finish": finish}

    def complete(self, prompt: str) -> str:
        """
        Generate an answer, trying each candidate model in order.

        Args:
            prompt: Formatted prompt for the LLM

        Returns:
            Generated answer text ("" if every model answered empty)

        Raises:
            GenerationError: if no model produced text and at least one failed
        """
        logger.info(f"[GENERATION] prompt length: {len(prompt or '')}")
        last_err: Optional[Exception] = None
        for model in self.models:
            try:
                text, meta = self._call_once(model, prompt)
            except (requests.exceptions.RequestException, GenerationError) as e:
                last_err = e
                logger.warning(f"[GENERATION] {model} failed: {e}")
                continue
            if text:
                logger.info(f"[GENERATION] OK with {model} (finish={meta.get('finish') or '?'})")
                return text
            logger.warning(f"[GENERATION] empty answer from {model}: {meta}")

        if last_err is not None:
            raise GenerationError(f"All candidate models failed: {last_err}") from last_err
        return ""


def main():
    """Main function for testing the generation client."""
    try:
        gen_client = GenerationClient()
        print("Generation client initialized successfully")

        answer = gen_client.complete("Give me two tips for choosing noise-cancelling headphones.")
        print("\nGenerated answer:")
        print("-" * 40)
        print(answer)
        print("-" * 40)

    except Exception as e:
        print(f"Error: {e}")

if __name__ == "__main__":
    main()
