#!/usr/bin/env python3
"""
Embedding module for the shopping assistant.

Two backends share one interface, ``embed(text, mode)``:

- gemini: the Gemini ``embedContent`` REST endpoint, using the
  RETRIEVAL_DOCUMENT / RETRIEVAL_QUERY task types.
- local: a sentence-transformers model, with the "passage: " / "query: "
  prefixes the e5 family is trained on.

Document and query embeddings have the same dimension but are not
interchangeable; index time always uses ``document`` and lookups ``query``.
"""

import requests
from typing import List
from .config import Config
from ..utils.logger import get_logger

logger = get_logger()

DOCUMENT = "document"
QUERY = "query"

_GEMINI_TASK_TYPES = {
    DOCUMENT: "RETRIEVAL_DOCUMENT",
    QUERY: "RETRIEVAL_QUERY",
}

_LOCAL_PREFIXES = {
    DOCUMENT: "passage: ",
    QUERY: "query: ",
}


class EmbeddingError(Exception):
    """Raised when the embedding backend fails or returns an unusable payload."""


def _check_mode(mode: str) -> str:
    if mode not in (DOCUMENT, QUERY):
        raise ValueError(f"Unknown embedding mode: {mode!r}")
    return mode


class GeminiEmbeddingBackend:
    """Gemini text-embedding REST client."""

    def __init__(self, api_key: str = None, model: str = None):
        self.api_key = api_key or Config.GEMINI_API_KEY
        self.model = model or Config.GEMINI_EMBEDDING_MODEL
        self.api_url = f"{Config.GEMINI_API_BASE}/models/{self.model}:embedContent"

        if not self.api_key:
            raise ValueError("Gemini API key is required")

    def embed(self, text: str, mode: str) -> List[float]:
        payload = {
            "model": f"models/{self.model}",
            "taskType": _GEMINI_TASK_TYPES[_check_mode(mode)],
            "content": {"parts": [{"text": text}]},
        }
        try:
            response = requests.post(
                self.api_url,
                params={"key": self.api_key},
                json=payload,
                timeout=Config.REQUEST_TIMEOUT,
            )
            if response.status_code != 200:
                try:
                    body = response.json()
                except ValueError:
                    body = None
                message = (body.get("error") or {}).get("message") if isinstance(body, dict) else None
                raise EmbeddingError(message or f"HTTP {response.status_code}")
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise EmbeddingError(f"Error calling embedding service: {e}") from e
        except ValueError as e:
            raise EmbeddingError(f"Invalid embedding response: {e}") from e

        # Response: { embedding: { values: [...] } } or { embeddings: [{ values: [...] }] }
        try:
            values = (data.get("embedding") or {}).get("values")
            if values is None and isinstance(data.get("embeddings"), list) and data["embeddings"]:
                values = data["embeddings"][0].get("values")
            if not isinstance(values, list) or not values:
                raise EmbeddingError("No 'values' in embedding response")
            return [float(v) for v in values]
        except (AttributeError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Malformed embedding response: {e}") from e


class LocalEmbeddingBackend:
    """sentence-transformers backend for offline use."""

    def __init__(self, model_name: str = None):
        # Imported here so the HTTP backend does not pay for loading torch
        from sentence_transformers import SentenceTransformer
        self.model = SentenceTransformer(model_name or Config.LOCAL_EMBEDDING_MODEL)

    def embed(self, text: str, mode: str) -> List[float]:
        prefixed = _LOCAL_PREFIXES[_check_mode(mode)] + text
        try:
            embedding = self.model.encode(prefixed, normalize_embeddings=True)
        except Exception as e:
            raise EmbeddingError(f"Local embedding failed: {e}") from e
        return embedding.tolist()


class EmbeddingClient:
    """Client for generating text embeddings with the configured backend."""

    def __init__(self, provider: str = None, backend=None):
        self.provider = (provider or Config.EMBEDDING_PROVIDER).lower()
        if backend is not None:
            self.backend = backend
        elif self.provider == "local":
            self.backend = LocalEmbeddingBackend()
        else:
            self.backend = GeminiEmbeddingBackend()
        logger.info(f"[EMBEDDINGS] provider={self.provider}")

    def embed(self, text: str, mode: str = DOCUMENT) -> List[float]:
        """
        Generate an embedding for a text string.

        Args:
            text: Text to embed
            mode: ``document`` at index time, ``query`` at lookup time

        Returns:
            Embedding vector as a list of floats
        """
        return self.backend.embed(text, mode)


def main():
    """Main function for testing the embedding client."""
    try:
        embed_client = EmbeddingClient()
        print("Embedding client initialized successfully")

        doc = embed_client.embed("Premium over-ear headphones with active noise cancellation.", DOCUMENT)
        query = embed_client.embed("do these headphones cancel noise?", QUERY)
        print(f"Embedding dimension: {len(doc)} (query {len(query)})")
        print(f"First embedding (first 5 values): {doc[:5]}")

    except Exception as e:
        print(f"Error: {e}")

if __name__ == "__main__":
    main()
