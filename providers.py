#!/usr/bin/env python
"""
Provider clients for Task Master
Gemini does the generation work; Perplexity (OpenAI-compatible API) answers research queries
"""

import os
import threading
from typing import Callable, Generic, Iterator, Optional, TypeVar

import google.generativeai as genai
from openai import OpenAI

from config import config
from errors import MissingCredential
from ui_utils import log

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

T = TypeVar("T")


class GeminiProvider:
    """Thin wrapper over google-generativeai; performs no JSON interpretation"""

    def __init__(self, api_key: str, model_name: Optional[str] = None):
        genai.configure(api_key=api_key)
        self.model_name = model_name or config.get('llm.model')
        self.model = genai.GenerativeModel(self.model_name)

    def _generation_config(self, max_tokens: int, temperature: float) -> dict:
        return {
            "max_output_tokens": max_tokens,
            "temperature": temperature
        }

    def generate(self, prompt: str, max_tokens: int, temperature: float) -> str:
        response = self.model.generate_content(
            prompt,
            generation_config=self._generation_config(max_tokens, temperature)
        )
        return response.text

    def stream(self, prompt: str, max_tokens: int, temperature: float) -> Iterator[str]:
        response = self.model.generate_content(
            prompt,
            generation_config=self._generation_config(max_tokens, temperature),
            stream=True
        )
        for chunk in response:
            text = getattr(chunk, "text", "")
            if text:
                yield text


class PerplexityProvider:
    """Research provider reached through the OpenAI client with a custom base URL"""

    def __init__(self, api_key: str, model_name: Optional[str] = None):
        self.client = OpenAI(api_key=api_key, base_url=PERPLEXITY_BASE_URL)
        self.model_name = model_name or config.get('research.model')

    def generate(self, prompt: str, max_tokens: int = 4000, temperature: float = 0.1) -> str:
        completion = self.client.chat.completions.create(
            model=self.model_name,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return completion.choices[0].message.content or ""


class LazyClient(Generic[T]):
    """Builds a client on first use and hands out the same instance afterwards.

    The factory runs at most once per process (under a lock); the built
    client is never replaced, so readers need no further synchronization.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._instance: Optional[T] = None
        self._lock = threading.Lock()

    def get(self) -> T:
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = self._factory()
        return self._instance

    @property
    def initialized(self) -> bool:
        return self._instance is not None

    def reset(self):
        """Drop the cached client; only meant for tests"""
        with self._lock:
            self._instance = None


def _build_gemini() -> GeminiProvider:
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        raise MissingCredential("GEMINI_API_KEY", "Task Master")
    provider = GeminiProvider(api_key)
    log('debug', f"Using Gemini model: {provider.model_name}")
    return provider


def _build_perplexity() -> PerplexityProvider:
    api_key = os.getenv("PERPLEXITY_API_KEY")
    if not api_key:
        raise MissingCredential("PERPLEXITY_API_KEY", "research-backed features")
    provider = PerplexityProvider(api_key)
    log('debug', f"Using Perplexity model: {provider.model_name}")
    return provider


gemini_client = LazyClient(_build_gemini)
perplexity_client = LazyClient(_build_perplexity)


def get_gemini_client() -> GeminiProvider:
    return gemini_client.get()


def get_perplexity_client() -> PerplexityProvider:
    return perplexity_client.get()
