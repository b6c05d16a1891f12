"""
Language Model Backends

Opaque text-completion collaborators used by the unit reviewer: the
OpenAI chat completions API, or a local Hugging Face causal LM.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI, OpenAIError


logger = logging.getLogger(__name__)


class LanguageModelError(Exception):
    """Transport-level failure while calling a language model."""


@dataclass
class GenerationConfig:
    """Configuration for LLM generation."""
    max_tokens: int = 700
    temperature: float = 0.2
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0


class LanguageModel(ABC):
    """Text completion collaborator."""

    model_name: str = ""

    @abstractmethod
    def complete(self, prompt: str, config: GenerationConfig) -> str:
        """
        Complete a prompt.

        Raises:
            LanguageModelError: If the model cannot be reached
        """


class OpenAIChatModel(LanguageModel):
    """Sends the prompt as a single system message to the chat completions API."""

    def __init__(self, api_key: str, model_name: str = "gpt-4o", client: Optional[OpenAI] = None):
        """
        Initialize OpenAI chat model.

        Args:
            api_key: OpenAI API key
            model_name: Chat model identifier
            client: Preconfigured OpenAI client
        """
        self.model_name = model_name
        self.client = client or OpenAI(api_key=api_key)

    def complete(self, prompt: str, config: GenerationConfig) -> str:
        logger.debug(f"Sending prompt to {self.model_name} ({len(prompt)} chars)")
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                top_p=config.top_p,
                frequency_penalty=config.frequency_penalty,
                presence_penalty=config.presence_penalty,
                messages=[{"role": "system", "content": prompt}],
            )
        except OpenAIError as e:
            raise LanguageModelError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            return "{}"
        content = response.choices[0].message.content
        return content.strip() if content and content.strip() else "{}"


class TransformersModel(LanguageModel):
    """
    Local causal language model through Hugging Face transformers.

    Loaded lazily on first use so that importing this module never needs
    torch installed.
    """

    def __init__(self, model_name: str, device: Optional[str] = None):
        """
        Initialize transformers model.

        Args:
            model_name: Hugging Face model identifier
            device: Device to run model on ('cpu', 'cuda', etc.)
        """
        self.model_name = model_name
        self.device = device
        self.tokenizer = None
        self.model = None

    def _load(self) -> None:
        # transformers and torch live in the optional "local" extra
        import torch
        from transformers import AutoModelForCausalLM, AutoTokenizer

        self.device = self.device or ("cuda" if torch.cuda.is_available() else "cpu")
        logger.info(f"Loading LLM model: {self.model_name}")
        self.tokenizer = AutoTokenizer.from_pretrained(self.model_name)
        self.model = AutoModelForCausalLM.from_pretrained(self.model_name)

        if self.tokenizer.pad_token is None:
            self.tokenizer.pad_token = self.tokenizer.eos_token

        self.model.to(self.device)
        logger.info(f"Model loaded successfully on {self.device}")

    def complete(self, prompt: str, config: GenerationConfig) -> str:
        import torch

        try:
            if self.model is None:
                self._load()

            inputs = self.tokenizer.encode(prompt, return_tensors="pt").to(self.device)
            do_sample = config.temperature > 0

            with torch.no_grad():
                outputs = self.model.generate(
                    inputs,
                    max_new_tokens=config.max_tokens,
                    temperature=config.temperature if do_sample else None,
                    top_p=config.top_p if do_sample else None,
                    do_sample=do_sample,
                    pad_token_id=self.tokenizer.pad_token_id,
                    eos_token_id=self.tokenizer.eos_token_id,
                    num_return_sequences=1
                )
        except (OSError, RuntimeError, ValueError) as e:
            raise LanguageModelError(f"Text generation failed: {e}") from e

        generated = outputs[0][inputs.shape[1]:]
        response = self.tokenizer.decode(generated, skip_special_tokens=True).strip()
        return response or "{}"


def build_language_model(provider: str, model_name: str, api_key: Optional[str] = None) -> LanguageModel:
    """
    Create the configured language model backend.

    Args:
        provider: "openai" or "transformers"
    """
    if provider == "openai":
        return OpenAIChatModel(api_key=api_key, model_name=model_name)
    if provider == "transformers":
        return TransformersModel(model_name=model_name)
    raise ValueError(f"Unknown model provider: {provider}")
