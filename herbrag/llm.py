"""
Text-completion client over LangChain chat models (Mistral, Gemini or Claude).
"""
from typing import Dict, Optional, Tuple
import asyncio
import logging

from langchain_core.messages import HumanMessage

from .config import LLMConfig, LLMProvider
from .exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Sends a prompt and returns the completion text.

    Chat models are created lazily, one per (temperature, max_tokens)
    pair, and reused across calls.
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        """
        Initialize the LLM client.

        Args:
            config: LLM configuration
        """
        self.config = config or LLMConfig()
        self._models: Dict[Tuple[float, int], object] = {}

    def get_llm(self, temperature: float, max_tokens: int):
        """Return the chat model for these sampling settings, creating it on first use."""
        key = (temperature, max_tokens)
        if key not in self._models:
            self._models[key] = self._create_llm(temperature, max_tokens)
        return self._models[key]

    def _create_llm(self, temperature: float, max_tokens: int):
        """Factory method to create the appropriate LLM."""
        if self.config.provider == LLMProvider.MISTRAL:
            return self._create_mistral_llm(temperature, max_tokens)
        elif self.config.provider == LLMProvider.GEMINI:
            return self._create_gemini_llm(temperature, max_tokens)
        elif self.config.provider == LLMProvider.ANTHROPIC:
            return self._create_anthropic_llm(temperature, max_tokens)
        else:
            raise ValueError(f"Unsupported LLM provider: {self.config.provider}")

    def _create_mistral_llm(self, temperature: float, max_tokens: int):
        """Create Mistral LLM."""
        try:
            from langchain_mistralai import ChatMistralAI
        except ImportError:
            raise ImportError(
                "langchain-mistralai is required for Mistral. "
                "Install it with: pip install langchain-mistralai"
            )

        if not self.config.mistral_api_key:
            raise ValueError(
                "MISTRAL_API_KEY environment variable is required for Mistral"
            )

        logger.info(f"Using Mistral model: {self.config.mistral_model}")
        return ChatMistralAI(
            model=self.config.mistral_model,
            api_key=self.config.mistral_api_key,
            temperature=temperature,
            max_tokens=max_tokens
        )

    def _create_gemini_llm(self, temperature: float, max_tokens: int):
        """Create Google Gemini LLM."""
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
        except ImportError:
            raise ImportError(
                "langchain-google-genai is required for Gemini. "
                "Install it with: pip install langchain-google-genai"
            )

        if not self.config.gemini_api_key:
            raise ValueError(
                "GOOGLE_API_KEY environment variable is required for Gemini"
            )

        logger.info(f"Using Gemini model: {self.config.gemini_model}")
        return ChatGoogleGenerativeAI(
            model=self.config.gemini_model,
            google_api_key=self.config.gemini_api_key,
            temperature=temperature,
            max_output_tokens=max_tokens
        )

    def _create_anthropic_llm(self, temperature: float, max_tokens: int):
        """Create Anthropic Claude LLM."""
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError(
                "langchain-anthropic is required for Claude. "
                "Install it with: pip install langchain-anthropic"
            )

        if not self.config.anthropic_api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is required for Claude"
            )

        logger.info(f"Using Claude model: {self.config.anthropic_model}")
        return ChatAnthropic(
            model=self.config.anthropic_model,
            api_key=self.config.anthropic_api_key,
            temperature=temperature,
            max_tokens=max_tokens
        )

    async def complete(self, prompt: str, temperature: float = 0.1, max_tokens: int = 500) -> str:
        """
        Run one completion.

        Args:
            prompt: Full user prompt
            temperature: Sampling temperature
            max_tokens: Completion length cap

        Returns:
            Completion text, stripped

        Raises:
            CollaboratorUnavailable: On provider errors, a missing provider setup
                (API key or package), or when the request times out
        """
        try:
            llm = self.get_llm(temperature, max_tokens)
            response = await asyncio.wait_for(
                llm.ainvoke([HumanMessage(content=prompt)]),
                timeout=self.config.request_timeout
            )
        except asyncio.TimeoutError as e:
            raise CollaboratorUnavailable(
                "llm", f"no response after {self.config.request_timeout}s"
            ) from e
        except Exception as e:
            raise CollaboratorUnavailable("llm", str(e)) from e

        content = response.content if hasattr(response, "content") else response
        if isinstance(content, list):
            # Some providers return content blocks
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return str(content).strip()
