"""
LLM Router - role-based text generation over several hosted and local providers.

Matching explanations, cultural classification, message analysis, message
adaptation and profile bio review each name an LLMRole. The role resolves to an
ordered chain of model keys; providers without credentials are skipped and a
failing provider hands the request to the next one in the chain. Token usage and
estimated cost are tracked per provider.

Responses are free text. Callers validate what they get back and keep their own
deterministic fallback for when every provider fails.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

import anthropic
import openai
from google import genai
from google.genai import types as genai_types
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from faddl_ai.config import settings
from faddl_ai.errors import LLMUnavailableError

JSON_INSTRUCTION = "\n\nIMPORTANT: Respond with valid JSON only, no markdown fences."

DEEPSEEK_BASE_URL = "https://api.deepseek.com"

# Transient failures worth one more attempt on the same provider
_TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
)


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"
    LOCAL = "local"   # any OpenAI-compatible server (vLLM, Ollama, llama.cpp)


class LLMRole(str, Enum):
    """What the text is for; selects the model chain"""
    EXPLANATION = "explanation"   # match explanations
    CULTURAL = "cultural"         # cultural appropriateness scoring
    ANALYSIS = "analysis"         # language, sentiment and topic analysis
    ADAPTATION = "adaptation"     # rewriting a message for another culture
    ENHANCEMENT = "enhancement"   # profile bio review
    GENERAL = "general"


@dataclass(frozen=True)
class ModelSpec:
    provider: Provider
    model_id: str
    input_cost_per_1k: float = 0.0   # USD
    output_cost_per_1k: float = 0.0  # USD

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens * self.input_cost_per_1k + output_tokens * self.output_cost_per_1k) / 1000


MODELS: dict[str, ModelSpec] = {
    "gpt-4o": ModelSpec(Provider.OPENAI, "gpt-4o", 0.005, 0.015),
    "gpt-4o-mini": ModelSpec(Provider.OPENAI, "gpt-4o-mini", 0.00015, 0.0006),
    "claude-sonnet": ModelSpec(Provider.ANTHROPIC, "claude-sonnet-4-20250514", 0.003, 0.015),
    "claude-haiku": ModelSpec(Provider.ANTHROPIC, "claude-3-5-haiku-latest", 0.0008, 0.004),
    "gemini-flash": ModelSpec(Provider.GEMINI, "gemini-2.5-flash", 0.0001, 0.0004),
    "gemini-pro": ModelSpec(Provider.GEMINI, "gemini-2.5-pro", 0.00125, 0.01),
    "deepseek-chat": ModelSpec(Provider.DEEPSEEK, "deepseek-chat", 0.00014, 0.00028),
    "local": ModelSpec(Provider.LOCAL, "local"),
}

# Explanations and cultural scoring prefer the stronger models, analysis the cheap ones.
# Every chain ends with the local server.
MODEL_ROUTING: dict[LLMRole, list[str]] = {
    LLMRole.EXPLANATION: ["gpt-4o", "claude-sonnet", "gemini-pro", "deepseek-chat", "local"],
    LLMRole.CULTURAL:    ["gpt-4o", "claude-sonnet", "gemini-flash", "local"],
    LLMRole.ANALYSIS:    ["gpt-4o-mini", "gemini-flash", "claude-haiku", "deepseek-chat", "local"],
    LLMRole.ADAPTATION:  ["gpt-4o", "claude-sonnet", "gemini-flash", "local"],
    LLMRole.ENHANCEMENT: ["gpt-4o", "claude-sonnet", "gemini-pro", "local"],
    LLMRole.GENERAL:     ["gpt-4o-mini", "gemini-flash", "deepseek-chat", "local"],
}


def resolve_chain(role: LLMRole, preferred_model: Optional[str] = None) -> list[str]:
    """Model keys to try for a role, with a known preferred model moved to the front"""
    chain = MODEL_ROUTING.get(role, MODEL_ROUTING[LLMRole.GENERAL])
    if preferred_model in MODELS:
        return [preferred_model] + [key for key in chain if key != preferred_model]
    return list(chain)


@dataclass
class UsageRecord:
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    call_count: int = 0
    errors: int = 0
    per_provider: dict[str, dict[str, float]] = field(default_factory=dict)

    def record(self, provider: str, input_tok: int, output_tok: int, cost: float):
        self.total_input_tokens += input_tok
        self.total_output_tokens += output_tok
        self.total_cost_usd += cost
        self.call_count += 1

        entry = self.per_provider.setdefault(
            provider, {"input_tokens": 0, "output_tokens": 0, "cost": 0.0, "calls": 0}
        )
        for name, amount in (("input_tokens", input_tok), ("output_tokens", output_tok), ("cost", cost), ("calls", 1)):
            entry[name] += amount


# ---------------------------------------------------------------------------
# Provider clients
# ---------------------------------------------------------------------------

def _provider_available(provider: Provider) -> bool:
    """True when the provider has the credentials or endpoint it needs"""
    if provider == Provider.LOCAL:
        return bool(settings.local_llm_base_url and settings.local_llm_model)
    return bool(getattr(settings, f"{provider.value}_api_key", ""))


@lru_cache(maxsize=None)
def _client(provider: Provider):
    """One client per provider, created on first use"""
    if provider == Provider.ANTHROPIC:
        return anthropic.Anthropic(api_key=settings.anthropic_api_key)
    if provider == Provider.GEMINI:
        return genai.Client(api_key=settings.gemini_api_key)
    if provider == Provider.DEEPSEEK:
        return openai.OpenAI(api_key=settings.deepseek_api_key, base_url=DEEPSEEK_BASE_URL)
    if provider == Provider.LOCAL:
        return openai.OpenAI(api_key=settings.local_llm_api_key, base_url=settings.local_llm_base_url)
    return openai.OpenAI(api_key=settings.openai_api_key)


def openai_client():
    """Shared OpenAI client, also used by the moderation endpoint and embeddings"""
    return _client(Provider.OPENAI)


# ---------------------------------------------------------------------------
# Completions, each returning (text, input_tokens, output_tokens)
# ---------------------------------------------------------------------------

def _complete_anthropic(model_id, system, messages, temperature, max_tokens):
    resp = _client(Provider.ANTHROPIC).messages.create(
        model=model_id,
        system=system,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    text = "".join(getattr(block, "text", "") for block in resp.content)
    if not text:
        raise ValueError(f"Empty Anthropic response (stop_reason={resp.stop_reason})")
    return text, resp.usage.input_tokens, resp.usage.output_tokens


def _complete_openai_compatible(provider, model_id, system, messages, temperature, max_tokens):
    resp = _client(provider).chat.completions.create(
        model=model_id,
        messages=[{"role": "system", "content": system}, *messages],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if not resp.choices:
        raise ValueError(f"No choices returned by {provider.value} ({model_id})")
    usage = resp.usage
    return resp.choices[0].message.content or "", usage.prompt_tokens, usage.completion_tokens


def _complete_gemini(model_id, system, messages, temperature, max_tokens):
    contents = [
        genai_types.Content(
            role="user" if msg["role"] == "user" else "model",
            parts=[genai_types.Part(text=msg["content"])],
        )
        for msg in messages
    ]
    resp = _client(Provider.GEMINI).models.generate_content(
        model=model_id,
        contents=contents,
        config=genai_types.GenerateContentConfig(
            system_instruction=system,
            temperature=temperature,
            max_output_tokens=max_tokens,
        ),
    )
    if not resp.text:
        raise ValueError("Empty Gemini response")
    usage = resp.usage_metadata
    return resp.text, usage.prompt_token_count or 0, usage.candidates_token_count or 0


class LLMRouter:
    """
    Entry point for every LLM call in the service.

        router = LLMRouter()
        text = router.chat(
            LLMRole.EXPLANATION,
            "You are an Islamic matrimonial advisor...",
            [{"role": "user", "content": "Explain this match..."}],
        )
    """

    def __init__(self):
        self.usage = UsageRecord()
        self._availability: dict[Provider, bool] = {}

    def _is_available(self, provider: Provider) -> bool:
        if provider not in self._availability:
            self._availability[provider] = _provider_available(provider)
        return self._availability[provider]

    def chat(
        self,
        role: LLMRole,
        system: str,
        messages: list[dict],
        *,
        temperature: float = 0.7,
        max_tokens: int = 300,
        preferred_model: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Generate text for a role, walking its model chain until one provider answers.

        Args:
            role: Which chain to use.
            system: System prompt.
            messages: [{"role": "user"|"assistant", "content": ...}, ...]
            temperature: Sampling temperature.
            max_tokens: Output token limit.
            preferred_model: Model key tried before the role's chain.
            json_mode: Ask for bare JSON output.

        Raises:
            LLMUnavailableError: No configured provider produced a response.
        """
        if json_mode:
            system += JSON_INSTRUCTION

        failures: list[str] = []
        for model_key in resolve_chain(role, preferred_model):
            spec = MODELS[model_key]
            if not self._is_available(spec.provider):
                continue

            started = time.time()
            try:
                text, in_tok, out_tok = self._dispatch(spec, system, messages, temperature, max_tokens)
            except Exception as e:
                self.usage.errors += 1
                failures.append(f"{model_key}: {e}")
                logger.warning(f"[LLMRouter] {role.value} via {model_key} failed: {e}")
                continue

            cost = spec.cost(in_tok, out_tok)
            self.usage.record(spec.provider.value, in_tok, out_tok, cost)
            logger.debug(
                f"[LLMRouter] {role.value} via {model_key} | {in_tok}+{out_tok} tok | "
                f"${cost:.5f} | {time.time() - started:.2f}s"
            )
            return text

        raise LLMUnavailableError(f"No provider answered for role={role.value}: {failures}")

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
    )
    def _dispatch(
        self, spec: ModelSpec, system: str, messages: list[dict],
        temperature: float, max_tokens: int,
    ) -> tuple[str, int, int]:
        if spec.provider == Provider.ANTHROPIC:
            return _complete_anthropic(spec.model_id, system, messages, temperature, max_tokens)
        if spec.provider == Provider.GEMINI:
            return _complete_gemini(spec.model_id, system, messages, temperature, max_tokens)
        # The local server serves whatever model it was started with
        model_id = settings.local_llm_model if spec.provider == Provider.LOCAL else spec.model_id
        return _complete_openai_compatible(spec.provider, model_id, system, messages, temperature, max_tokens)

    def get_usage_report(self) -> dict[str, Any]:
        return {
            "total_calls": self.usage.call_count,
            "total_errors": self.usage.errors,
            "total_input_tokens": self.usage.total_input_tokens,
            "total_output_tokens": self.usage.total_output_tokens,
            "total_cost_usd": round(self.usage.total_cost_usd, 6),
            "per_provider": self.usage.per_provider,
        }


router = LLMRouter()
