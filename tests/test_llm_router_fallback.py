"""Tests for LLM Router provider fallback and usage tracking"""

import pytest
from unittest.mock import patch
from pathlib import Path
import sys

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from faddl_ai.errors import LLMUnavailableError
from faddl_ai.llm.router import (
    MODEL_ROUTING,
    MODELS,
    LLMRole,
    LLMRouter,
    Provider,
    UsageRecord,
    resolve_chain,
)

MESSAGES = [{"role": "user", "content": "Explain this match"}]


class TestLLMRouterFallback:
    """Test LLM Router provider fallback"""

    @pytest.fixture
    def router(self):
        return LLMRouter()

    def test_every_role_has_a_chain(self):
        """Each role routes to at least two known models and ends with the local server"""
        for role in LLMRole:
            chain = MODEL_ROUTING[role]
            assert len(chain) >= 2
            assert all(key in MODELS for key in chain)
            assert chain[-1] == "local"

    def test_all_providers_unavailable(self, router):
        """No configured provider raises LLMUnavailableError"""
        with patch("faddl_ai.llm.router._provider_available", return_value=False):
            with pytest.raises(LLMUnavailableError):
                router.chat(LLMRole.EXPLANATION, "system", MESSAGES)

    def test_automatic_fallback_to_backup(self, router):
        """Primary provider fails, the next available one answers"""
        def dispatch(spec, system, messages, temperature, max_tokens):
            if spec.provider == Provider.OPENAI:
                raise RuntimeError("API Error")
            return f"answer from {spec.model_id}", 100, 20

        with patch("faddl_ai.llm.router._provider_available", return_value=True), \
             patch.object(router, "_dispatch", side_effect=dispatch):
            text = router.chat(LLMRole.EXPLANATION, "system", MESSAGES)

        assert text == f"answer from {MODELS['claude-sonnet'].model_id}"
        assert router.usage.errors == 1
        assert router.usage.call_count == 1
        assert router.usage.per_provider["anthropic"]["calls"] == 1

    def test_all_providers_failure(self, router):
        """Every available provider raising ends in LLMUnavailableError naming each model"""
        with patch("faddl_ai.llm.router._provider_available", return_value=True), \
             patch.object(router, "_dispatch", side_effect=RuntimeError("down")):
            with pytest.raises(LLMUnavailableError) as exc:
                router.chat(LLMRole.CULTURAL, "system", MESSAGES)

        for key in MODEL_ROUTING[LLMRole.CULTURAL]:
            assert key in str(exc.value)
        assert router.usage.errors == len(MODEL_ROUTING[LLMRole.CULTURAL])

    def test_unavailable_providers_are_skipped(self, router):
        """Only providers with credentials are tried"""
        calls = []

        def dispatch(spec, system, messages, temperature, max_tokens):
            calls.append(spec.provider)
            return "ok", 10, 5

        with patch("faddl_ai.llm.router._provider_available", side_effect=lambda p: p == Provider.GEMINI), \
             patch.object(router, "_dispatch", side_effect=dispatch):
            router.chat(LLMRole.ANALYSIS, "system", MESSAGES)

        assert calls == [Provider.GEMINI]

    def test_preferred_model_goes_first(self, router):
        calls = []

        def dispatch(spec, system, messages, temperature, max_tokens):
            calls.append(spec.model_id)
            return "ok", 10, 5

        with patch("faddl_ai.llm.router._provider_available", return_value=True), \
             patch.object(router, "_dispatch", side_effect=dispatch):
            router.chat(LLMRole.EXPLANATION, "system", MESSAGES, preferred_model="gemini-pro")

        assert calls == [MODELS["gemini-pro"].model_id]

    def test_json_mode_extends_system_prompt(self, router):
        seen = {}

        def dispatch(spec, system, messages, temperature, max_tokens):
            seen["system"] = system
            return "{}", 10, 5

        with patch("faddl_ai.llm.router._provider_available", return_value=True), \
             patch.object(router, "_dispatch", side_effect=dispatch):
            router.chat(LLMRole.ANALYSIS, "Analyze", MESSAGES, json_mode=True)

        assert seen["system"].startswith("Analyze")
        assert "valid JSON only" in seen["system"]

    def test_cost_tracking(self, router):
        """Verify cost tracking"""
        with patch("faddl_ai.llm.router._provider_available", return_value=True), \
             patch.object(router, "_dispatch", return_value=("ok", 1000, 1000)):
            router.chat(LLMRole.EXPLANATION, "system", MESSAGES)

        spec = MODELS["gpt-4o"]
        report = router.get_usage_report()
        assert report["total_calls"] == 1
        assert report["total_input_tokens"] == 1000
        assert report["total_cost_usd"] == pytest.approx(spec.input_cost_per_1k + spec.output_cost_per_1k)

    def test_resolve_chain(self):
        assert resolve_chain(LLMRole.CULTURAL) == MODEL_ROUTING[LLMRole.CULTURAL]
        assert resolve_chain(LLMRole.CULTURAL, "deepseek-chat")[0] == "deepseek-chat"
        assert resolve_chain(LLMRole.CULTURAL, "unknown-model") == MODEL_ROUTING[LLMRole.CULTURAL]

    def test_local_model_comes_from_settings(self, router):
        """The local server is called with its configured model name"""
        with patch("faddl_ai.llm.router.settings") as fake_settings, \
             patch("faddl_ai.llm.router._complete_openai_compatible", return_value=("ok", 1, 1)) as complete:
            fake_settings.local_llm_model = "qwen-local"
            router._dispatch(MODELS["local"], "system", MESSAGES, 0.2, 50)

        assert complete.call_args.args[:2] == (Provider.LOCAL, "qwen-local")

    def test_model_cost(self):
        spec = MODELS["claude-haiku"]
        assert spec.cost(2000, 1000) == pytest.approx(2 * spec.input_cost_per_1k + spec.output_cost_per_1k)
        assert MODELS["local"].cost(5000, 5000) == 0.0

    def test_usage_record_defaults(self):
        usage = UsageRecord()

        assert usage.total_input_tokens == 0
        assert usage.total_output_tokens == 0
        assert usage.total_cost_usd == 0.0
        assert usage.call_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
