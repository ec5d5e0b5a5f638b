"""Tests for the intent resolvers."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from aios.intent.resolver import HybridResolver, IntentCandidate, ModelResolver, RuleBasedResolver
from aios.tools.models import ToolDescriptor
from aios.tools.registry import ToolRegistry


def _model_client(payload):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(content=[SimpleNamespace(text=text)]))
    return client


class TestRuleBasedResolver:
    async def test_single_match(self, builtin_registry):
        candidates = await RuleBasedResolver().resolve("install nginx", builtin_registry)
        best = candidates[0]
        assert best.tool_name == "install_package"
        assert best.confidence == 1.0
        assert best.params == {"package": "nginx"}
        assert best.keyword == "install"
        assert best.source == "rules"

    async def test_no_match(self, builtin_registry):
        assert await RuleBasedResolver().resolve("make me a sandwich", builtin_registry) == []

    async def test_longer_keyword_breaks_confidence_tie(self, builtin_registry):
        candidates = await RuleBasedResolver().resolve("install oracle", builtin_registry)
        assert [c.tool_name for c in candidates[:2]] == ["install_oracle_database", "install_package"]
        assert candidates[0].confidence == candidates[1].confidence == 1.0

    async def test_unexplained_words_lower_confidence(self, builtin_registry):
        candidates = await RuleBasedResolver().resolve("oracle database licensing question", builtin_registry)
        assert candidates[0].tool_name == "install_oracle_database"
        assert candidates[0].confidence == 0.5

    async def test_declaration_order_is_final_tie_break(self, backend):
        registry = ToolRegistry()
        registry.register(ToolDescriptor(name="restart_first", keywords=["restart"]), backend)
        registry.register(ToolDescriptor(name="restart_second", keywords=["restart"]), backend)
        candidates = RuleBasedResolver().score("restart", registry)
        assert [c.tool_name for c in candidates] == ["restart_first", "restart_second"]

    async def test_parameters_from_hints(self, registry):
        candidates = RuleBasedResolver().score("read status db1", registry)
        assert candidates[0].tool_name == "read_status"
        assert candidates[0].params == {"target": "db1"}


class TestModelResolver:
    async def test_parses_candidate(self, builtin_registry):
        client = _model_client({"tool": "install_package", "confidence": 0.9, "params": {"package": "htop"}})
        candidates = await ModelResolver(client=client, model="test-model").resolve("get me htop", builtin_registry)
        assert candidates == [
            IntentCandidate(tool_name="install_package", confidence=0.9, params={"package": "htop"}, source="model")
        ]
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "install_oracle_database" in kwargs["messages"][0]["content"]

    async def test_json_wrapped_in_prose(self, builtin_registry):
        client = _model_client('Sure: {"tool": "configure_service", "confidence": 0.7, "params": {"service": "sshd"}}')
        candidates = await ModelResolver(client=client).resolve("start sshd", builtin_registry)
        assert candidates[0].params == {"service": "sshd"}

    async def test_unregistered_tool_dropped(self, builtin_registry):
        client = _model_client({"tool": "format_disk", "confidence": 1.0, "params": {}})
        assert await ModelResolver(client=client).resolve("wipe everything", builtin_registry) == []

    async def test_no_tool(self, builtin_registry):
        client = _model_client({"tool": None, "confidence": 0.0, "params": {}})
        assert await ModelResolver(client=client).resolve("tell me a joke", builtin_registry) == []

    @pytest.mark.parametrize("text", ["not json at all", "{broken", "[1, 2]"])
    async def test_garbage(self, builtin_registry, text):
        assert await ModelResolver(client=_model_client(text)).resolve("x", builtin_registry) == []

    async def test_confidence_clamped(self, builtin_registry):
        client = _model_client({"tool": "install_package", "confidence": 1.7, "params": "htop"})
        candidate = (await ModelResolver(client=client).resolve("htop", builtin_registry))[0]
        assert candidate.confidence == 1.0
        assert candidate.params == {}

    async def test_api_error_means_no_candidates(self, builtin_registry):
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com"))
        )
        assert await ModelResolver(client=client).resolve("install nginx", builtin_registry) == []


class TestHybridResolver:
    async def test_confident_rules_skip_model(self, builtin_registry):
        client = _model_client({"tool": "setup_web_server", "confidence": 1.0, "params": {}})
        hybrid = HybridResolver(model=ModelResolver(client=client), fallback_confidence=0.6)
        candidates = await hybrid.resolve("install nginx", builtin_registry)
        assert candidates[0].tool_name == "install_package"
        client.messages.create.assert_not_called()

    async def test_model_consulted_when_rules_unsure(self, builtin_registry):
        client = _model_client({"tool": "check_system_requirements", "confidence": 0.8, "params": {"software": "oracle"}})
        hybrid = HybridResolver(model=ModelResolver(client=client), fallback_confidence=0.6)
        candidates = await hybrid.resolve("oracle database licensing question", builtin_registry)
        assert candidates[0].source == "model"
        assert candidates[0].tool_name == "check_system_requirements"
        assert "install_oracle_database" in [c.tool_name for c in candidates[1:]]

    async def test_model_consulted_when_rules_find_nothing(self, builtin_registry):
        client = _model_client({"tool": "install_package", "confidence": 0.75, "params": {"package": "htop"}})
        candidates = await HybridResolver(model=ModelResolver(client=client)).resolve("get me htop", builtin_registry)
        assert [c.tool_name for c in candidates] == ["install_package"]

    async def test_falls_back_to_rules_when_model_has_nothing(self, builtin_registry):
        client = _model_client({"tool": None})
        hybrid = HybridResolver(model=ModelResolver(client=client), fallback_confidence=0.6)
        candidates = await hybrid.resolve("oracle database licensing question", builtin_registry)
        assert candidates[0].source == "rules"
        client.messages.create.assert_awaited_once()
