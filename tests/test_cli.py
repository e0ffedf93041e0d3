"""Tests for the bmark command-line interface."""

from unittest.mock import patch

from typer.testing import CliRunner

from bmark.main import app
from bmark.models.catalog import GatewayModel

runner = CliRunner()


class TestAsk:
    """Tests for `bmark ask`."""

    def test_ask_prints_groups_and_insights(self, fake_gateway):
        gateway = fake_gateway({"openai/gpt-4o": "Blue", "anthropic/claude-3-5-sonnet": "blue"})

        with patch("bmark.main.create_gateway_client", return_value=gateway):
            result = runner.invoke(app, ["ask", "Favorite color?", "-m", "openai/gpt-4o",
                                         "-m", "anthropic/claude-3-5-sonnet"])

        assert result.exit_code == 0, result.output
        assert "Consensus Groups" in result.output
        assert "Strong consensus" in result.output
        assert gateway.closed

    def test_ask_json(self, fake_gateway):
        gateway = fake_gateway({"openai/gpt-4o": "4"})

        with patch("bmark.main.create_gateway_client", return_value=gateway):
            result = runner.invoke(app, ["ask", "2+2?", "-m", "openai/gpt-4o", "--json"])

        assert result.exit_code == 0, result.output
        assert '"consensus_groups"' in result.output
        assert '"usage"' in result.output

    def test_ask_uses_default_model_count(self, fake_gateway, isolated_config):
        isolated_config.write_text('{"preferences": {"defaultModelCount": 2}}')
        gateway = fake_gateway({})

        with patch("bmark.main.create_gateway_client", return_value=gateway):
            runner.invoke(app, ["ask", "Hi"])

        model_ids, _, options = gateway.calls[0]
        assert model_ids == ["openai/gpt-4o", "openai/gpt-4o-mini"]
        assert options.max_tokens == 10

    def test_ask_options_reach_gateway(self, fake_gateway):
        gateway = fake_gateway({"x/model": "ok"})

        with patch("bmark.main.create_gateway_client", return_value=gateway):
            runner.invoke(app, ["ask", "Hi", "-m", "x/model", "--timeout-ms", "500",
                                "--concurrency", "2", "--temperature", "0"])

        _, _, options = gateway.calls[0]
        assert options.timeout_ms == 500
        assert options.concurrency == 2
        assert options.temperature == 0

    def test_ask_without_key(self):
        result = runner.invoke(app, ["ask", "Hi", "-m", "openai/gpt-4o"])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestModels:
    """Tests for `bmark models`."""

    def test_lists_filtered_models(self, fake_gateway):
        gateway = fake_gateway({}, models=[
            GatewayModel(id="openai/gpt-4o", name="GPT-4o", context_length=128000),
            GatewayModel(id="meta/llama:free", name="Llama Free", context_length=8000),
        ])

        with patch("bmark.main.create_gateway_client", return_value=gateway):
            filtered = runner.invoke(app, ["models"])
            everything = runner.invoke(app, ["models", "--all"])

        assert "GPT-4o" in filtered.output
        assert "yes" in filtered.output
        assert "Llama Free" not in filtered.output
        assert "Llama Free" in everything.output
