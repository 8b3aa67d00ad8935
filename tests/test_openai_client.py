import pytest
from unittest.mock import patch

from bizlicense.clients import openai_client as oai_client_module
from bizlicense.clients.openai_client import OpenAIClient


@pytest.fixture(autouse=True)
def reset_singleton():
    OpenAIClient._instance = None
    OpenAIClient._initialized = False
    yield
    OpenAIClient._instance = None
    OpenAIClient._initialized = False


def test_missing_key_is_reported_and_rejected(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with patch.object(oai_client_module, "OPENAI_API_KEY", None):
        assert OpenAIClient.is_configured() is False
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIClient()


def test_key_from_environment_configures_client(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with patch.object(oai_client_module, "OPENAI_API_KEY", None), \
         patch.object(oai_client_module, "AsyncOpenAI") as mock_openai:
        assert OpenAIClient.is_configured() is True

        client = OpenAIClient()

    mock_openai.assert_called_once_with(api_key="sk-test")
    assert client is OpenAIClient()
