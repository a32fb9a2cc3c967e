import json

import pytest

from chat_core.domain.exceptions import BusinessError, ConfigurationError
from chat_core.domain.models import ChatMessage, ModelSettings
from chat_core.infrastructure.storage.settings_store import JsonSettingsStore


def test_reads_camel_case_record(tmp_path):
    path = tmp_path / "model_settings.json"
    path.write_text(json.dumps({
        "provider": "deepseek",
        "apiKey": "sk-1",
        "modelName": "deepseek-reasoner",
        "apiEndpoint": "https://proxy.local/v1",
        "temperature": 0.2,
        "maxTokens": 512,
        "stream": False,
        "supportedFileTypes": ["txt"],
    }), encoding="utf-8")

    ms = JsonSettingsStore(path).load_current()
    assert ms == ModelSettings(
        provider="deepseek",
        api_key="sk-1",
        model_name="deepseek-reasoner",
        api_endpoint="https://proxy.local/v1",
        temperature=0.2,
        max_tokens=512,
        stream=False,
    )


def test_stream_defaults_on_and_blank_endpoint_is_none(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"provider": "openai", "apiKey": "k", "apiEndpoint": ""}), encoding="utf-8")
    ms = JsonSettingsStore(path).load_current()
    assert ms.stream is True
    assert ms.api_endpoint is None
    assert ms.model_name == ""


def test_missing_file_and_null_mean_no_settings(tmp_path):
    assert JsonSettingsStore(tmp_path / "absent.json").load_current() is None
    path = tmp_path / "null.json"
    path.write_text("null", encoding="utf-8")
    assert JsonSettingsStore(path).load_current() is None


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(BusinessError) as exc_info:
        JsonSettingsStore(path).load_current()
    assert exc_info.value.code == "STORE_READ_ERROR"

    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(BusinessError):
        JsonSettingsStore(path).load_current()


def test_invalid_numbers_rejected(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"provider": "openai", "apiKey": "k", "maxTokens": 0}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        JsonSettingsStore(path).load_current()


@pytest.mark.parametrize("field, value", [("maxTokens", None), ("maxTokens", "many"), ("temperature", "warm"), ("temperature", None)])
def test_non_numeric_values_are_configuration_errors(tmp_path, field, value):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"provider": "deepseek", "apiKey": "k", field: value}), encoding="utf-8")
    with pytest.raises(ConfigurationError) as exc_info:
        JsonSettingsStore(path).load_current()
    assert exc_info.value.code == "INVALID_SETTINGS"


def test_chat_message_from_record_ignores_reasoning_in_payload():
    msg = ChatMessage.from_record({"role": "assistant", "content": "a", "reasoningContent": "r"})
    assert msg.reasoning_content == "r"
    assert msg.to_payload() == {"role": "assistant", "content": "a"}
