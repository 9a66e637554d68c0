import os

from sitegen.config import DEFAULT_GATEWAY_URL, Settings, apply_env_file, load_settings, read_env_file


def test_defaults_without_environment():
    s = load_settings({})
    assert s == Settings()
    assert s.has_token is False
    assert s.gateway_url == DEFAULT_GATEWAY_URL
    assert s.model == "google/gemini-2.5-flash"
    assert s.temperature == 0.7
    assert s.max_tokens == 8000


def test_reads_environment():
    s = load_settings(
        {
            "AI_GATEWAY_API_KEY": "  secret  ",
            "AI_GATEWAY_MODEL": "other/model",
            "LLM_TEMPERATURE": "0.2",
            "LLM_MAX_TOKENS": "1200",
            "LLM_TIMEOUT_SECS": "30",
            "INSTRUCTION_STYLE": "Concise",
            "FIELD_POLICY": "strict",
        }
    )
    assert s.api_key == "secret"
    assert s.has_token is True
    assert s.model == "other/model"
    assert s.temperature == 0.2
    assert s.max_tokens == 1200
    assert s.timeout_secs == 30
    assert s.style == "concise"
    assert s.field_policy == "strict"


def test_bad_values_fall_back_to_defaults(caplog):
    s = load_settings(
        {
            "LLM_TEMPERATURE": "hot",
            "LLM_MAX_TOKENS": "lots",
            "INSTRUCTION_STYLE": "baroque",
            "FIELD_POLICY": "maybe",
        }
    )
    assert s.temperature == 0.7
    assert s.max_tokens == 8000
    assert s.style == "detailed"
    assert s.field_policy == "lenient"
    assert any("INSTRUCTION_STYLE" in r.getMessage() for r in caplog.records)


def test_read_env_file_parses_dotenv_syntax(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\n"
        "\n"
        'export AI_GATEWAY_MODEL="other/model"\n'
        "FIELD_POLICY='strict'\n"
        "LLM_MAX_TOKENS=1200 # tokens\n"
        "AI_GATEWAY_URL=https://gw.example/v1?a=b\n"
        "not a pair\n"
        "=orphan\n",
        encoding="utf-8",
    )
    assert read_env_file(env_file) == {
        "AI_GATEWAY_MODEL": "other/model",
        "FIELD_POLICY": "strict",
        "LLM_MAX_TOKENS": "1200",
        "AI_GATEWAY_URL": "https://gw.example/v1?a=b",
    }


def test_read_env_file_missing_is_empty(tmp_path):
    assert read_env_file(tmp_path / "nope.env") == {}


def test_env_file_does_not_override_environment(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("AI_GATEWAY_API_KEY=file-key\nAI_GATEWAY_MODEL=file/model\n", encoding="utf-8")
    environ = {"AI_GATEWAY_API_KEY": "real-key"}

    applied = apply_env_file(env_file, environ)

    assert applied == {"AI_GATEWAY_MODEL": "file/model"}
    assert environ == {"AI_GATEWAY_API_KEY": "real-key", "AI_GATEWAY_MODEL": "file/model"}
    s = load_settings(environ)
    assert s.api_key == "real-key"
    assert s.model == "file/model"


def test_apply_env_file_defaults_to_process_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("SITEGEN_TEST_FROM_FILE=yes\n", encoding="utf-8")
    # setenv first so teardown removes the variable again
    monkeypatch.setenv("SITEGEN_TEST_FROM_FILE", "")
    monkeypatch.delenv("SITEGEN_TEST_FROM_FILE")

    apply_env_file(env_file)

    assert os.environ.get("SITEGEN_TEST_FROM_FILE") == "yes"
