from chat_core.config.env_utils import read_env_file, write_env_file
from chat_core.config.settings import DEFAULT_SYSTEM_PROMPT, Settings


def test_settings_trim_and_blank_values(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    s = Settings(
        _env_file=None,
        default_provider=" openrouter ",
        api_key="   ",
        endpoint_url="",
        system_prompt="  be terse  ",
    )
    assert s.default_provider == "openrouter"
    assert s.api_key is None
    assert s.endpoint_url is None
    assert s.system_prompt == "be terse"


def test_settings_from_yaml(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DEFAULT_MODEL", raising=False)
    monkeypatch.delenv("CHAT_CONFIG_FILE", raising=False)
    (tmp_path / "config.yaml").write_text("default_model: gemma2-9b-it\n", encoding="utf-8")
    s = Settings(_env_file=None)
    assert s.default_model == "gemma2-9b-it"


def test_settings_env_beats_yaml(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cfg = tmp_path / "custom.yaml"
    cfg.write_text("default_model: gemma2-9b-it\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_CONFIG_FILE", str(cfg))
    monkeypatch.setenv("DEFAULT_MODEL", "mixtral-8x7b-32768")
    s = Settings(_env_file=None)
    assert s.default_model == "mixtral-8x7b-32768"


def test_with_changes_and_to_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    s = Settings(_env_file=None, api_key="k-123", system_prompt=DEFAULT_SYSTEM_PROMPT)
    changed = s.with_changes(default_provider="huggingface", default_model="google/flan-t5-large")
    assert changed.default_provider == "huggingface"
    assert changed.api_key == "k-123"
    env = changed.to_env()
    assert env["DEFAULT_PROVIDER"] == "huggingface"
    assert env["API_KEY"] == "k-123"
    assert env["ENDPOINT_URL"] == ""


def test_env_file_roundtrip_keeps_other_keys(tmp_path):
    path = tmp_path / ".env"
    path.write_text("OTHER=1\n", encoding="utf-8")
    write_env_file({"API_KEY": "abc", "SYSTEM_PROMPT": "be terse"}, path)
    data = read_env_file(path)
    assert data["OTHER"] == "1"
    assert data["API_KEY"] == "abc"
    assert data["SYSTEM_PROMPT"] == "be terse"


def test_read_missing_env_file(tmp_path):
    assert read_env_file(tmp_path / "missing.env") == {}
