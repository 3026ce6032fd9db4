from pathlib import Path

import pytest
import yaml

from domostream.core.auth import ClientCredentialsTokenProvider, StaticTokenProvider
from domostream.core.config import ConfigManager, StreamUploadConfig
from domostream.core.const import DEFAULT_BUFFER_SIZE
from domostream.core.exceptions import ConfigError
from domostream.core.utils.byte_size import parse_bytes


def _write_profile(home: Path, name: str, data: dict) -> None:
    profiles_dir = home / ".domostream" / "profiles"
    profiles_dir.mkdir(parents=True, exist_ok=True)
    (profiles_dir / f"{name}.yaml").write_text(yaml.safe_dump(data))


@pytest.mark.parametrize(
    "value, expected",
    [
        (1024, 1024),
        ("2048", 2048),
        ("10b", 10),
        ("64k", 64 * 1024),
        ("750KB", 750 * 1024),
        ("1.5m", int(1.5 * 1024**2)),
        ("5 MiB", 5 * 1024**2),
    ],
)
def test_parse_bytes(value, expected):
    assert parse_bytes(value) == expected


@pytest.mark.parametrize("value", ["", "kb", "12tb", "-5", "1e3"])
def test_parse_bytes_rejects_invalid_values(value):
    with pytest.raises(ValueError):
        parse_bytes(value)


def test_defaults_without_profile(tmp_path):
    config = ConfigManager(home_path=tmp_path).resolve()

    assert config.buffer_size == DEFAULT_BUFFER_SIZE
    assert config.stream_id is None
    assert config.scopes == ["data"]
    assert config.initial_capacity == DEFAULT_BUFFER_SIZE * 3 // 2


def test_profile_env_and_overrides_precedence(tmp_path, monkeypatch):
    _write_profile(
        tmp_path,
        "prod",
        {
            "stream_id": 1,
            "client_id": "profile-client",
            "client_secret": "profile-secret",
            "buffer_size": "1mb",
        },
    )
    monkeypatch.setenv("DOMO_STREAM_ID", "2")
    monkeypatch.setenv("DOMO_BUFFER_SIZE", "750kb")

    config = ConfigManager("prod", home_path=tmp_path).resolve(
        {"stream_id": 3, "buffer_size": None}
    )

    assert config.stream_id == 3
    assert config.buffer_size == 750 * 1024
    assert config.client_id == "profile-client"
    assert config.client_secret == "profile-secret"


def test_missing_profile_raises(tmp_path):
    with pytest.raises(ConfigError):
        ConfigManager("missing", home_path=tmp_path).resolve()


def test_invalid_buffer_size_raises_config_error(tmp_path, monkeypatch):
    monkeypatch.setenv("DOMO_BUFFER_SIZE", "lots")

    with pytest.raises(ConfigError):
        ConfigManager(home_path=tmp_path).resolve()


def test_buffer_size_must_be_positive():
    with pytest.raises(ValueError):
        StreamUploadConfig(buffer_size=0)


def test_scopes_accept_space_separated_string():
    assert StreamUploadConfig(scopes="data user").scopes == ["data", "user"]


def test_token_provider_selection():
    static = StreamUploadConfig(access_token="abc", client_id="id", client_secret="s")
    assert isinstance(static.build_token_provider(), StaticTokenProvider)

    credentials = StreamUploadConfig(client_id="id", client_secret="s")
    assert isinstance(
        credentials.build_token_provider(), ClientCredentialsTokenProvider
    )

    with pytest.raises(ConfigError):
        StreamUploadConfig(client_id="id").build_token_provider()


def test_require_stream_id():
    assert StreamUploadConfig(stream_id=9).require_stream_id() == 9
    with pytest.raises(ConfigError):
        StreamUploadConfig().require_stream_id()


def test_save_profile_is_loaded_back(tmp_path):
    manager = ConfigManager("dev", home_path=tmp_path)
    manager.save_profile(
        StreamUploadConfig(stream_id=5, access_token="tok", buffer_size="2kb")
    )

    config = manager.resolve()

    assert config.stream_id == 5
    assert config.access_token == "tok"
    assert config.buffer_size == 2048


def test_update_profile_merges_into_existing_values(tmp_path):
    _write_profile(tmp_path, "dev", {"stream_id": 5, "client_id": "abc"})
    manager = ConfigManager("dev", home_path=tmp_path)

    manager.update_profile({"stream_id": 0, "client_id": None, "buffer_size": "1kb"})

    config = manager.resolve()
    assert config.stream_id == 0
    assert config.client_id == "abc"
    assert config.buffer_size == 1024


def test_update_profile_rejects_invalid_values(tmp_path):
    manager = ConfigManager("dev", home_path=tmp_path)

    with pytest.raises(ConfigError):
        manager.update_profile({"buffer_size": "lots"})

    assert not (tmp_path / ".domostream" / "profiles" / "dev.yaml").exists()
