"""Tests for configuration loading."""

import pytest

from aesprefs.base import ConfigError, LogMode
from aesprefs.config import PrefsConfig, load_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "aesprefs.toml"
    path.write_text(
        '[aesprefs]\n'
        'namespace = "com.example.file"\n'
        'backend = "filesystem"\n'
        'base_path = "/var/lib/app"\n'
        'log_mode = "get"\n',
        encoding="utf-8",
    )
    return path


class TestPrefsConfig:
    """Tests for PrefsConfig."""

    def test_defaults(self):
        """Test default values."""
        config = PrefsConfig()
        assert config.namespace == "default"
        assert config.password is None
        assert config.log_mode is LogMode.DEFAULT
        assert config.backend == "memory"
        assert config.iv_source == "time"

    def test_log_mode_from_string(self):
        """Test log_mode text is converted."""
        assert PrefsConfig(log_mode="ALL").log_mode is LogMode.ALL

    def test_invalid_log_mode(self):
        """Test unknown log modes raise ConfigError."""
        with pytest.raises(ConfigError, match="Valid modes"):
            PrefsConfig(log_mode="loud")

    def test_password_not_in_repr(self):
        """Test the password is hidden from repr and to_dict."""
        config = PrefsConfig(password="hunter2")
        assert "hunter2" not in repr(config)
        assert config.to_dict()["password"] == "***"
        assert PrefsConfig().to_dict()["password"] is None

    def test_validate(self):
        """Test validation errors."""
        with pytest.raises(ConfigError, match="password"):
            PrefsConfig().validate()
        with pytest.raises(ConfigError, match="namespace"):
            PrefsConfig(namespace=" ", password="pw").validate()
        with pytest.raises(ConfigError, match="iv_source"):
            PrefsConfig(password="pw", iv_source="counter").validate()
        PrefsConfig().validate(require_password=False)

    def test_merge(self):
        """Test merge applies non-None overrides only."""
        config = PrefsConfig().merge({"namespace": "x", "password": None, "log_mode": "set"})
        assert config.namespace == "x"
        assert config.password is None
        assert config.log_mode is LogMode.SET

    def test_merge_unknown_key(self):
        """Test unknown keys are rejected."""
        with pytest.raises(ConfigError, match="colour"):
            PrefsConfig().merge({"colour": "blue"})

    def test_backend_kwargs(self):
        """Test backend options per backend."""
        assert PrefsConfig(namespace="n").backend_kwargs() == {"namespace": "n"}
        fs = PrefsConfig(namespace="n", backend="filesystem", base_path="/tmp/p")
        assert fs.backend_kwargs() == {"namespace": "n", "base_path": "/tmp/p"}
        extra = PrefsConfig(backend_options={"pretty_print": True})
        assert extra.backend_kwargs()["pretty_print"] is True


class TestFromEnv:
    """Tests for environment variables."""

    def test_from_env(self):
        """Test AESPREFS_* variables are mapped to fields."""
        config = PrefsConfig.from_env(
            {
                "AESPREFS_NAMESPACE": "env.ns",
                "AESPREFS_PASSWORD": "pw",
                "AESPREFS_LOG_MODE": "none",
                "AESPREFS_BACKEND": "filesystem",
                "AESPREFS_PATH": "/data",
                "AESPREFS_IV_SOURCE": "random",
                "UNRELATED": "x",
            }
        )
        assert config.namespace == "env.ns"
        assert config.password == "pw"
        assert config.log_mode is LogMode.NONE
        assert config.backend == "filesystem"
        assert config.base_path == "/data"
        assert config.iv_source == "random"

    def test_empty_values_ignored(self):
        """Test empty variables do not override defaults."""
        assert PrefsConfig.from_env({"AESPREFS_NAMESPACE": ""}).namespace == "default"


class TestFromFile:
    """Tests for TOML files."""

    def test_from_file(self, config_file):
        """Test the [aesprefs] table is read."""
        config = PrefsConfig.from_file(config_file)
        assert config.namespace == "com.example.file"
        assert config.backend == "filesystem"
        assert config.base_path == "/var/lib/app"
        assert config.log_mode is LogMode.GET

    def test_top_level_keys(self, tmp_path):
        """Test a file without a table is read from the top level."""
        path = tmp_path / "flat.toml"
        path.write_text('namespace = "flat"\n', encoding="utf-8")
        assert PrefsConfig.from_file(path).namespace == "flat"

    def test_password_rejected(self, tmp_path):
        """Test passwords in files are refused."""
        path = tmp_path / "secret.toml"
        path.write_text('[aesprefs]\npassword = "pw"\n', encoding="utf-8")
        with pytest.raises(ConfigError, match="password"):
            PrefsConfig.from_file(path)

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read"):
            PrefsConfig.from_file(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        """Test invalid TOML raises ConfigError."""
        path = tmp_path / "bad.toml"
        path.write_text("namespace = ", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            PrefsConfig.from_file(path)

    def test_unknown_key(self, tmp_path):
        """Test unknown keys in the file are rejected."""
        path = tmp_path / "typo.toml"
        path.write_text('[aesprefs]\nnamspace = "x"\n', encoding="utf-8")
        with pytest.raises(ConfigError, match="namspace"):
            PrefsConfig.from_file(path)


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_precedence(self, config_file):
        """Test file < environment < explicit overrides."""
        env = {"AESPREFS_NAMESPACE": "env.ns", "AESPREFS_PASSWORD": "pw"}
        config = load_config(config_file, environ=env, log_mode="all", backend=None)
        assert config.namespace == "env.ns"
        assert config.password == "pw"
        assert config.backend == "filesystem"
        assert config.log_mode is LogMode.ALL

    def test_defaults_have_lowest_priority(self, config_file):
        """Test caller defaults replace built-ins but lose to file and env."""
        defaults = {"backend": "filesystem", "base_path": "~/prefs", "iv_source": "random"}
        config = load_config(environ={}, defaults=defaults)
        assert config.backend == "filesystem"
        assert config.base_path == "~/prefs"

        config = load_config(
            config_file, environ={"AESPREFS_IV_SOURCE": "time"}, defaults=defaults
        )
        assert config.base_path == "/var/lib/app"
        assert config.iv_source == "time"

    def test_without_file(self):
        """Test environment and overrides alone."""
        config = load_config(environ={}, namespace="direct")
        assert config.namespace == "direct"
        assert config.backend == "memory"


class TestOtherFormats:
    """Tests for YAML and JSON configuration files."""

    def test_yaml(self, tmp_path):
        """Test .yaml files are read with the aesprefs section."""
        path = tmp_path / "aesprefs.yaml"
        path.write_text(
            "aesprefs:\n  namespace: yaml.ns\n  log_mode: all\n  iv_source: random\n",
            encoding="utf-8",
        )
        config = PrefsConfig.from_file(path)
        assert config.namespace == "yaml.ns"
        assert config.log_mode is LogMode.ALL
        assert config.iv_source == "random"

    def test_empty_yaml(self, tmp_path):
        """Test an empty YAML file yields defaults."""
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert PrefsConfig.from_file(path).namespace == "default"

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("aesprefs: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            PrefsConfig.from_file(path)

    def test_json(self, tmp_path):
        """Test .json files are read."""
        path = tmp_path / "aesprefs.json"
        path.write_text('{"aesprefs": {"backend": "filesystem"}}', encoding="utf-8")
        assert PrefsConfig.from_file(path).backend == "filesystem"

    def test_non_mapping(self, tmp_path):
        """Test documents that are not mappings are rejected."""
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            PrefsConfig.from_file(path)
