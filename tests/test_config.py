"""
Tests for pinkit/config.py configuration management.

Tests the hierarchical configuration system with sensible defaults,
including file loading, environment variables, and path expansion.
"""
import pytest
import tomli

from pinkit import config as config_module
from pinkit.config import PinkitConfig, get_config, init_config
from pinkit.errors import ConfigError


@pytest.fixture
def reset_global_config(monkeypatch):
    """Make get_config() start from scratch."""
    monkeypatch.setattr(config_module, "_config", None)


class TestPinkitConfigDefaults:
    """Test default configuration values."""

    def test_default_base_url(self):
        config = PinkitConfig()
        assert config.base_url == "https://api.pinboard.in/v1/"

    def test_default_timeout_is_10(self):
        """Default timeout should be 10 seconds."""
        config = PinkitConfig()
        assert config.timeout == 10

    def test_default_token_is_none(self):
        config = PinkitConfig()
        assert config.api_token is None

    def test_default_search_mode_is_exact(self):
        config = PinkitConfig()
        assert config.fuzzy_search is False
        assert config.tag_only_search is False

    def test_default_output_format_is_table(self):
        config = PinkitConfig()
        assert config.output_format == "table"


class TestConfigLoading:
    """Test configuration loading from files."""

    def test_load_defaults_when_no_files_exist(self, clean_pinkit_env):
        config = PinkitConfig.load()
        assert config.api_token is None
        assert config.timeout == 10

    def test_load_from_local_pinkit_toml(self, clean_pinkit_env):
        """Should load config from ./pinkit.toml."""
        (clean_pinkit_env / "pinkit.toml").write_text('api_token = "me:LOCAL"\ntimeout = 30\n')

        config = PinkitConfig.load()
        assert config.api_token == "me:LOCAL"
        assert config.timeout == 30

    def test_load_from_pinkitrc(self, clean_pinkit_env):
        """Should load config from ./.pinkitrc."""
        (clean_pinkit_env / ".pinkitrc").write_text("fuzzy_search = true\n")

        config = PinkitConfig.load()
        assert config.fuzzy_search is True

    def test_load_from_user_config_file(self, clean_pinkit_env):
        """Should load config from ~/.config/pinkit/config.toml."""
        user_config_dir = clean_pinkit_env / "home" / ".config" / "pinkit"
        user_config_dir.mkdir(parents=True)
        (user_config_dir / "config.toml").write_text('api_token = "me:USER"\ntimeout = 20\n')

        config = PinkitConfig.load()
        assert config.api_token == "me:USER"
        assert config.timeout == 20

    def test_local_config_overrides_user_config(self, clean_pinkit_env):
        user_config_dir = clean_pinkit_env / "home" / ".config" / "pinkit"
        user_config_dir.mkdir(parents=True)
        (user_config_dir / "config.toml").write_text('api_token = "me:USER"\ntimeout = 20\n')
        (clean_pinkit_env / "pinkit.toml").write_text('api_token = "me:LOCAL"\n')

        config = PinkitConfig.load()
        # token overridden by local
        assert config.api_token == "me:LOCAL"
        # timeout from user config preserved
        assert config.timeout == 20

    def test_explicit_config_file_overrides_all(self, clean_pinkit_env):
        (clean_pinkit_env / "pinkit.toml").write_text('api_token = "me:LOCAL"\n')
        explicit = clean_pinkit_env / "explicit.toml"
        explicit.write_text('api_token = "me:EXPLICIT"\n')

        config = PinkitConfig.load(config_file=explicit)
        assert config.api_token == "me:EXPLICIT"

    def test_missing_explicit_config_file(self, clean_pinkit_env):
        with pytest.raises(ConfigError, match="not found"):
            PinkitConfig.load(config_file=clean_pinkit_env / "nope.toml")

    def test_invalid_toml(self, clean_pinkit_env):
        (clean_pinkit_env / "pinkit.toml").write_text("timeout = = 3\n")
        with pytest.raises(ConfigError, match="invalid config file"):
            PinkitConfig.load()

    def test_unknown_keys_ignored(self, clean_pinkit_env):
        (clean_pinkit_env / "pinkit.toml").write_text('color = "always"\n')
        config = PinkitConfig.load()
        assert not hasattr(config, "color")


class TestEnvironmentVariables:
    """Test environment variable overrides."""

    def test_env_var_overrides_file_config_string(self, clean_pinkit_env, monkeypatch):
        (clean_pinkit_env / "pinkit.toml").write_text('api_token = "me:FILE"\n')
        monkeypatch.setenv("PINKIT_API_TOKEN", "me:ENV")

        config = PinkitConfig.load()
        assert config.api_token == "me:ENV"

    def test_env_var_overrides_boolean_true(self, clean_pinkit_env, monkeypatch):
        monkeypatch.setenv("PINKIT_FUZZY_SEARCH", "true")
        assert PinkitConfig.load().fuzzy_search is True

    def test_env_var_overrides_boolean_1(self, clean_pinkit_env, monkeypatch):
        monkeypatch.setenv("PINKIT_TAG_ONLY_SEARCH", "1")
        assert PinkitConfig.load().tag_only_search is True

    def test_env_var_overrides_boolean_false(self, clean_pinkit_env, monkeypatch):
        (clean_pinkit_env / "pinkit.toml").write_text("fuzzy_search = true\n")
        monkeypatch.setenv("PINKIT_FUZZY_SEARCH", "false")
        assert PinkitConfig.load().fuzzy_search is False

    def test_env_var_overrides_integer(self, clean_pinkit_env, monkeypatch):
        monkeypatch.setenv("PINKIT_TIMEOUT", "60")
        assert PinkitConfig.load().timeout == 60

    def test_env_var_invalid_integer(self, clean_pinkit_env, monkeypatch):
        monkeypatch.setenv("PINKIT_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            PinkitConfig.load()

    def test_unknown_env_var_ignored(self, clean_pinkit_env, monkeypatch):
        monkeypatch.setenv("PINKIT_UNKNOWN_SETTING", "value")
        config = PinkitConfig.load()
        assert not hasattr(config, "unknown_setting")

    def test_cache_dir_expanded(self, clean_pinkit_env, monkeypatch):
        monkeypatch.setenv("PINKIT_CACHE_DIR", "~/pins")
        config = PinkitConfig.load()
        assert config.cache_dir == str(clean_pinkit_env / "home" / "pins")


class TestSet:
    def test_set_string(self):
        config = PinkitConfig()
        config.set("base_url", "https://pins.example.com/v1/")
        assert config.base_url == "https://pins.example.com/v1/"

    def test_set_bool(self):
        config = PinkitConfig()
        config.set("fuzzy_search", "yes")
        assert config.fuzzy_search is True

    def test_set_int(self):
        config = PinkitConfig()
        config.set("timeout", "30")
        assert config.timeout == 30

    def test_set_unknown_key(self):
        with pytest.raises(ConfigError, match="unknown config key"):
            PinkitConfig().set("colour", "red")


class TestConfigSaving:
    """Test configuration saving."""

    def test_save_creates_parent_directories(self, tmp_path):
        save_path = tmp_path / "nested" / "dirs" / "config.toml"
        PinkitConfig().save(save_path)
        assert save_path.exists()

    def test_save_writes_valid_toml(self, tmp_path):
        config = PinkitConfig()
        config.set("api_token", "me:TOKEN")
        config.set("timeout", "45")
        save_path = tmp_path / "config.toml"
        config.save(save_path)

        with open(save_path, "rb") as f:
            loaded = tomli.load(f)

        assert loaded["api_token"] == "me:TOKEN"
        assert loaded["timeout"] == 45

    def test_save_omits_none_values(self, tmp_path):
        save_path = tmp_path / "config.toml"
        PinkitConfig().save(save_path, include_defaults=True)

        with open(save_path, "rb") as f:
            loaded = tomli.load(f)

        assert "api_token" not in loaded
        assert "user_agent" not in loaded
        assert loaded["timeout"] == 10

    def test_save_to_default_location(self, clean_pinkit_env):
        PinkitConfig().save()
        assert (clean_pinkit_env / "home" / ".config" / "pinkit" / "config.toml").exists()

    def test_saved_config_loads_back(self, clean_pinkit_env):
        PinkitConfig(api_token="me:TOKEN", fuzzy_search=True).save(include_defaults=True)
        config = PinkitConfig.load()
        assert config.api_token == "me:TOKEN"
        assert config.fuzzy_search is True

    def test_unset_values_not_saved(self, tmp_path):
        save_path = tmp_path / "config.toml"
        PinkitConfig(api_token="me:TOKEN").save(save_path)

        with open(save_path, "rb") as f:
            assert tomli.load(f) == {}

    def test_env_token_not_saved(self, clean_pinkit_env, monkeypatch):
        """A token from the environment must not end up in the config file."""
        monkeypatch.setenv("PINKIT_API_TOKEN", "me:SECRET")
        config = PinkitConfig.load()
        config.set("timeout", "30")

        config.save()

        saved = (clean_pinkit_env / "home" / ".config" / "pinkit" / "config.toml").read_text()
        assert "SECRET" not in saved
        assert "timeout = 30" in saved

    def test_save_keeps_user_file_values(self, clean_pinkit_env):
        user_config = clean_pinkit_env / "home" / ".config" / "pinkit" / "config.toml"
        user_config.parent.mkdir(parents=True)
        user_config.write_text('api_token = "me:USER"\nunknown = 1\n')
        (clean_pinkit_env / "pinkit.toml").write_text("timeout = 99\n")

        config = PinkitConfig.load()
        config.set("fuzzy_search", "true")
        config.save()

        with open(user_config, "rb") as f:
            saved = tomli.load(f)
        assert saved == {"api_token": "me:USER", "fuzzy_search": True}

    def test_init_config_overrides_not_saved(self, clean_pinkit_env, reset_global_config):
        config = init_config(output_format="json")
        config.save()

        saved = (clean_pinkit_env / "home" / ".config" / "pinkit" / "config.toml").read_text()
        assert "output_format" not in saved


class TestCachePath:
    def test_relative_resolved_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = PinkitConfig(cache_dir="cache")
        assert config.cache_path() == tmp_path / "cache"

    def test_absolute_unchanged(self, tmp_path):
        config = PinkitConfig(cache_dir=str(tmp_path / "cache"))
        assert config.cache_path() == tmp_path / "cache"

    def test_set_cache_dir(self, tmp_path):
        config = PinkitConfig()
        assert config.set_cache_dir(tmp_path / "other") == tmp_path / "other"
        assert config.cache_dir == str(tmp_path / "other")


class TestRequireToken:
    def test_returns_token(self):
        assert PinkitConfig(api_token="me:TOKEN").require_token() == "me:TOKEN"

    def test_missing_token(self):
        with pytest.raises(ConfigError, match="PINKIT_API_TOKEN"):
            PinkitConfig().require_token()


class TestGlobalConfig:
    """Test get_config/init_config."""

    def test_get_config_is_cached(self, clean_pinkit_env, reset_global_config):
        assert get_config() is get_config()

    def test_get_config_reload(self, clean_pinkit_env, reset_global_config):
        first = get_config()
        assert get_config(reload=True) is not first

    def test_init_config_applies_overrides(self, clean_pinkit_env, reset_global_config):
        config = init_config(output_format="json", cache_dir="~/elsewhere")
        assert config.output_format == "json"
        assert config.cache_dir == str(clean_pinkit_env / "home" / "elsewhere")

    def test_init_config_ignores_none(self, clean_pinkit_env, reset_global_config):
        config = init_config(output_format=None)
        assert config.output_format == "table"

    def test_init_config_with_file(self, clean_pinkit_env, reset_global_config):
        explicit = clean_pinkit_env / "explicit.toml"
        explicit.write_text('api_token = "me:EXPLICIT"\n')

        config = init_config(config_file=explicit)

        assert config.api_token == "me:EXPLICIT"
        assert get_config() is config
