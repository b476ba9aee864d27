"""Tests for configuration loading."""

from config import SRC_ENV_VAR, TreeConfig, load_config


def test_defaults_when_file_missing(tmp_path, monkeypatch):
    monkeypatch.delenv(SRC_ENV_VAR, raising=False)
    config = load_config(tmp_path / "missing.yaml")
    assert config == TreeConfig()
    assert config.src is None


def test_file_values(tmp_path, monkeypatch):
    monkeypatch.delenv(SRC_ENV_VAR, raising=False)
    path = tmp_path / "model_tree.yaml"
    path.write_text(
        "src: data/models.yaml\ntitle: Models\nstyles:\n  node_color: '#101010'\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.src == "data/models.yaml"
    assert config.title == "Models"
    assert config.styles.node_color == "#101010"
    assert config.styles.note_color == "#ef4444"


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "model_tree.yaml"
    path.write_text("src: from-file.yaml\n", encoding="utf-8")
    monkeypatch.setenv(SRC_ENV_VAR, "from-env.yaml")
    assert load_config(path).src == "from-env.yaml"


def test_argument_overrides_env(tmp_path, monkeypatch):
    monkeypatch.setenv(SRC_ENV_VAR, "from-env.yaml")
    assert load_config(tmp_path / "missing.yaml", src="from-arg.yaml").src == "from-arg.yaml"
