import logging

import pytest

import dicechain.random_source as random_source
import dicechain.settings as settings
from dicechain.roll import D100, InvalidArgumentError


@pytest.fixture(autouse=True)
def restore(monkeypatch):
    monkeypatch.setattr(settings, "settings", {})
    logger = logging.getLogger("dicechain")
    level = logger.level
    yield
    logger.setLevel(level)
    random_source.seed()


@pytest.fixture
def settings_file(tmp_path):
    def write(text):
        path = tmp_path / "settings.yaml"
        path.write_text(text)
        return str(path)

    return write


def test_defaults() -> None:
    loaded = settings.load_settings()
    assert loaded == {"seed": None, "log_level": "WARNING", "samples": 100000}


def test_overrides(settings_file) -> None:
    loaded = settings.load_settings(settings_file("seed: 7\nsamples: 500\n"))
    assert loaded == {"seed": 7, "log_level": "WARNING", "samples": 500}


def test_empty_file(settings_file) -> None:
    assert settings.load_settings(settings_file("")) == settings.load_settings()


@pytest.mark.parametrize(
    "text",
    [
        "- seed\n",
        "colour: red\n",
        "seed: lucky\n",
        "seed: true\n",
        "log_level: LOUD\n",
        "samples: 0\n",
        "samples: many\n",
    ],
)
def test_invalid(settings_file, text) -> None:
    with pytest.raises(InvalidArgumentError):
        settings.load_settings(settings_file(text))


def test_get_loads_defaults_lazily() -> None:
    assert settings.get("samples") == 100000
    assert settings.settings["log_level"] == "WARNING"


def test_configure_log_level(settings_file) -> None:
    settings.configure(settings.load_settings(settings_file("log_level: debug\n")))
    assert logging.getLogger("dicechain").level == logging.DEBUG
    assert logging.getLogger("dicechain.roll_parser").getEffectiveLevel() == logging.DEBUG
    assert settings.get("log_level") == "debug"


def test_configure_seed() -> None:
    settings.configure({"seed": 1234, "log_level": "WARNING", "samples": 10})
    first = list(D100.roll_many(20))
    settings.configure({"seed": 1234, "log_level": "WARNING", "samples": 10})
    assert list(D100.roll_many(20)) == first
    assert settings.get("samples") == 10
