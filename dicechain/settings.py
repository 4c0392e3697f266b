import logging
import os
import typing

import yaml

import dicechain.random_source as random_source
from dicechain.roll import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = os.path.join(os.path.dirname(__file__), "settings.default.yaml")

settings: typing.Dict[str, typing.Any] = {}


def _read_yaml(path: str) -> typing.Dict[str, typing.Any]:
    with open(path) as file:
        data = yaml.safe_load(file)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgumentError("%s must contain a mapping of settings" % path)
    return data


def load_settings(path: typing.Optional[str] = None) -> typing.Dict[str, typing.Any]:
    result = _read_yaml(DEFAULT_SETTINGS_FILE)
    if path is not None:
        overrides = _read_yaml(path)
        unknown = sorted(set(overrides) - set(result))
        if unknown:
            raise InvalidArgumentError(
                "unknown settings in %s: %s" % (path, ", ".join(unknown))
            )
        result.update(overrides)
        logger.info("loaded settings from %s", path)

    seed = result["seed"]
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise InvalidArgumentError("seed must be an integer, got %r" % (seed,))
    if not isinstance(logging.getLevelName(str(result["log_level"]).upper()), int):
        raise InvalidArgumentError("unknown log level %r" % (result["log_level"],))
    samples = result["samples"]
    if isinstance(samples, bool) or not isinstance(samples, int) or samples < 1:
        raise InvalidArgumentError("samples must be a positive integer, got %r" % (samples,))
    return result


def configure(new_settings: typing.Optional[typing.Dict[str, typing.Any]] = None) -> None:
    global settings
    settings = load_settings() if new_settings is None else dict(new_settings)
    logging.getLogger("dicechain").setLevel(str(settings["log_level"]).upper())
    random_source.seed(settings["seed"])


def get(key: str) -> typing.Any:
    global settings
    if not settings:
        settings = load_settings()
    return settings[key]
