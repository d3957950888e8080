"""The configuration file of the command-line scripts. All settings are stored in an ini file in the working directory,
with a section for every script. Settings that are missing are added automatically, so after the first run the user
can see (and change) every setting that a script uses. Every script can also read from the [DEFAULTS] section, which is
useful for settings like the spots file that are shared by multiple scripts."""
from configparser import RawConfigParser
import logging
import os.path
from typing import Callable, Any, Dict, Optional

logger = logging.getLogger(__name__)

_DEFAULTS_SECTION = "DEFAULTS"
_INVALID = object()  # Returned by ConfigFile._parse for values that cannot be parsed


def config_type_str(input: str) -> str:
    """Default type of settings. Quotes around the value are removed, as people tend to paste paths with quotes."""
    if len(input) >= 2 and input[0] == input[-1] and input[0] in ("'", '"'):
        return input[1:-1]
    return input


def config_type_csv_file(input: str) -> str:
    """A file name that ends with ".csv". The extension is added if missing, except for empty strings."""
    input = config_type_str(input)
    if input != "" and not input.lower().endswith(".csv"):
        input += ".csv"
    return input


def config_type_int(input: str) -> int:
    return int(input)


def config_type_float(input: str) -> float:
    """Parses values as floats. Note that "inf" is accepted, which is useful for distances without any maximum."""
    return float(input)


def config_type_optional_float(input: str) -> Optional[float]:
    """A float, or None for an empty value. Used for settings that fall back to another setting if left empty."""
    input = config_type_str(input).strip()
    if input == "":
        return None
    return float(input)


def config_type_optional_int(input: str) -> Optional[int]:
    """An int, or None for an empty value."""
    input = config_type_str(input).strip()
    if input == "":
        return None
    return int(input)


def config_type_bool(input: str) -> bool:
    input = input.strip().lower()
    if input in ("true", "yes", "y", "t", "1"):
        return True
    if input in ("false", "no", "n", "f", "0"):
        return False
    raise ValueError(f"Expected \"True\" or \"False\", got \"{input}\"")


def config_type_feature_weights(input: str) -> Dict[str, float]:
    """Parses a string like "intensity: 1.0, quality: 0.5" as a dictionary of feature weights. An empty string gives
    an empty dictionary."""
    weights = dict()
    for part in config_type_str(input).split(","):
        part = part.strip()
        if len(part) == 0:
            continue
        if ":" not in part:
            raise ValueError(f"Expected \"feature: weight\", got \"{part}\"")
        name, weight = part.rsplit(":", 1)
        weights[name.strip()] = float(weight)
    return weights


class _Setting:
    """The raw text of a setting, and the comment that is written above it."""
    text: str
    comment: str

    def __init__(self, text: str, comment: str = ""):
        self.text = text
        self.comment = comment

    def __repr__(self) -> str:
        return f"_Setting({self.text!r}, {self.comment!r})"


class ConfigFile:
    """Reads and writes the ini file of the scripts. Values are parsed using one of the config_type_* functions."""

    FILE_NAME = "spot_tracker.ini"

    _folder_name: str
    _section_name: str
    _sections: Dict[str, Dict[str, _Setting]]
    made_value_changes: bool = False  # Set to True when a setting was added, so that the file needs to be saved.

    def __init__(self, section_name: str, *, folder_name: str = "./"):
        """Loads the configuration file from the given folder, if it exists. section_name is the section used by the
        current script."""
        self._section_name = section_name
        self._folder_name = folder_name

        parser = RawConfigParser()
        parser.optionxform = str  # Keep setting names case-sensitive
        parser.read(self.get_file_path(), encoding="UTF-8")
        self._sections = dict()
        for name in parser.sections():
            self._sections[name] = dict((key, _Setting(text)) for key, text in parser[name].items())

        self._sections.setdefault(_DEFAULTS_SECTION, dict())
        if section_name not in self._sections:
            self._sections[section_name] = dict()
            self.made_value_changes = True

    def get_file_path(self) -> str:
        return os.path.join(self._folder_name, self.FILE_NAME)

    def _parse(self, section_name: str, key: str, comment: str, type: Callable[[str], Any]) -> Any:
        setting = self._sections[section_name][key]
        setting.comment = comment
        try:
            return type(setting.text)
        except ValueError:
            logger.warning(f"Invalid value for setting \"{key}\" in section [{section_name}]: \"{setting.text}\"")
            return _INVALID

    def get_or_default(self, key: str, default_value: str, *, comment: str = "", store_in_defaults: bool = False,
                       type: Callable[[str], Any] = config_type_str) -> Any:
        """Gets a setting from the section of this script, or else from the DEFAULTS section. If the setting is in
        neither section or has an invalid value, the default value is used, and also stored in the file (in the
        DEFAULTS section if store_in_defaults is True)."""
        for section_name in (self._section_name, _DEFAULTS_SECTION):
            if key in self._sections[section_name]:
                value = self._parse(section_name, key, comment, type)
                if value is not _INVALID:
                    return value

        section_name = _DEFAULTS_SECTION if store_in_defaults else self._section_name
        self._sections[section_name][key] = _Setting(default_value, comment)
        self.made_value_changes = True
        return type(default_value)

    def get_or_prompt(self, key: str, question: str, store_in_defaults: bool = False, *,
                      type: Callable[[str], Any] = config_type_str) -> Any:
        """Like get_or_default, but if the setting doesn't exist yet, the user is asked for the value on the command
        line."""
        if key in self._sections[self._section_name] or key in self._sections[_DEFAULTS_SECTION]:
            return self.get_or_default(key, "", store_in_defaults=store_in_defaults, comment=question, type=type)

        try:
            answer = input(question + " ")
        except EOFError:
            # Input stream was closed, so we cannot ask anything
            exit(200)
            return
        return self.get_or_default(key, answer, store_in_defaults=store_in_defaults, comment=question, type=type)

    def save(self) -> bool:
        """Writes all settings to the file, with their comments. Always returns True."""
        parser = RawConfigParser(allow_no_value=True)
        parser.optionxform = str
        for section_name, settings in self._sections.items():
            parser[section_name] = {}
            for key, setting in settings.items():
                if setting.comment:
                    parser[section_name]["; " + setting.comment] = None
                parser[section_name][key] = setting.text

        os.makedirs(self._folder_name, exist_ok=True)
        with open(self.get_file_path(), "w", encoding="UTF-8") as handle:
            parser.write(handle)
        self.made_value_changes = False
        return True

