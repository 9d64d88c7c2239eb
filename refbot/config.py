"""Module for reading the config preferences.

   Preferences are primarily read from the corresponding system environment
   variables, and from the config.yml config file as a fallback.
   Note that the type of the config values is enforced by the YAML schema.
"""

from ast import literal_eval
import os
import inspect

from strictyaml import (as_document, load, Bool, EmptyList, Int, Map, Seq,
                        Str)


class PredicatedInt(Int):
    """StrictYAML Int validator, with optional predicates."""
    def __init__(self, predicates=None):
        self.predicates = predicates if predicates is not None else []

    def validate_scalar(self, chunk):
        val = super().validate_scalar(chunk)
        for pred in self.predicates:
            if not pred(val):
                chunk.expecting_but_found(str(inspect.getsourcelines(pred)[0]))
        return val


# Discord snowflakes are positive, but 0 is allowed for "not configured".
SnowflakeInt = PredicatedInt([lambda x: x >= 0])

# The schema used for StrictYAML parsing.
YAML_CFG_SCHEMA = {
    "REFBOT_SECRET_TOKEN": Str(),
    "REFBOT_GUILD_ID": SnowflakeInt,
    "REFBOT_DISPUTE_CHANNEL_ID": SnowflakeInt,
    "REFBOT_REF_HUB_CHANNEL_ID": SnowflakeInt,
    "REFBOT_REF_ROLE_ID": SnowflakeInt,
    "REFBOT_JR_REF_ROLE_ID": SnowflakeInt,
    "REFBOT_TRIGGER_ROLE_ID": SnowflakeInt,
    "REFBOT_COUNTRY_ROLE_PREFIX": Str(),
    "REFBOT_PRESET_QUERIES": Seq(Str()) | EmptyList(),
    "REFBOT_SUMMARY_MAX_LENGTH": PredicatedInt([lambda x: x > 1]),
    "REFBOT_LOG_LEVEL": Str(),
    "REFBOT_LOG_FILE": Str(),
    "REFBOT_DEBUG": Bool(),
}
CFG_PATH = os.environ.get("REFBOT_CONFIG") or os.path.join(
    os.path.dirname(os.path.realpath(__file__)), "..", "cfg", "config.yml")
assert os.path.isfile(CFG_PATH), f"Config file not found: {CFG_PATH}"
with open(file=CFG_PATH, mode="r", encoding="utf-8") as f_config:
    CFG = load(f_config.read(), Map(YAML_CFG_SCHEMA))
assert CFG is not None


def _parse_env(key, raw):
    """Parses the raw env var string into a Python literal.
       Plain strings don't have to be quoted, since tokens and role prefixes
       are awkward to quote in most hosting dashboards.
    """
    try:
        return literal_eval(raw)
    except (ValueError, SyntaxError):
        if isinstance(YAML_CFG_SCHEMA[key], Str):
            return raw
        raise


def cfg(key):
    """Returns a bot config value from environment variable or config file,
       in that order. If using an env var, its format has to match the type
       determined by the config values' StrictYAML schema.
    """
    assert isinstance(key, str)
    if os.environ.get(key):
        expected_ret_type = YAML_CFG_SCHEMA[key]
        # Small placeholder schema used for validating just this type.
        # We don't want to use the main schema because then we'd need
        # to populate it entirely, even though we're only interested
        # in returning this particular var.
        mini_schema = {key: expected_ret_type}
        value = _parse_env(key, os.environ.get(key))
        if isinstance(expected_ret_type, Str):
            value = str(value)
        return as_document({key: value}, Map(mini_schema))[key].data
    return CFG[key].data
