"""Transaction filter rules loaded from a YAML configuration."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from kaspaindex.prefix_trie import PrefixTrie

SUPPORTED_VERSION = "1.0"
MAX_TAG_LENGTH = 50
MAX_REGEX_LENGTH = 256
_U32_MAX = 2**32 - 1
_HEX_MARKER = "hex:"


class FilterConfigError(ValueError):
    """Raised when a filter configuration cannot be loaded or is invalid."""


class MatchType(Enum):
    """How a condition's pattern is matched against data."""

    PREFIX = "prefix"
    CONTAINS = "contains"
    REGEX = "regex"


@dataclass
class FilterSettings:
    default_store_payload: bool


@dataclass
class PrefixCondition:
    """A single pattern condition; decoded_prefix and compiled_regex are filled at load time."""

    prefix: str
    length: int | None = None
    match_type: MatchType = MatchType.PREFIX
    decoded_prefix: bytes = field(default=b"", compare=False)
    compiled_regex: re.Pattern[str] | None = field(default=None, compare=False, repr=False)


@dataclass
class RuleConditions:
    txid: PrefixCondition | None = None
    payload: list[PrefixCondition] | None = None


@dataclass
class FilterRule:
    name: str
    priority: int
    enabled: bool
    tag: str
    store_payload: bool
    conditions: RuleConditions
    module: str | None = None
    repository: str | None = None
    category: str | None = None


def _is_hex(text: str) -> bool:
    return all(c in string.hexdigits for c in text)


def decode_prefix_string(prefix: str) -> bytes:
    """Decode a 'hex:'-prefixed string to bytes, or encode plain text as UTF-8."""
    if prefix.startswith(_HEX_MARKER):
        hex_part = prefix[len(_HEX_MARKER):]
        if not _is_hex(hex_part):
            raise FilterConfigError(f"Failed to decode hex prefix '{prefix}': invalid hex character")
        if len(hex_part) % 2:
            raise FilterConfigError(f"Failed to decode hex prefix '{prefix}': odd number of digits")
        return bytes.fromhex(hex_part)
    return prefix.encode("utf-8")


_MISSING = object()


def _get(data: dict, key: str, kind: type, where: str, *, optional: bool = False) -> Any:
    value = data.get(key, _MISSING)
    if value is _MISSING or (optional and value is None):
        if optional:
            return None
        raise FilterConfigError(f"{where}: missing field '{key}'")
    if kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise FilterConfigError(
            f"{where}: field '{key}' must be of type {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _parse_condition(data: Any, where: str) -> PrefixCondition:
    if not isinstance(data, dict):
        raise FilterConfigError(f"{where}: expected a mapping")
    prefix = _get(data, "prefix", str, where)
    length = _get(data, "length", int, where, optional=True)
    if length is not None and length < 0:
        raise FilterConfigError(f"{where}: field 'length' must not be negative")
    raw_type = _get(data, "match_type", str, where, optional=True)
    if raw_type is None:
        match_type = MatchType.PREFIX
    else:
        try:
            match_type = MatchType(raw_type)
        except ValueError:
            expected = ", ".join(m.value for m in MatchType)
            raise FilterConfigError(
                f"{where}: unknown match_type '{raw_type}', expected one of {expected}"
            ) from None
    return PrefixCondition(prefix=prefix, length=length, match_type=match_type)


def _parse_rule(data: Any, where: str) -> FilterRule:
    if not isinstance(data, dict):
        raise FilterConfigError(f"{where}: expected a mapping")
    priority = _get(data, "priority", int, where)
    if not 0 <= priority <= _U32_MAX:
        raise FilterConfigError(f"{where}: field 'priority' out of range: {priority}")
    raw_conditions = _get(data, "conditions", dict, where)
    cond_where = f"{where}.conditions"
    raw_txid = raw_conditions.get("txid")
    txid = _parse_condition(raw_txid, f"{cond_where}.txid") if raw_txid is not None else None
    raw_payload = _get(raw_conditions, "payload", list, cond_where, optional=True)
    payload = (
        [_parse_condition(item, f"{cond_where}.payload[{i}]") for i, item in enumerate(raw_payload)]
        if raw_payload is not None
        else None
    )
    return FilterRule(
        name=_get(data, "name", str, where),
        priority=priority,
        enabled=_get(data, "enabled", bool, where),
        tag=_get(data, "tag", str, where),
        store_payload=_get(data, "store_payload", bool, where),
        conditions=RuleConditions(txid=txid, payload=payload),
        module=_get(data, "module", str, where, optional=True),
        repository=_get(data, "repository", str, where, optional=True),
        category=_get(data, "category", str, where, optional=True),
    )


@dataclass
class FilterConfig:
    """Filter rules plus caches derived from them at load time."""

    version: str
    settings: FilterSettings
    rules: list[FilterRule]
    sorted_enabled_rules: list[FilterRule] = field(default_factory=list)
    txid_trie: PrefixTrie | None = None
    payload_trie: PrefixTrie | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> FilterConfig:
        """Load, validate and preprocess a configuration file."""
        try:
            contents = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FilterConfigError(f"Failed to read config file '{path}': {e}") from e
        return cls.from_yaml(contents)

    @classmethod
    def from_yaml(cls, text: str) -> FilterConfig:
        """Load, validate and preprocess a configuration from YAML text."""
        try:
            config = cls._parse(yaml.safe_load(text))
        except (yaml.YAMLError, FilterConfigError) as e:
            raise FilterConfigError(f"Failed to parse YAML: {e}") from e
        config._prepare()
        return config

    @classmethod
    def from_dict(cls, data: dict) -> FilterConfig:
        """Build, validate and preprocess a configuration from a plain mapping."""
        config = cls._parse(data)
        config._prepare()
        return config

    @classmethod
    def _parse(cls, data: Any) -> FilterConfig:
        if not isinstance(data, dict):
            raise FilterConfigError("configuration: expected a mapping")
        where = "configuration"
        raw_settings = _get(data, "settings", dict, where)
        settings = FilterSettings(
            default_store_payload=_get(raw_settings, "default_store_payload", bool, "settings")
        )
        raw_rules = _get(data, "rules", list, where)
        return cls(
            version=_get(data, "version", str, where),
            settings=settings,
            rules=[_parse_rule(item, f"rules[{i}]") for i, item in enumerate(raw_rules)],
        )

    def _prepare(self) -> None:
        self.validate()
        self._preprocess_prefixes()
        self.sorted_enabled_rules = self.get_sorted_rules()

    def _preprocess_prefixes(self) -> None:
        for rule in self.rules:
            if rule.conditions.txid is not None:
                self._preprocess_condition(rule.conditions.txid, rule.name, "txid")
            for cond in rule.conditions.payload or ():
                self._preprocess_condition(cond, rule.name, "payload")

    @staticmethod
    def _preprocess_condition(cond: PrefixCondition, rule_name: str, where: str) -> None:
        if cond.match_type is MatchType.REGEX:
            try:
                compiled = re.compile(cond.prefix)
            except re.error as e:
                raise FilterConfigError(
                    f"Rule '{rule_name}': {where} invalid regex '{cond.prefix}': {e}"
                ) from e
            if len(cond.prefix.encode("utf-8")) > MAX_REGEX_LENGTH:
                raise FilterConfigError(
                    f"Rule '{rule_name}': {where} regex pattern too long "
                    f"(max {MAX_REGEX_LENGTH} bytes): '{cond.prefix}'"
                )
            cond.compiled_regex = compiled
            cond.decoded_prefix = cond.prefix.encode("utf-8")
        else:
            cond.decoded_prefix = decode_prefix_string(cond.prefix)

    def build_tries(self) -> None:
        """Build prefix tries over the sorted enabled rules; empty tries are stored as None."""
        txid_trie = PrefixTrie()
        payload_trie = PrefixTrie()
        for rule_index, rule in enumerate(self.sorted_enabled_rules):
            if rule.conditions.txid is not None:
                txid_trie.insert(rule.conditions.txid.decoded_prefix, rule_index)
            for cond in rule.conditions.payload or ():
                payload_trie.insert(cond.decoded_prefix, rule_index)
        self.txid_trie = None if txid_trie.is_empty() else txid_trie
        self.payload_trie = None if payload_trie.is_empty() else payload_trie

    def validate(self) -> None:
        """Check the configuration and its rules, raising FilterConfigError on the first problem."""
        if self.version != SUPPORTED_VERSION:
            raise FilterConfigError(
                f"Unsupported config version: '{self.version}'. Expected '{SUPPORTED_VERSION}'"
            )
        if not self.rules:
            raise FilterConfigError("Configuration must contain at least one rule")
        for rule in self.rules:
            self._validate_rule(rule)
        seen: set[str] = set()
        for rule in self.rules:
            if rule.name in seen:
                raise FilterConfigError(f"Duplicate rule name '{rule.name}' found")
            seen.add(rule.name)

    def _validate_rule(self, rule: FilterRule) -> None:
        if not rule.name:
            raise FilterConfigError("Rule name cannot be empty")
        if not rule.tag:
            raise FilterConfigError(f"Rule '{rule.name}': tag cannot be empty")
        tag_length = len(rule.tag.encode("utf-8"))
        if tag_length > MAX_TAG_LENGTH:
            raise FilterConfigError(
                f"Rule '{rule.name}': tag must be 1-{MAX_TAG_LENGTH} characters (got {tag_length})"
            )
        conditions = rule.conditions
        if conditions.txid is None and conditions.payload is None:
            raise FilterConfigError(
                f"Rule '{rule.name}': must have at least one condition (txid or payload)"
            )
        if conditions.txid is not None:
            self._validate_condition(conditions.txid, rule.name, "txid")
        if conditions.payload is not None:
            if not conditions.payload:
                raise FilterConfigError(
                    f"Rule '{rule.name}': payload conditions array cannot be empty"
                )
            for cond in conditions.payload:
                self._validate_condition(cond, rule.name, "payload")

    @staticmethod
    def _validate_condition(cond: PrefixCondition, rule_name: str, where: str) -> None:
        if not cond.prefix:
            raise FilterConfigError(f"Rule '{rule_name}': {where} prefix cannot be empty")
        if cond.prefix.startswith(_HEX_MARKER):
            hex_part = cond.prefix[len(_HEX_MARKER):]
            if not hex_part:
                raise FilterConfigError(
                    f"Rule '{rule_name}': {where} hex prefix cannot be empty after 'hex:'"
                )
            if not _is_hex(hex_part):
                raise FilterConfigError(
                    f"Rule '{rule_name}': {where} invalid hex characters in '{cond.prefix}'"
                )
            if len(hex_part) % 2:
                raise FilterConfigError(
                    f"Rule '{rule_name}': {where} hex string must have even length: '{cond.prefix}'"
                )
        if cond.length is not None and cond.length == 0:
            raise FilterConfigError(f"Rule '{rule_name}': {where} length must be > 0")

    def get_sorted_rules(self) -> list[FilterRule]:
        """Enabled rules, highest priority first; equal priorities keep file order."""
        return sorted((r for r in self.rules if r.enabled), key=lambda r: -r.priority)