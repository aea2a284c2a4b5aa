"""
Index pruning rules.

Rules are read from an INI file where every section is one rule:

    [collectd]
    prefix = collectd.
    maxStale = 36h

The first rule whose prefix matches a metric name applies. A built-in
default rule matches everything and never prunes.
"""

from __future__ import annotations

import configparser
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h|d)")

_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


class IndexRulesError(ValueError):
    """An index rules file could not be parsed."""


def parse_duration(raw: str) -> timedelta:
    """Parse a Go-style duration such as "1h30m", "36h", "7d" or "0"."""
    text = raw.strip()
    if not text:
        raise ValueError("empty duration")
    if text == "0":
        return timedelta(0)

    position = 0
    total = timedelta(0)
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()

    if position != len(text) or position == 0:
        raise ValueError(f"invalid duration {raw!r}")

    return total


@dataclass(frozen=True, slots=True)
class IndexRule:
    name: str
    pattern: str = ""
    max_stale: timedelta = timedelta(0)


@dataclass(frozen=True, slots=True)
class IndexCheck:
    keep: bool
    cutoff: int


@dataclass(frozen=True, slots=True)
class IndexRules:
    rules: tuple[IndexRule, ...] = ()
    default: IndexRule = field(default_factory=lambda: IndexRule(name="default"))

    def match(self, metric: str) -> tuple[int, IndexRule]:
        """Return the first matching rule and its index; the default has index len(rules)."""
        for index, rule in enumerate(self.rules):
            if metric.startswith(rule.pattern):
                return index, rule
        return len(self.rules), self.default

    def get(self, index: int) -> IndexRule:
        if index >= len(self.rules):
            return self.default
        return self.rules[index]

    def prunable(self) -> bool:
        """Return whether any rule requires pruning."""
        if any(rule.max_stale > timedelta(0) for rule in self.rules):
            return True
        return self.default.max_stale > timedelta(0)

    def checks(self, now: datetime) -> list[IndexCheck]:
        """Return one check per rule plus one for the default, in index order."""
        return [
            IndexCheck(
                keep=rule.max_stale == timedelta(0),
                cutoff=int((now - rule.max_stale).timestamp()),
            )
            for rule in (*self.rules, self.default)
        ]


def read_index_rules(path: str | Path) -> IndexRules:
    parser = configparser.ConfigParser(interpolation=None)
    with Path(path).open("r", encoding="utf-8") as fh:
        parser.read_file(fh)
    return index_rules_from_parser(parser)


def index_rules_from_parser(parser: configparser.ConfigParser) -> IndexRules:
    rules: list[IndexRule] = []

    for name in parser.sections():
        name = name.strip()
        if not name or name.startswith("#"):
            continue

        section = parser[name]
        raw_stale = section.get("maxStale", "")
        try:
            max_stale = parse_duration(raw_stale)
        except ValueError as exc:
            raise IndexRulesError(
                f"[{name}]: failed to parse maxStale {raw_stale!r}: {exc}"
            ) from exc

        rules.append(
            IndexRule(
                name=name,
                pattern=section.get("prefix", ""),
                max_stale=max_stale,
            )
        )

    return IndexRules(rules=tuple(rules))
