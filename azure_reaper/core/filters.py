"""
Resource Filters
================

User-defined rules that protect resource instances from removal.

A filter compares one property of an instance's
:class:`~azure_reaper.core.base_resource.Properties` against a value. When
a filter *matches*, the instance is excluded from removal. Filters are
keyed by resource type name; the ``__global__`` key applies to every type.

Filter types
------------
exact
    Property equals the value (default).
glob
    Shell-style wildcard match.
regex
    Regular expression search.
contains
    Value is a substring of the property.
In / NotIn
    Property is (not) one of a list of values.
dateOlderThan
    Property is a timestamp older than a duration (``24h``, ``7d``, or
    seconds).

Example
-------
>>> filters = Filters.from_mapping({
...     "__global__": [{"property": "tag:protected", "value": "true"}],
...     "ResourceGroup": ["keep-me"],
... })
>>> filters.match("ResourceGroup", Properties().set("Name", "keep-me"))
Filter(property='Name', type='exact', value='keep-me')
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from azure_reaper.core.exceptions import ConfigurationError

# Module logger
logger = logging.getLogger(__name__)

GLOBAL_KEY = "__global__"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


class FilterType(Enum):
    EXACT = "exact"
    GLOB = "glob"
    REGEX = "regex"
    CONTAINS = "contains"
    IN = "In"
    NOT_IN = "NotIn"
    DATE_OLDER_THAN = "dateOlderThan"

    @classmethod
    def parse(cls, value: Optional[str]) -> FilterType:
        if not value:
            return cls.EXACT
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise ConfigurationError(
            f"unknown filter type: {value}",
            details={"valid": [m.value for m in cls]},
        )


def parse_duration(value: Union[str, int, float]) -> timedelta:
    """
    Parse ``30m``, ``24h``, ``7d``, ``2w`` or a number of seconds.

    Raises
    ------
    ConfigurationError
        If the value is not a duration.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ConfigurationError(f"invalid duration: {value}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 string or a unix timestamp; None if neither."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Filter:
    """
    One protection rule.

    Parameters
    ----------
    property : str
        Property key to compare (``Name``, ``Region``, ``tag:env``...).
    value : str or tuple of str
        Comparison value; a tuple for ``In``/``NotIn``.
    type : FilterType, default=FilterType.EXACT
        Comparison type.
    invert : bool, default=False
        Negate the comparison.
    """

    property: str
    value: Union[str, Tuple[str, ...]]
    type: FilterType = FilterType.EXACT
    invert: bool = False

    def __post_init__(self) -> None:
        if self.type is FilterType.REGEX:
            try:
                re.compile(str(self.value))
            except re.error as e:
                raise ConfigurationError(
                    f"invalid regex filter value: {self.value}: {e}"
                ) from e
        elif self.type is FilterType.DATE_OLDER_THAN:
            parse_duration(self.value)

    @classmethod
    def from_config(cls, entry: Any) -> Filter:
        """
        Build a filter from a config entry.

        A plain string is shorthand for an exact match on ``Name``.

        Raises
        ------
        ConfigurationError
            If the entry is malformed.
        """
        if isinstance(entry, str):
            return cls(property="Name", value=entry)
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"invalid filter: {entry!r}")
        if "property" not in entry or "value" not in entry:
            raise ConfigurationError(
                f"filter needs 'property' and 'value': {dict(entry)!r}"
            )

        filter_type = FilterType.parse(entry.get("type"))
        value = entry["value"]
        if filter_type in (FilterType.IN, FilterType.NOT_IN):
            if isinstance(value, (str, int, float)):
                value = [value]
            value = tuple(str(v) for v in value)
        elif filter_type is FilterType.DATE_OLDER_THAN and isinstance(value, (int, float)):
            value = str(value)
        else:
            value = _as_string(value)

        return cls(
            property=str(entry["property"]),
            value=value,
            type=filter_type,
            invert=bool(entry.get("invert", False)),
        )

    def matches(self, properties: Mapping[str, str]) -> bool:
        """Return True if the instance described by ``properties`` is protected."""
        actual = properties.get(self.property, "")
        result = self._compare(actual)
        return not result if self.invert else result

    def _compare(self, actual: str) -> bool:
        if self.type is FilterType.EXACT:
            return actual == self.value
        if self.type is FilterType.GLOB:
            return fnmatch.fnmatchcase(actual, str(self.value))
        if self.type is FilterType.REGEX:
            return re.search(str(self.value), actual) is not None
        if self.type is FilterType.CONTAINS:
            return str(self.value) in actual
        if self.type is FilterType.IN:
            return actual in self.value
        if self.type is FilterType.NOT_IN:
            return actual not in self.value
        if self.type is FilterType.DATE_OLDER_THAN:
            when = parse_timestamp(actual)
            if when is None:
                return False
            return when + parse_duration(self.value) < datetime.now(timezone.utc)
        return False

    def __repr__(self) -> str:
        text = f"Filter(property='{self.property}', type='{self.type.value}', value={self.value!r}"
        if self.invert:
            text += ", invert=True"
        return text + ")"


def _as_string(value: Any) -> str:
    # YAML turns `true` and `1` into bool/int; properties are strings
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Filters:
    """
    Filters keyed by resource type name.

    Examples
    --------
    >>> filters = Filters()
    >>> filters.add("Disk", Filter(property="Name", value="keep"))
    >>> filters.add(GLOBAL_KEY, Filter("Region", ("eastus",), FilterType.NOT_IN))
    >>> len(filters.for_type("Disk"))
    2
    """

    def __init__(self, entries: Optional[Dict[str, List[Filter]]] = None) -> None:
        self._entries: Dict[str, List[Filter]] = {}
        for key, filters in (entries or {}).items():
            for item in filters:
                self.add(key, item)

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Iterable[Any]]]) -> Filters:
        """Parse the ``filters`` section of a config file."""
        filters = cls()
        for key, entries in (mapping or {}).items():
            if entries is None:
                continue
            if isinstance(entries, (str, Mapping)):
                entries = [entries]
            for entry in entries:
                filters.add(str(key), Filter.from_config(entry))
        return filters

    def add(self, resource_type: str, item: Filter) -> None:
        self._entries.setdefault(resource_type, []).append(item)

    def merge(self, other: Filters) -> Filters:
        """Return a new set holding the filters of both."""
        merged = Filters(self._entries)
        for key, items in other._entries.items():
            for item in items:
                merged.add(key, item)
        return merged

    def keys(self) -> List[str]:
        return list(self._entries)

    def get(self, resource_type: str) -> List[Filter]:
        return list(self._entries.get(resource_type, []))

    def for_type(self, resource_type: str) -> List[Filter]:
        """Filters of ``resource_type`` followed by the global filters."""
        return self.get(resource_type) + self.get(GLOBAL_KEY)

    def rename(self, old: str, new: str) -> None:
        """Move the filters of ``old`` under ``new``."""
        if old in self._entries:
            for item in self._entries.pop(old):
                self.add(new, item)

    def match(self, resource_type: str, properties: Mapping[str, str]) -> Optional[Filter]:
        """
        Return the first filter protecting an instance, if any.

        Parameters
        ----------
        resource_type : str
            Canonical type name.
        properties : mapping
            The instance's property snapshot.

        Returns
        -------
        Filter or None
            The matching filter.
        """
        for item in self.for_type(resource_type):
            if item.matches(properties):
                return item
        return None

    def __len__(self) -> int:
        return sum(len(items) for items in self._entries.values())

    def __repr__(self) -> str:
        return f"Filters(types={sorted(self._entries)}, count={len(self)})"
