"""Storage adapters, dispatchers and watchers, plus the shared policy line loader."""

from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

from .model import DEFAULT_SEP, Model


def load_policy_line(line: str, model: Model) -> None:
    """Parse one ``ptype, field, field, ...`` line and append the rule to ``model``.

    Empty lines, comment lines and lines that are not valid CSV are ignored.
    """
    if not line or line.startswith("#"):
        return
    try:
        tokens = next(csv.reader([line], skipinitialspace=True, strict=True))
    except (csv.Error, StopIteration):
        return
    if not tokens:
        return
    key = tokens[0]
    ast = model[key[:1]][key]
    rule = tokens[1:]
    ast.policy.append(rule)
    ast.policy_map[DEFAULT_SEP.join(rule)] = len(ast.policy) - 1


class Adapter(ABC):
    """Loads and saves policy rules from and to a storage."""

    @abstractmethod
    def load_policy(self, model: Model) -> None:
        """Load all policy rules into ``model``."""

    @abstractmethod
    def save_policy(self, model: Model) -> None:
        """Save all policy rules of ``model``."""

    @abstractmethod
    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Add one rule to the storage."""

    @abstractmethod
    def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Remove one rule from the storage."""

    @abstractmethod
    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> None:
        """Remove the rules matching a field filter from the storage."""


class FilteredAdapter(Adapter):
    """Adapter able to load only a filtered part of the policy."""

    @abstractmethod
    def load_filtered_policy(self, model: Model, filter: Any) -> None:
        """Load only the rules that match ``filter``."""

    @abstractmethod
    def is_filtered(self) -> bool:
        """Return whether the loaded policy was filtered."""


class BatchAdapter(Adapter):
    """Adapter that adds and removes several rules at once."""

    @abstractmethod
    def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Add rules to the storage."""

    @abstractmethod
    def remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Remove rules from the storage."""


class UpdatableAdapter(Adapter):
    """Adapter that can replace rules in place."""

    @abstractmethod
    def update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> None:
        """Replace one rule in the storage."""

    @abstractmethod
    def update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> None:
        """Replace several rules in the storage."""

    @abstractmethod
    def update_filtered_policies(
        self,
        sec: str,
        ptype: str,
        new_rules: Sequence[Sequence[str]],
        field_index: int,
        *field_values: str,
    ) -> list[list[str]]:
        """Delete the rules matching the filter, add ``new_rules``, return the deleted ones."""


class Dispatcher(ABC):
    """Spreads policy changes to every instance."""

    @abstractmethod
    def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Add rules on all instances."""

    @abstractmethod
    def remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Remove rules on all instances."""

    @abstractmethod
    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> None:
        """Remove filtered rules on all instances."""

    @abstractmethod
    def clear_policy(self) -> None:
        """Clear the policy on all instances."""

    @abstractmethod
    def update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> None:
        """Replace a rule on all instances."""

    @abstractmethod
    def update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> None:
        """Replace several rules on all instances."""

    @abstractmethod
    def update_filtered_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> None:
        """Delete ``old_rules`` and add ``new_rules`` on all instances."""


class Watcher(ABC):
    """Notifies other instances that the stored policy changed."""

    @abstractmethod
    def set_update_callback(self, callback: Callable[[str], None]) -> None:
        """Set the function called when another instance changed the policy."""

    @abstractmethod
    def update(self) -> None:
        """Tell other instances to reload their policy."""

    @abstractmethod
    def close(self) -> None:
        """Stop the watcher; the callback is not called any more."""


class WatcherEx(Watcher):
    """Watcher with notifications specific to each kind of change."""

    @abstractmethod
    def update_for_add_policy(self, *params: str) -> None:
        """Notify that a rule was added."""

    @abstractmethod
    def update_for_remove_policy(self, *params: str) -> None:
        """Notify that a rule was removed."""

    @abstractmethod
    def update_for_remove_filtered_policy(self, field_index: int, *field_values: str) -> None:
        """Notify that filtered rules were removed."""

    @abstractmethod
    def update_for_save_policy(self, model: Model) -> None:
        """Notify that the whole policy was saved."""


class WatcherUpdatable(Watcher):
    """Watcher with notifications for replaced rules."""

    @abstractmethod
    def update_for_update_policy(self, old_rule: Sequence[str], new_rule: Sequence[str]) -> None:
        """Notify that a rule was replaced."""

    @abstractmethod
    def update_for_update_policies(
        self, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> None:
        """Notify that several rules were replaced."""