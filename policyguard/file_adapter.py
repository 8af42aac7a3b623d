"""Adapters keeping the policy in a CSV-like text file."""

from __future__ import annotations

import csv
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .model import Model
from .persist import BatchAdapter, FilteredAdapter, UpdatableAdapter, load_policy_line


class UnsupportedOperationError(Exception):
    """Raised for operations the file adapters refuse to carry out."""


_EMPTY_PATH = "invalid file path, file path cannot be empty"

_Entry = tuple[str, list[str]]


def _matches(rule: Sequence[str], field_index: int, field_values: Sequence[str]) -> bool:
    if len(rule) < field_index + len(field_values):
        return False
    return all(
        not value or rule[field_index + i] == value for i, value in enumerate(field_values)
    )


class FileAdapter(BatchAdapter, UpdatableAdapter):
    """Keeps the policy in a text file, one ``ptype, field, ...`` rule per line."""

    def __init__(self, file_path: str | Path) -> None:
        self.file_path = str(file_path)

    def _check_path(self) -> None:
        if self.file_path == "":
            raise ValueError(_EMPTY_PATH)

    def _read_lines(self, accept: Callable[[str], bool], model: Model) -> None:
        with open(self.file_path, encoding="utf-8") as handle:
            for raw in handle:
                line = raw.strip()
                if accept(line):
                    load_policy_line(line, model)

    def _read_entries(self) -> list[_Entry]:
        self._check_path()
        path = Path(self.file_path)
        if not path.exists():
            return []
        entries: list[_Entry] = []
        for raw in path.read_text(encoding="utf-8").splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            tokens = next(csv.reader([line], skipinitialspace=True), None)
            if tokens:
                entries.append((tokens[0], tokens[1:]))
        return entries

    def _write_entries(self, entries: Sequence[_Entry]) -> None:
        self._check_path()
        lines = [f"{ptype}, {', '.join(rule)}" for ptype, rule in entries]
        Path(self.file_path).write_text("\n".join(lines), encoding="utf-8")

    def load_policy(self, model: Model) -> None:
        """Load every rule of the file into ``model``."""
        self._check_path()
        self._read_lines(lambda line: True, model)

    def save_policy(self, model: Model) -> None:
        """Overwrite the file with all ``p`` and ``g`` rules of ``model``."""
        self._check_path()
        entries = [
            (ptype, list(rule))
            for sec in ("p", "g")
            if sec in model
            for ptype, ast in model[sec].items()
            for rule in ast.policy
        ]
        self._write_entries(entries)

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Append one rule to the file."""
        self.add_policies(sec, ptype, [rule])

    def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Append rules to the file."""
        entries = self._read_entries()
        entries.extend((ptype, list(rule)) for rule in rules)
        self._write_entries(entries)

    def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Remove one rule from the file, if present."""
        self.remove_policies(sec, ptype, [rule])

    def remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Remove the given rules from the file; absent ones are ignored."""
        entries = self._read_entries()
        for rule in rules:
            target = (ptype, list(rule))
            if target in entries:
                entries.remove(target)
        self._write_entries(entries)

    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> None:
        """Remove every rule of ``ptype`` matching the field filter."""
        self._remove_filtered(ptype, field_index, field_values)

    def _remove_filtered(
        self, ptype: str, field_index: int, field_values: Sequence[str]
    ) -> tuple[list[_Entry], list[list[str]]]:
        entries = self._read_entries()
        if not field_values:
            return entries, []
        kept: list[_Entry] = []
        removed: list[list[str]] = []
        for entry_ptype, rule in entries:
            if entry_ptype == ptype and _matches(rule, field_index, field_values):
                removed.append(rule)
            else:
                kept.append((entry_ptype, rule))
        self._write_entries(kept)
        return kept, removed

    def update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> None:
        """Replace one rule in the file by another."""
        self.update_policies(sec, ptype, [old_rule], [new_rule])

    def update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> None:
        """Replace each old rule by the new rule at the same position."""
        if len(old_rules) != len(new_rules):
            raise ValueError("the old and new rules must be of the same number")
        entries = self._read_entries()
        for old_rule, new_rule in zip(old_rules, new_rules):
            target = (ptype, list(old_rule))
            if target in entries:
                entries[entries.index(target)] = (ptype, list(new_rule))
        self._write_entries(entries)

    def update_filtered_policies(
        self,
        sec: str,
        ptype: str,
        new_rules: Sequence[Sequence[str]],
        field_index: int,
        *field_values: str,
    ) -> list[list[str]]:
        """Drop the rules matching the filter, add ``new_rules``, return the dropped ones."""
        kept, removed = self._remove_filtered(ptype, field_index, field_values)
        kept.extend((ptype, list(rule)) for rule in new_rules)
        self._write_entries(kept)
        return removed


@dataclass
class Filter:
    """Field values that loaded ``p`` and ``g`` rules must have; empty values match all."""

    p: list[str] = field(default_factory=list)
    g: list[str] = field(default_factory=list)


def _skip_words(words: Sequence[str], wanted: Sequence[str]) -> bool:
    if len(words) < len(wanted) + 1:
        return True
    return any(
        value and value.strip() != words[i + 1].strip() for i, value in enumerate(wanted)
    )


def _skip_line(line: str, filter: Filter) -> bool:
    words = line.split(",")
    kind = words[0].strip()
    wanted = filter.p if kind == "p" else filter.g if kind == "g" else []
    return _skip_words(words, wanted)


class FilteredFileAdapter(FileAdapter, FilteredAdapter):
    """File adapter that can load only the rules matching a Filter."""

    def __init__(self, file_path: str | Path) -> None:
        super().__init__(file_path)
        self._filtered = True

    def load_policy(self, model: Model) -> None:
        self._filtered = False
        super().load_policy(model)

    def load_filtered_policy(self, model: Model, filter: Any) -> None:
        """Load only the rules matching ``filter``; ``None`` loads everything."""
        if filter is None:
            self.load_policy(model)
            return
        self._check_path()
        if not isinstance(filter, Filter):
            raise TypeError("invalid filter type")
        self._read_lines(lambda line: not _skip_line(line, filter), model)
        self._filtered = True

    def is_filtered(self) -> bool:
        return self._filtered

    def save_policy(self, model: Model) -> None:
        """Save the policy; refused when only a filtered part was loaded."""
        if self._filtered:
            raise UnsupportedOperationError("cannot save a filtered policy")
        super().save_policy(model)