"""The access control model: definitions per section and their policy rules."""

from __future__ import annotations

import functools
import re
from collections.abc import Iterator, Mapping, Sequence

from .assertion import Assertion, ModelError, PolicyOp
from .log import DefaultLogger, Logger
from .rbac import RoleManager

DEFAULT_SEP = ","

SECTION_NAMES = {
    "r": "request_definition",
    "p": "policy_definition",
    "g": "role_definition",
    "e": "policy_effect",
    "m": "matchers",
}

REQUIRED_SECTIONS = ("r", "p", "e", "m")

_ESCAPE_RE = re.compile(r"\b((?:r|p)[0-9]*)\.")
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _escape_assertion(text: str) -> str:
    return _ESCAPE_RE.sub(r"\1_", text)


def _remove_comments(text: str) -> str:
    pos = text.find("#")
    return text if pos == -1 else text[:pos].strip()


def _key(rule: Sequence[str]) -> str:
    return DEFAULT_SEP.join(rule)


def _atoi(text: str) -> int | None:
    return int(text) if _INT_RE.fullmatch(text) else None


def _key_suffix(i: int) -> str:
    return "" if i == 1 else str(i)


class Model:
    """Sections of assertions (``r``, ``p``, ``g``, ``e``, ``m``) keyed by name."""

    def __init__(self) -> None:
        self._sections: dict[str, dict[str, Assertion]] = {}
        self._logger: Logger = DefaultLogger()

    def __getitem__(self, sec: str) -> dict[str, Assertion]:
        return self._sections[sec]

    def __contains__(self, sec: object) -> bool:
        return sec in self._sections

    def __iter__(self) -> Iterator[str]:
        return iter(self._sections)

    @property
    def logger(self) -> Logger:
        return self._logger

    def add_def(self, sec: str, key: str, value: str) -> bool:
        """Add an assertion; return False when the value is empty."""
        if value == "":
            return False
        ast = Assertion(key=key, value=value, logger=self._logger)
        if sec in ("r", "p"):
            ast.tokens = [f"{key}_{token.strip()}" for token in value.split(",")]
        else:
            ast.value = _remove_comments(_escape_assertion(value))
        self._sections.setdefault(sec, {})[key] = ast
        return True

    def set_logger(self, logger: Logger) -> None:
        """Use ``logger`` for the model and every assertion in it."""
        for section in self._sections.values():
            for ast in section.values():
                ast.logger = logger
        self._logger = logger

    def load_from_mapping(self, cfg: Mapping[str, str]) -> None:
        """Load definitions from ``section_name::key`` entries.

        Raises ModelError naming every required section that is missing.
        """
        for sec, name in SECTION_NAMES.items():
            i = 1
            while self.add_def(sec, sec + _key_suffix(i), cfg.get(f"{name}::{sec}{_key_suffix(i)}", "")):
                i += 1
        missing = [SECTION_NAMES[s] for s in REQUIRED_SECTIONS if not self.has_section(s)]
        if missing:
            raise ModelError(f"missing required sections: {','.join(missing)}")

    def has_section(self, sec: str) -> bool:
        return sec in self._sections

    def print_model(self) -> None:
        """Send all definitions to the logger."""
        if not self._logger.is_enabled():
            return
        info = [
            [sec, key, ast.value]
            for sec, section in self._sections.items()
            for key, ast in section.items()
        ]
        self._logger.log_model(info)

    def sort_policies_by_priority(self) -> None:
        """Order ``p`` rules by their ``priority`` field, where one is defined."""
        for ptype, ast in self._sections.get("p", {}).items():
            target = f"{ptype}_priority"
            for index, token in enumerate(ast.tokens):
                if token == target:
                    ast.priority_index = index
                    break
            if ast.priority_index == -1:
                continue
            pi = ast.priority_index

            def compare(a: list[str], b: list[str]) -> int:
                p1, p2 = _atoi(a[pi]), _atoi(b[pi])
                if p1 is None or p2 is None:
                    return -1
                return (p1 > p2) - (p1 < p2)

            ast.policy.sort(key=functools.cmp_to_key(compare))
            ast.policy_map.update({_key(rule): i for i, rule in enumerate(ast.policy)})

    def to_text(self) -> str:
        """Render the model back into configuration text."""
        lines: list[str] = []

        def write(sec: str) -> None:
            for ptype, ast in self._sections.get(sec, {}).items():
                lines.append(f"{ptype} = {ast.value.replace('_', '.')}\n")

        lines.append("[request_definition]\n")
        write("r")
        lines.append("[policy_definition]\n")
        write("p")
        if "g" in self._sections:
            lines.append("[role_definition]\n")
            for ptype, ast in self._sections["g"].items():
                lines.append(f"{ptype} = {ast.value}\n")
        lines.append("[policy_effect]\n")
        write("e")
        lines.append("[matchers]\n")
        write("m")
        return "".join(lines)

    # Role links

    def build_incremental_role_links(
        self,
        rm_map: Mapping[str, RoleManager],
        op: PolicyOp,
        sec: str,
        ptype: str,
        rules: Sequence[Sequence[str]],
    ) -> None:
        """Apply added or removed grouping rules to the matching role manager."""
        if sec == "g":
            self._sections[sec][ptype].build_incremental_role_links(rm_map[ptype], op, rules)

    def build_role_links(self, rm_map: Mapping[str, RoleManager]) -> None:
        """Fill each role manager from its grouping definition."""
        self.print_policy()
        for ptype, ast in self._sections.get("g", {}).items():
            ast.build_role_links(rm_map[ptype])

    # Policy

    def print_policy(self) -> None:
        """Send all policy rules to the logger."""
        if not self._logger.is_enabled():
            return
        policy: dict[str, list[list[str]]] = {}
        for sec in ("p", "g"):
            for key, ast in self._sections.get(sec, {}).items():
                policy.setdefault(key, []).extend(ast.policy)
        self._logger.log_policy(policy)

    def clear_policy(self) -> None:
        for sec in ("p", "g"):
            for ast in self._sections.get(sec, {}).values():
                ast.policy = []
                ast.policy_map = {}

    def get_policy(self, sec: str, ptype: str) -> list[list[str]]:
        return list(self._sections[sec][ptype].policy)

    def get_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> list[list[str]]:
        """Return rules whose fields from ``field_index`` match; empty values match all."""
        return [
            rule
            for rule in self._sections[sec][ptype].policy
            if self._matches(rule, field_index, field_values)
        ]

    @staticmethod
    def _matches(rule: Sequence[str], field_index: int, values: Sequence[str]) -> bool:
        return all(v == "" or rule[field_index + i] == v for i, v in enumerate(values))

    def has_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        return _key(rule) in self._sections[sec][ptype].policy_map

    def has_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Return True if any of ``rules`` is present."""
        return any(self.has_policy(sec, ptype, rule) for rule in rules)

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Append a rule, keeping priority order for ``p`` rules when one is set."""
        ast = self._sections[sec][ptype]
        rule = list(rule)
        pi = ast.priority_index
        priority = _atoi(rule[pi]) if sec == "p" and pi >= 0 else None
        if priority is None:
            ast.policy.append(rule)
            ast.policy_map[_key(rule)] = len(ast.policy) - 1
            return
        i = len(ast.policy)
        while i > 0:
            previous = _atoi(ast.policy[i - 1][pi])
            if previous is None or previous <= priority:
                break
            i -= 1
        ast.policy.insert(i, rule)
        for j in range(i, len(ast.policy)):
            ast.policy_map[_key(ast.policy[j])] = j

    def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        self.add_policies_with_affected(sec, ptype, rules)

    def add_policies_with_affected(
        self, sec: str, ptype: str, rules: Sequence[Sequence[str]]
    ) -> list[Sequence[str]]:
        """Add rules not yet present and return those that were added."""
        affected = []
        for rule in rules:
            if self.has_policy(sec, ptype, rule):
                continue
            affected.append(rule)
            self.add_policy(sec, ptype, rule)
        return affected

    def _remove_at(self, ast: Assertion, index: int, key: str) -> None:
        del ast.policy[index]
        del ast.policy_map[key]
        for i in range(index, len(ast.policy)):
            ast.policy_map[_key(ast.policy[i])] = i

    def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        ast = self._sections[sec][ptype]
        key = _key(rule)
        index = ast.policy_map.get(key)
        if index is None:
            return False
        self._remove_at(ast, index, key)
        return True

    def update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> bool:
        ast = self._sections[sec][ptype]
        old_key = _key(old_rule)
        index = ast.policy_map.get(old_key)
        if index is None:
            return False
        ast.policy[index] = list(new_rule)
        del ast.policy_map[old_key]
        ast.policy_map[_key(new_rule)] = index
        return True

    def update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> bool:
        """Replace each old rule by its new one; undo all if any old rule is absent."""
        if len(old_rules) != len(new_rules):
            raise ModelError("the number of old and new rules must match")
        ast = self._sections[sec][ptype]
        modified: list[tuple[int, Sequence[str], Sequence[str]]] = []
        for old, new in zip(old_rules, new_rules):
            old_key = _key(old)
            index = ast.policy_map.get(old_key)
            if index is None:
                for idx, o, n in reversed(modified):
                    ast.policy[idx] = list(o)
                    ast.policy_map.pop(_key(n), None)
                    ast.policy_map[_key(o)] = idx
                return False
            ast.policy[index] = list(new)
            del ast.policy_map[old_key]
            ast.policy_map[_key(new)] = index
            modified.append((index, old, new))
        return True

    def remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        return bool(self.remove_policies_with_effected(sec, ptype, rules))

    def remove_policies_with_effected(
        self, sec: str, ptype: str, rules: Sequence[Sequence[str]]
    ) -> list[Sequence[str]]:
        """Remove present rules and return those that were removed."""
        ast = self._sections[sec][ptype]
        effected = []
        for rule in rules:
            key = _key(rule)
            index = ast.policy_map.get(key)
            if index is None:
                continue
            effected.append(rule)
            self._remove_at(ast, index, key)
        return effected

    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> tuple[bool, list[list[str]]]:
        """Remove rules matching the field filter; return (removed any, removed rules)."""
        if not field_values:
            return False, []
        ast = self._sections[sec][ptype]
        kept: list[list[str]] = []
        removed: list[list[str]] = []
        for rule in ast.policy:
            (removed if self._matches(rule, field_index, field_values) else kept).append(rule)
        if removed:
            ast.policy = kept
            ast.policy_map = {_key(rule): i for i, rule in enumerate(kept)}
        return bool(removed), removed

    def get_values_for_field_in_policy(self, sec: str, ptype: str, field_index: int) -> list[str]:
        """Return the distinct values of one field, in first-seen order."""
        return list(dict.fromkeys(rule[field_index] for rule in self._sections[sec][ptype].policy))

    def get_values_for_field_in_policy_all_types(self, sec: str, field_index: int) -> list[str]:
        values: list[str] = []
        for ptype in self._sections.get(sec, {}):
            values.extend(self.get_values_for_field_in_policy(sec, ptype, field_index))
        return list(dict.fromkeys(values))