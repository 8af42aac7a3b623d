"""Single definitions inside a model section, and their role links."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .log import DefaultLogger, Logger
from .rbac import RoleManager


class PolicyOp(enum.Enum):
    """Kind of incremental change applied to role links."""

    ADD = enum.auto()
    REMOVE = enum.auto()


class ModelError(Exception):
    """Raised when a model or its policy is malformed."""


@dataclass(eq=False)
class Assertion:
    """One expression of a model section, such as ``r = sub, obj, act``."""

    key: str = ""
    value: str = ""
    tokens: list[str] = field(default_factory=list)
    policy: list[list[str]] = field(default_factory=list)
    policy_map: dict[str, int] = field(default_factory=dict)
    rm: RoleManager | None = None
    logger: Logger = field(default_factory=DefaultLogger)
    priority_index: int = -1

    def _link_width(self) -> int:
        count = self.value.count("_")
        if count < 2:
            raise ModelError('the number of "_" in role definition should be at least 2')
        return count

    def _links(self, rules: Iterable[Sequence[str]], count: int):
        for rule in rules:
            if len(rule) < count:
                raise ModelError("grouping policy elements do not meet role definition")
            rule = list(rule[:count])
            yield rule[0], rule[1], rule[2:]

    def build_role_links(self, rm: RoleManager) -> None:
        """Add every rule of this grouping definition to the role manager."""
        self.rm = rm
        count = self._link_width()
        for name1, name2, domain in self._links(self.policy, count):
            rm.add_link(name1, name2, *domain)

    def build_incremental_role_links(
        self, rm: RoleManager, op: PolicyOp, rules: Iterable[Sequence[str]]
    ) -> None:
        """Add or remove the links described by ``rules``."""
        self.rm = rm
        count = self._link_width()
        for name1, name2, domain in self._links(rules, count):
            if op is PolicyOp.ADD:
                rm.add_link(name1, name2, *domain)
            elif op is PolicyOp.REMOVE:
                rm.delete_link(name1, name2, *domain)