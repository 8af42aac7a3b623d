"""Logging hooks used to report models, policies, roles and decisions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

_LOG = logging.getLogger("policyguard")


def _fmt(value: Any) -> str:
    """Render a value the way the reports expect: lists as ``[a b c]``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_fmt(item) for item in value) + "]"
    if value is None:
        return "[]"
    return str(value)


class Logger(ABC):
    """Interface for receivers of policy engine log events."""

    @abstractmethod
    def enable_log(self, enable: bool) -> None:
        """Turn message output on or off."""

    @abstractmethod
    def is_enabled(self) -> bool:
        """Return whether output is on."""

    @abstractmethod
    def log_model(self, model: Sequence[Sequence[str]]) -> None:
        """Report model definitions."""

    @abstractmethod
    def log_enforce(
        self,
        matcher: str,
        request: Sequence[Any],
        result: bool,
        explains: Sequence[Sequence[str]],
    ) -> None:
        """Report an enforcement decision."""

    @abstractmethod
    def log_role(self, roles: Sequence[str]) -> None:
        """Report role links."""

    @abstractmethod
    def log_policy(self, policy: Mapping[str, Sequence[Sequence[str]]]) -> None:
        """Report the loaded policy."""


class DefaultLogger(Logger):
    """Logger writing to the ``policyguard`` standard logging channel."""

    def __init__(self, enabled: bool = False) -> None:
        self._enabled = enabled

    def enable_log(self, enable: bool) -> None:
        self._enabled = bool(enable)

    def is_enabled(self) -> bool:
        return self._enabled

    def log_model(self, model: Sequence[Sequence[str]]) -> None:
        if not self._enabled:
            return
        text = "Model: " + "".join(f"{_fmt(row)}\n" for row in model or ())
        _LOG.info(text)

    def log_enforce(
        self,
        matcher: str,
        request: Sequence[Any],
        result: bool,
        explains: Sequence[Sequence[str]],
    ) -> None:
        if not self._enabled:
            return
        parts = ["Request: ", ", ".join(_fmt(v) for v in request or ())]
        parts.append(f" ---> {_fmt(bool(result))}\n")
        parts.append("Hit Policy: ")
        explains = list(explains or ())
        if explains:
            parts.append(", ".join(_fmt(p) for p in explains) + " \n")
        _LOG.info("".join(parts))

    def log_policy(self, policy: Mapping[str, Sequence[Sequence[str]]]) -> None:
        if not self._enabled:
            return
        text = "Policy: " + "".join(
            f"{key} : {_fmt(list(rules or ()))}\n" for key, rules in policy.items()
        )
        _LOG.info(text)

    def log_role(self, roles: Sequence[str]) -> None:
        if not self._enabled:
            return
        _LOG.info("Roles:  %s", _fmt(list(roles or ())))


@dataclass
class _Registry:
    """Holds the process-wide logger."""

    current: Logger


_registry = _Registry(DefaultLogger())


def set_logger(logger: Logger) -> None:
    """Replace the process-wide logger."""
    _registry.current = logger


def get_logger() -> Logger:
    """Return the process-wide logger."""
    return _registry.current


def log_model(model: Sequence[Sequence[str]]) -> None:
    """Log model information through the current logger."""
    _registry.current.log_model(model)


def log_enforce(
    matcher: str,
    request: Sequence[Any],
    result: bool,
    explains: Sequence[Sequence[str]],
) -> None:
    """Log an enforcement decision through the current logger."""
    _registry.current.log_enforce(matcher, request, result, explains)


def log_role(roles: Sequence[str]) -> None:
    """Log role information through the current logger."""
    _registry.current.log_role(roles)


def log_policy(policy: Mapping[str, Sequence[Sequence[str]]]) -> None:
    """Log policy information through the current logger."""
    _registry.current.log_policy(policy)