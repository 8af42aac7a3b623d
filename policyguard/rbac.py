"""Role managers: storage and queries for role inheritance links."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from .log import DefaultLogger, Logger

MatchingFunc = Callable[[str, str], bool]

_DEFAULT_DOMAIN = ""
_SEPARATOR = "::"


class RoleManagerError(Exception):
    """Base error raised by role managers."""


class DomainParameterError(RoleManagerError):
    """More than one domain was given."""

    def __init__(self) -> None:
        super().__init__("domain should be 1 parameter")


class NameNotFoundError(RoleManagerError):
    """The requested name is unknown."""

    def __init__(self) -> None:
        super().__init__("error: name does not exist")


class NamesNotFoundError(RoleManagerError):
    """One of the two linked names is unknown."""

    def __init__(self) -> None:
        super().__init__("error: name1 or name2 does not exist")


class RoleManager(ABC):
    """Interface for role inheritance storage."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all stored data."""

    @abstractmethod
    def add_link(self, name1: str, name2: str, *args: str) -> None:
        """Make name1 inherit name2, optionally inside a domain."""

    @abstractmethod
    def delete_link(self, name1: str, name2: str, *args: str) -> None:
        """Remove the link name1 -> name2."""

    @abstractmethod
    def has_link(self, name1: str, name2: str, *args: str) -> bool:
        """Return whether name1 inherits name2."""

    @abstractmethod
    def get_roles(self, name: str, *args: str) -> list[str]:
        """Return the roles that name inherits directly."""

    @abstractmethod
    def get_users(self, name: str, *args: str) -> list[str]:
        """Return the names that inherit name directly."""

    @abstractmethod
    def get_domains(self, name: str) -> list[str]:
        """Return the domains in which name has roles."""

    @abstractmethod
    def print_roles(self) -> None:
        """Send all role links to the logger."""

    @abstractmethod
    def set_logger(self, logger: Logger) -> None:
        """Set the logger used by print_roles."""


def _name_with_domain(domain: str, name: str) -> str:
    return name if domain == "" else f"{domain}{_SEPARATOR}{name}"


def _split_name(name_with_domain: str) -> tuple[str, str]:
    parts = name_with_domain.split(_SEPARATOR)
    if len(parts) == 1:
        return _DEFAULT_DOMAIN, parts[0]
    return parts[0], parts[1]


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _single_domain(args: tuple[str, ...]) -> str:
    if not args:
        return _DEFAULT_DOMAIN
    if len(args) == 1:
        return args[0]
    raise DomainParameterError()


class _Role:
    __slots__ = ("name", "roles")

    def __init__(self, name: str) -> None:
        self.name = name
        self.roles: list[_Role] = []

    def add_role(self, role: _Role) -> None:
        if any(r.name == role.name for r in self.roles):
            return
        self.roles.append(role)

    def delete_role(self, role: _Role) -> None:
        for i, r in enumerate(self.roles):
            if r.name == role.name:
                del self.roles[i]
                return

    def has_direct_role(self, name: str) -> bool:
        return any(r.name == name for r in self.roles)

    def has_role(self, name: str, level: int) -> bool:
        if self.has_direct_role(name):
            return True
        if level <= 0:
            return False
        return any(r.has_role(name, level - 1) for r in self.roles)

    def has_direct_role_matching(self, domain: str, name: str, fn: MatchingFunc) -> bool:
        target = _name_with_domain(domain, name)
        for r in self.roles:
            role_domain, role_name = _split_name(r.name)
            if r.name == target or (
                fn(name, role_name) and role_domain == domain and name != role_name
            ):
                return True
        return False

    def has_role_matching(self, domain: str, name: str, level: int, fn: MatchingFunc) -> bool:
        if self.has_direct_role_matching(domain, name, fn):
            return True
        if level <= 0:
            return False
        return any(r.has_role_matching(domain, name, level - 1, fn) for r in self.roles)

    def role_names(self) -> list[str]:
        return [_split_name(r.name)[1] for r in self.roles]

    def __str__(self) -> str:
        if not self.roles:
            return ""
        names = ", ".join(r.name for r in self.roles)
        if len(self.roles) != 1:
            names = f"({names})"
        return f"{self.name} < {names}"


class DefaultRoleManager(RoleManager):
    """In-memory role manager with optional name and domain pattern matching."""

    def __init__(self, max_hierarchy_level: int) -> None:
        self._roles: dict[str, _Role] = {}
        self._domains: dict[str, None] = {}
        self._max_hierarchy_level = max_hierarchy_level
        self._matching_func: MatchingFunc | None = None
        self._domain_matching_func: MatchingFunc | None = None
        self._logger: Logger = DefaultLogger()

    @property
    def _has_pattern(self) -> bool:
        return self._matching_func is not None

    @property
    def _has_domain_pattern(self) -> bool:
        return self._domain_matching_func is not None

    def add_matching_func(self, name: str, fn: MatchingFunc) -> None:
        """Use fn to match role names as patterns."""
        self._matching_func = fn

    def add_domain_matching_func(self, name: str, fn: MatchingFunc) -> None:
        """Use fn to match domains as patterns."""
        self._domain_matching_func = fn

    def set_logger(self, logger: Logger) -> None:
        self._logger = logger

    def clear(self) -> None:
        self._roles = {}
        self._domains = {}

    def _create_role(self, name: str) -> _Role:
        return self._roles.setdefault(name, _Role(name))

    def _has_role(self, domain: str, name: str, fn: MatchingFunc | None) -> bool:
        if fn is None:
            return _name_with_domain(domain, name) in self._roles
        for key in list(self._roles):
            key_domain, key_name = _split_name(key)
            if key_domain == domain and fn(name, key_name):
                return True
        return False

    def _pattern_domains(self, domain: str) -> list[str]:
        matched = [domain]
        if self._domain_matching_func is not None:
            matched.extend(
                pattern
                for pattern in self._domains
                if domain != pattern and self._domain_matching_func(domain, pattern)
            )
        return matched

    def add_link(self, name1: str, name2: str, *args: str) -> None:
        domain_arg = _single_domain(args)
        self._domains[domain_arg] = None
        fn = self._matching_func
        for domain in self._pattern_domains(domain_arg):
            role1 = self._create_role(_name_with_domain(domain, name1))
            role2 = self._create_role(_name_with_domain(domain, name2))
            role1.add_role(role2)
            if fn is None:
                continue
            for key, value in list(self._roles.items()):
                key_domain, pattern = _split_name(key)
                if key_domain != domain:
                    continue
                distinct = name1 != pattern and name2 != pattern
                if fn(pattern, name1) and distinct:
                    value.add_role(role1)
                if fn(pattern, name2) and distinct:
                    role2.add_role(value)
                if fn(name1, pattern) and distinct:
                    value.add_role(role1)
                if fn(name2, pattern) and distinct:
                    role2.add_role(value)

    def delete_link(self, name1: str, name2: str, *args: str) -> None:
        domain = _single_domain(args)
        key1 = _name_with_domain(domain, name1)
        key2 = _name_with_domain(domain, name2)
        if key1 not in self._roles or key2 not in self._roles:
            raise NamesNotFoundError()
        self._roles[key1].delete_role(self._roles[key2])

    def has_link(self, name1: str, name2: str, *args: str) -> bool:
        domain_arg = _single_domain(args)
        if name1 == name2:
            return True
        fn = self._matching_func
        for domain in self._pattern_domains(domain_arg):
            if not self._has_role(domain, name1, fn) or not self._has_role(domain, name2, fn):
                continue
            if fn is not None:
                for key, value in list(self._roles.items()):
                    key_domain, key_name = _split_name(key)
                    if self._domain_matching_func is not None:
                        if not self._domain_matching_func(domain, key_domain):
                            continue
                    elif domain != key_domain:
                        continue
                    if fn(name1, key_name) and value.has_role_matching(
                        domain, name2, self._max_hierarchy_level, fn
                    ):
                        return True
            else:
                role1 = self._create_role(_name_with_domain(domain, name1))
                if role1.has_role(_name_with_domain(domain, name2), self._max_hierarchy_level):
                    return True
        return False

    def get_roles(self, name: str, *args: str) -> list[str]:
        domain_arg = _single_domain(args)
        found: list[str] = []
        for domain in self._pattern_domains(domain_arg):
            if not self._has_role(domain, name, self._matching_func):
                continue
            found.extend(self._create_role(_name_with_domain(domain, name)).role_names())
        return _dedupe(found)

    def get_users(self, name: str, *args: str) -> list[str]:
        domain_arg = _single_domain(args)
        users: list[str] = []
        for domain in self._pattern_domains(domain_arg):
            if not self._has_role(domain, name, self._domain_matching_func):
                raise NameNotFoundError()
            target = _name_with_domain(domain, name)
            users.extend(
                _split_name(role.name)[1]
                for role in list(self._roles.values())
                if role.has_direct_role(target)
            )
        return users

    def print_roles(self) -> None:
        if not self._logger.is_enabled():
            return
        lines = [text for text in (str(role) for role in self._roles.values()) if text]
        self._logger.log_role(lines)

    def get_domains(self, name: str) -> list[str]:
        return _dedupe([d for d in list(self._domains) if self._has_any_role(name, d)])

    def _has_any_role(self, name: str, domain: str) -> bool:
        return any(
            self._has_role(d, name, self._matching_func) for d in self._pattern_domains(domain)
        )