# policyguard

`policyguard` provides the building blocks of a policy-based authorization
engine:

- a **model** (`policyguard.model.Model`) made of request, policy, role,
  effect and matcher definitions, which also holds the policy rules;
- a **role manager** (`policyguard.rbac.DefaultRoleManager`) that tracks role
  inheritance, optionally per domain and with pattern matching on names and
  domains;
- **adapters** that load policy rules from storage and save them back,
  including a text file adapter and a filtered variant
  (`policyguard.file_adapter`);
- abstract interfaces for adapters, dispatchers and watchers
  (`policyguard.persist`);
- pluggable **logging** of models, policies, roles and enforcement decisions
  (`policyguard.log`).

## Installation

```
pip install policyguard
```

It needs Python 3.10 or newer and has no runtime dependencies.

## Building a model

```python
from policyguard.model import Model

model = Model()
model.add_def("r", "r", "sub, obj, act")
model.add_def("p", "p", "sub, obj, act")
model.add_def("g", "g", "_, _")
model.add_def("e", "e", "some(where (p.eft == allow))")
model.add_def("m", "m", "g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act")

model.add_policy("p", "p", ["alice", "data1", "read"])
model.add_policy("g", "g", ["bob", "admin"])

model.has_policy("p", "p", ["alice", "data1", "read"])    # True
model.get_filtered_policy("p", "p", 0, "alice")           # [["alice", "data1", "read"]]
print(model.to_text())
```

`add_def` returns `False` and adds nothing when the value is empty.

A model can also be filled from a mapping of `"section_name::key"` entries:

```python
model = Model()
model.load_from_mapping({
    "request_definition::r": "sub, obj, act",
    "policy_definition::p": "sub, obj, act",
    "policy_effect::e": "some(where (p.eft == allow))",
    "matchers::m": "r.sub == p.sub && r.obj == p.obj && r.act == p.act",
})
```

Further keys of a section are read as `r2`, `r3`, … until one is missing. If
any of the request, policy, effect or matcher sections is absent, a
`policyguard.assertion.ModelError` names all of them.

Policy rules are managed with `add_policy`, `add_policies`,
`add_policies_with_affected`, `remove_policy`, `remove_policies`,
`remove_policies_with_effected`, `remove_filtered_policy` (returns a pair of
"anything removed" and the removed rules), `update_policy`,
`update_policies` (undoes every change if one old rule is absent) and
`clear_policy`. In field filters an empty string matches any value. When a
`p` definition has a `priority` field, `sort_policies_by_priority` orders the
rules by it and `add_policy` keeps that order.

## Roles

```python
from policyguard.rbac import DefaultRoleManager

rm = DefaultRoleManager(10)
rm.add_link("u1", "g1")
rm.add_link("g1", "admin")
rm.has_link("u1", "admin")        # True
rm.get_roles("u1")                # ["g1"]

rm.add_link("u2", "editor", "domain1")
rm.has_link("u2", "editor", "domain1")   # True
```

The constructor argument is the maximum depth of inheritance followed by
`has_link`. Matching functions taking two strings and returning a bool can be
installed with `add_matching_func` (role names as patterns) and
`add_domain_matching_func` (domains as patterns). Passing more than one
domain raises `DomainParameterError`; `delete_link` on unknown names raises
`NamesNotFoundError`; `get_users` on an unknown name raises
`NameNotFoundError`. All three derive from `RoleManagerError`.

To build role links from a model's grouping rules, call
`model.build_role_links({"g": rm})`; `build_incremental_role_links` applies
added or removed rules using `policyguard.assertion.PolicyOp.ADD` or
`PolicyOp.REMOVE`.

## Storing policy in a file

```python
from policyguard.file_adapter import FileAdapter, FilteredFileAdapter, Filter

adapter = FileAdapter("policy.csv")
adapter.load_policy(model)
adapter.save_policy(model)

filtered = FilteredFileAdapter("policy.csv")
filtered.load_filtered_policy(model, Filter(p=["alice"], g=[]))
filtered.is_filtered()   # True
```

Each line of the file is one rule, for example `p, alice, data1, read` or
`g, bob, admin`; empty lines and lines starting with `#` are skipped. Loading
appends to the rules already in the model, and the model must define every
policy type found in the file.

`FileAdapter` also edits the file one change at a time with `add_policy`,
`add_policies`, `remove_policy`, `remove_policies`, `remove_filtered_policy`,
`update_policy`, `update_policies` and `update_filtered_policies` (which
returns the rules it dropped). An empty file path raises `ValueError`.

`FilteredFileAdapter.load_filtered_policy` with `None` loads everything; any
other filter that is not a `Filter` raises `TypeError`. After a filtered load,
`save_policy` raises `UnsupportedOperationError`.

`policyguard.persist.load_policy_line` parses a single rule line into a model
and can be used by other adapters.

## Logging

```python
from policyguard import log

logger = log.DefaultLogger()
logger.enable_log(True)
log.set_logger(logger)
```

`DefaultLogger` is off until enabled and writes at INFO level to the standard
`logging` logger named `policyguard`. To send output somewhere else, subclass
`log.Logger`.

## What this package does not do

It has no enforcer: it does not evaluate matcher or effect expressions and
cannot answer whether a request is allowed. It does not read model
configuration files; models are built with `add_def` or `load_from_mapping`.
It ships no matching functions of its own, no database adapters and no
watcher or dispatcher implementations — only their interfaces.

## Running the tests

```
pip install -e ".[test]"
pytest
```