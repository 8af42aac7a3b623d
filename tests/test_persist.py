import pytest

from policyguard.model import Model
from policyguard.persist import (
    Adapter,
    BatchAdapter,
    Dispatcher,
    FilteredAdapter,
    UpdatableAdapter,
    Watcher,
    WatcherEx,
    WatcherUpdatable,
    load_policy_line,
)


@pytest.fixture
def model():
    m = Model()
    m.add_def("r", "r", "sub, obj, act")
    m.add_def("p", "p", "sub, obj, act")
    m.add_def("p", "p2", "sub, obj, act")
    m.add_def("g", "g", "_, _")
    return m


def test_policy_line_is_loaded(model):
    load_policy_line("p, alice, data1, read", model)
    assert model.get_policy("p", "p") == [["alice", "data1", "read"]]
    assert model.has_policy("p", "p", ["alice", "data1", "read"])


def test_policy_map_tracks_positions(model):
    load_policy_line("p, alice, data1, read", model)
    load_policy_line("p, bob, data2, write", model)
    assert model["p"]["p"].policy_map == {"alice,data1,read": 0, "bob,data2,write": 1}


def test_grouping_line_is_loaded(model):
    load_policy_line("g, alice, data2_admin", model)
    assert model.get_policy("g", "g") == [["alice", "data2_admin"]]


def test_named_ptype_goes_to_its_assertion(model):
    load_policy_line("p2, bob, data2, write", model)
    assert model.get_policy("p", "p2") == [["bob", "data2", "write"]]
    assert model.get_policy("p", "p") == []


@pytest.mark.parametrize("line", ["", "# p, alice, data1, read", "#"])
def test_empty_and_comment_lines_are_ignored(model, line):
    load_policy_line(line, model)
    assert model.get_policy("p", "p") == []
    assert model.get_policy("g", "g") == []


def test_quoted_field_keeps_comma(model):
    load_policy_line('p, "a,b", data1, read', model)
    assert model.get_policy("p", "p") == [["a,b", "data1", "read"]]


def test_unknown_ptype_raises(model):
    with pytest.raises(KeyError):
        load_policy_line("x, alice, data1", model)


@pytest.mark.parametrize(
    "cls",
    [
        Adapter,
        FilteredAdapter,
        BatchAdapter,
        UpdatableAdapter,
        Dispatcher,
        Watcher,
        WatcherEx,
        WatcherUpdatable,
    ],
)
def test_interfaces_cannot_be_instantiated(cls):
    with pytest.raises(TypeError):
        cls()


class _MemoryAdapter(BatchAdapter):
    def __init__(self, lines):
        self.lines = list(lines)

    def load_policy(self, model):
        for line in self.lines:
            load_policy_line(line, model)

    def save_policy(self, model):
        self.lines = [
            ", ".join([ptype, *rule])
            for sec in ("p", "g")
            for ptype, ast in model[sec].items()
            for rule in ast.policy
        ]

    def add_policy(self, sec, ptype, rule):
        self.lines.append(", ".join([ptype, *rule]))

    def remove_policy(self, sec, ptype, rule):
        self.lines.remove(", ".join([ptype, *rule]))

    def remove_filtered_policy(self, sec, ptype, field_index, *field_values):
        raise NotImplementedError

    def add_policies(self, sec, ptype, rules):
        for rule in rules:
            self.add_policy(sec, ptype, rule)

    def remove_policies(self, sec, ptype, rules):
        for rule in rules:
            self.remove_policy(sec, ptype, rule)


def test_complete_batch_adapter_loads_through_policy_lines(model):
    adapter = _MemoryAdapter(["p, alice, data1, read", "# comment", "g, alice, admin"])
    adapter.add_policies("p", "p", [["bob", "data2", "write"]])
    adapter.load_policy(model)
    assert model.get_policy("p", "p") == [
        ["alice", "data1", "read"],
        ["bob", "data2", "write"],
    ]
    assert model.get_policy("g", "g") == [["alice", "admin"]]