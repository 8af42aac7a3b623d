import pytest

from policyguard.file_adapter import (
    FileAdapter,
    Filter,
    FilteredFileAdapter,
    UnsupportedOperationError,
)
from policyguard.model import Model

RBAC_POLICY = (
    "p, alice, data1, read\n"
    "p, bob, data2, write\n"
    "p, data2_admin, data2, read\n"
    "p, data2_admin, data2, write\n"
    "\n"
    "# a comment\n"
    "g, alice, data2_admin\n"
)


def make_model():
    m = Model()
    m.add_def("r", "r", "sub, obj, act")
    m.add_def("p", "p", "sub, obj, act")
    m.add_def("g", "g", "_, _")
    m.add_def("e", "e", "some(where (p.eft == allow))")
    m.add_def("m", "m", "g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act")
    return m


@pytest.fixture
def policy_file(tmp_path):
    path = tmp_path / "rbac_policy.csv"
    path.write_text(RBAC_POLICY, encoding="utf-8")
    return path


def test_load_policy(policy_file):
    model = make_model()
    FileAdapter(policy_file).load_policy(model)
    assert model.get_policy("p", "p") == [
        ["alice", "data1", "read"],
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]
    assert model.get_policy("g", "g") == [["alice", "data2_admin"]]


def test_save_policy_writes_lines(tmp_path):
    model = make_model()
    model.add_policy("p", "p", ["alice", "data1", "read"])
    model.add_policy("g", "g", ["alice", "data2_admin"])
    path = tmp_path / "out.csv"
    FileAdapter(path).save_policy(model)
    assert path.read_text(encoding="utf-8") == "p, alice, data1, read\ng, alice, data2_admin"


def test_save_then_load_round_trip(policy_file, tmp_path):
    model = make_model()
    FileAdapter(policy_file).load_policy(model)
    out = tmp_path / "copy.csv"
    FileAdapter(out).save_policy(model)
    reloaded = make_model()
    FileAdapter(out).load_policy(reloaded)
    assert reloaded.get_policy("p", "p") == model.get_policy("p", "p")
    assert reloaded.get_policy("g", "g") == model.get_policy("g", "g")


def test_empty_path_is_rejected():
    adapter = FileAdapter("")
    with pytest.raises(ValueError):
        adapter.load_policy(make_model())
    with pytest.raises(ValueError):
        adapter.save_policy(make_model())


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        FileAdapter(tmp_path / "absent.csv").load_policy(make_model())


def test_filtered_adapter_starts_filtered(policy_file):
    assert FilteredFileAdapter(policy_file).is_filtered() is True


def test_filtered_adapter_full_load_clears_flag(policy_file):
    adapter = FilteredFileAdapter(policy_file)
    model = make_model()
    adapter.load_policy(model)
    assert adapter.is_filtered() is False
    assert len(model.get_policy("p", "p")) == 4


def test_load_filtered_policy_by_subject(policy_file):
    adapter = FilteredFileAdapter(policy_file)
    model = make_model()
    adapter.load_filtered_policy(model, Filter(p=["alice"]))
    assert adapter.is_filtered() is True
    assert model.get_policy("p", "p") == [["alice", "data1", "read"]]
    assert model.get_policy("g", "g") == [["alice", "data2_admin"]]


def test_filter_empty_value_matches_all(policy_file):
    model = make_model()
    FilteredFileAdapter(policy_file).load_filtered_policy(model, Filter(p=["", "data2"]))
    assert model.get_policy("p", "p") == [
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]


def test_grouping_filter(policy_file):
    model = make_model()
    FilteredFileAdapter(policy_file).load_filtered_policy(model, Filter(g=["bob"]))
    assert model.get_policy("g", "g") == []
    assert len(model.get_policy("p", "p")) == 4


def test_filter_longer_than_rule_skips_it(policy_file):
    model = make_model()
    FilteredFileAdapter(policy_file).load_filtered_policy(
        model, Filter(p=["alice", "data1", "read", "extra"])
    )
    assert model.get_policy("p", "p") == []


def test_none_filter_loads_everything(policy_file):
    adapter = FilteredFileAdapter(policy_file)
    model = make_model()
    adapter.load_filtered_policy(model, None)
    assert adapter.is_filtered() is False
    assert len(model.get_policy("p", "p")) == 4


def test_wrong_filter_type(policy_file):
    with pytest.raises(TypeError):
        FilteredFileAdapter(policy_file).load_filtered_policy(make_model(), {"p": ["alice"]})


def test_filtered_load_with_empty_path():
    with pytest.raises(ValueError):
        FilteredFileAdapter("").load_filtered_policy(make_model(), Filter())


def test_saving_filtered_policy_is_refused(policy_file, tmp_path):
    adapter = FilteredFileAdapter(policy_file)
    model = make_model()
    adapter.load_filtered_policy(model, Filter(p=["alice"]))
    with pytest.raises(UnsupportedOperationError):
        adapter.save_policy(model)
    assert policy_file.read_text(encoding="utf-8") == RBAC_POLICY


def test_saving_after_full_load(policy_file, tmp_path):
    adapter = FilteredFileAdapter(policy_file)
    model = make_model()
    adapter.load_policy(model)
    model.remove_policy("p", "p", ["bob", "data2", "write"])
    adapter.save_policy(model)
    reloaded = make_model()
    FileAdapter(policy_file).load_policy(reloaded)
    assert reloaded.get_policy("p", "p") == model.get_policy("p", "p")
    assert not reloaded.has_policy("p", "p", ["bob", "data2", "write"])