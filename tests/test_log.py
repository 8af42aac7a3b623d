import logging

import pytest

from policyguard import log
from policyguard.log import DefaultLogger, Logger


class RecordingLogger(Logger):
    def __init__(self):
        self.calls = []
        self.enabled = False

    def enable_log(self, enable):
        self.calls.append(("enable_log", enable))
        self.enabled = enable

    def is_enabled(self):
        self.calls.append(("is_enabled",))
        return self.enabled

    def log_model(self, model):
        self.calls.append(("log_model", model))

    def log_enforce(self, matcher, request, result, explains):
        self.calls.append(("log_enforce", matcher, request, result, explains))

    def log_role(self, roles):
        self.calls.append(("log_role", roles))

    def log_policy(self, policy):
        self.calls.append(("log_policy", policy))


@pytest.fixture
def recorder():
    previous = log.get_logger()
    rec = RecordingLogger()
    log.set_logger(rec)
    yield rec
    log.set_logger(previous)


def test_set_logger_and_get_logger(recorder):
    assert log.get_logger() is recorder


def test_module_functions_delegate(recorder):
    log.get_logger().enable_log(True)
    assert log.get_logger().is_enabled() is True

    policy = {}
    log.log_policy(policy)
    model = None
    log.log_model(model)
    log.log_enforce("my_matcher", ["bob"], True, None)
    log.log_role(None)

    assert recorder.calls == [
        ("enable_log", True),
        ("is_enabled",),
        ("log_policy", {}),
        ("log_model", None),
        ("log_enforce", "my_matcher", ["bob"], True, None),
        ("log_role", None),
    ]


def test_default_logger_disabled_by_default_emits_nothing(caplog):
    caplog.set_level(logging.INFO, logger="policyguard")
    logger = DefaultLogger()
    assert logger.is_enabled() is False
    logger.log_role(["a"])
    logger.log_model([["r", "r", "sub"]])
    assert caplog.records == []


def test_enable_log_toggles():
    logger = DefaultLogger()
    logger.enable_log(True)
    assert logger.is_enabled() is True
    logger.enable_log(False)
    assert logger.is_enabled() is False


def test_default_logger_model_text(caplog):
    caplog.set_level(logging.INFO, logger="policyguard")
    logger = DefaultLogger()
    logger.enable_log(True)
    logger.log_model([["r", "r", "sub, obj"], ["m", "m", "x"]])
    assert caplog.records[0].getMessage() == "Model: [r r sub, obj]\n[m m x]\n"


def test_default_logger_enforce_text(caplog):
    caplog.set_level(logging.INFO, logger="policyguard")
    logger = DefaultLogger()
    logger.enable_log(True)
    logger.log_enforce("m", ["alice", "data1", "read"], True, [["alice", "data1", "read"]])
    assert caplog.records[0].getMessage() == (
        "Request: alice, data1, read ---> true\nHit Policy: [alice data1 read] \n"
    )


def test_default_logger_enforce_without_hits(caplog):
    caplog.set_level(logging.INFO, logger="policyguard")
    logger = DefaultLogger()
    logger.enable_log(True)
    logger.log_enforce("m", ["bob"], False, [])
    assert caplog.records[0].getMessage() == "Request: bob ---> false\nHit Policy: "


def test_default_logger_policy_and_roles(caplog):
    caplog.set_level(logging.INFO, logger="policyguard")
    logger = DefaultLogger()
    logger.enable_log(True)
    logger.log_policy({"p": [["alice", "data1"], ["bob", "data2"]]})
    logger.log_role(["u1 < g1"])
    messages = [r.getMessage() for r in caplog.records]
    assert messages == ["Policy: p : [[alice data1] [bob data2]]\n", "Roles:  [u1 < g1]"]