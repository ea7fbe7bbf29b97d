import pytest

from modules.assert_logic import (
    InvalidTestsError,
    assert_output,
    compare_value,
    evaluate_tests,
    find_flag,
)


KUBELET_CONFIG = """\
apiVersion: kubelet.config.k8s.io/v1beta1
authentication:
  anonymous:
    enabled: false
readOnlyPort: 0
"""


@pytest.mark.parametrize(
    "output, flag, expected",
    [
        ("kube-apiserver --anonymous-auth=false --profiling", "--anonymous-auth", "false"),
        ("kube-apiserver --secure-port 6443", "--secure-port", "6443"),
        ("kube-apiserver --profiling --v=2", "--profiling", "--profiling"),
        ("kube-apiserver --profiling", "--profiling", "--profiling"),
        (KUBELET_CONFIG, "enabled", "false"),
        (KUBELET_CONFIG, "readOnlyPort", "0"),
        ("--authorization-mode=Node,RBAC", "--authorization-mode", "Node,RBAC"),
        ("--authorization-mode=Node,RBAC", "--authorization", None),
        ("kube-apiserver --insecure-port=0", "--anonymous-auth", None),
    ],
)
def test_find_flag(output, flag, expected):
    assert find_flag(output, flag) == expected


@pytest.mark.parametrize(
    "op, actual, expected, result",
    [
        ("eq", "false", False, True),
        ("eq", "TRUE", True, True),
        ("eq", "644", "644", True),
        ("noteq", "true", False, True),
        ("gt", "10", 5, True),
        ("gte", "10", "10", True),
        ("lt", "3", 5, True),
        ("lte", "6", 5, False),
        ("gte", "abc", 10, False),
        ("has", "Node,RBAC", "RBAC", True),
        ("nothave", "Node,RBAC", "AlwaysAllow", True),
        ("regex", "root:root", r"^root:(root|wheel)$", True),
    ],
)
def test_compare_value(op, actual, expected, result):
    assert compare_value(op, actual, expected) is result


def test_compare_value_rejects_unknown_op():
    with pytest.raises(InvalidTestsError):
        compare_value("approx", "1", 1)


def test_compare_value_rejects_bad_regex():
    with pytest.raises(InvalidTestsError):
        compare_value("regex", "x", "([")


def test_evaluate_tests_without_items_checks_output():
    assert evaluate_tests("something", None) == (True, None)
    assert evaluate_tests("  \n", {}) == (False, None)


def test_evaluate_tests_and_or():
    output = "kube-apiserver --anonymous-auth=false --profiling=true"
    items = [
        {"flag": "--anonymous-auth", "compare": {"op": "eq", "value": False}},
        {"flag": "--profiling", "compare": {"op": "eq", "value": False}},
    ]

    ok, _ = evaluate_tests(output, {"test_items": items})
    assert ok is False

    ok, _ = evaluate_tests(output, {"bin_op": "or", "test_items": items})
    assert ok is True


def test_evaluate_tests_flag_must_be_absent():
    tests = {"test_items": [{"flag": "--basic-auth-file", "set": False}]}

    assert evaluate_tests("kube-apiserver --v=2", tests)[0] is True
    assert evaluate_tests("kube-apiserver --basic-auth-file=/x", tests)[0] is False


def test_evaluate_tests_flag_present_without_compare():
    tests = {"test_items": [{"flag": "--client-ca-file"}]}

    assert evaluate_tests("--client-ca-file=/etc/ca.crt", tests) == (True, "/etc/ca.crt")
    assert evaluate_tests("--v=2", tests) == (False, None)


def test_assert_output_statuses():
    tests = {"test_items": [{"flag": "--anonymous-auth", "compare": {"op": "eq", "value": False}}]}

    assert assert_output("--anonymous-auth=false", tests) == ("PASS", "false")
    assert assert_output("--anonymous-auth=true", tests) == ("FAIL", "true")

    status, detail = assert_output("--anonymous-auth=true", {"bin_op": "xor", "test_items": tests["test_items"]})
    assert status == "WARN"
    assert "xor" in detail
