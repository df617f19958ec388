"""Tests for the kube-trace command line."""

import pytest

from kube_trace import encode
from kube_trace.cli import main
from kube_trace.propagator import TRACE_CONTEXT_ENV


@pytest.fixture
def console_env(monkeypatch):
    monkeypatch.setenv("KUBE_TRACE_BACKEND", "console")
    monkeypatch.setenv("KUBE_TRACE_BATCH", "false")
    monkeypatch.delenv(TRACE_CONTEXT_ENV, raising=False)


def test_inspect(sampled_context, capsys):
    assert main(["inspect", encode(sampled_context)]) == 0
    out = capsys.readouterr().out
    assert "0af7651916cd43dd8448eb211c80319c" in out
    assert "b7ad6b7169203331" in out
    assert "True" in out


def test_inspect_malformed(capsys):
    assert main(["inspect", "not-valid-base64!!"]) == 1
    assert "error" in capsys.readouterr().err


def test_continue(console_env, monkeypatch, sampled_context):
    monkeypatch.setenv(TRACE_CONTEXT_ENV, encode(sampled_context))
    assert main(["continue", "--duration", "0"]) == 0


def test_continue_without_context(console_env):
    assert main(["continue", "--duration", "0"]) == 1


def test_continue_with_bad_config(console_env, monkeypatch, sampled_context):
    monkeypatch.setenv(TRACE_CONTEXT_ENV, encode(sampled_context))
    monkeypatch.setenv("KUBE_TRACE_BACKEND", "jaeger")
    assert main(["continue", "--duration", "0"]) == 1


def test_command_required():
    with pytest.raises(SystemExit):
        main([])


def test_log_level_is_case_insensitive(sampled_context):
    assert main(["--log-level", "debug", "inspect", encode(sampled_context)]) == 0


def test_unknown_log_level_is_usage_error(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--log-level", "verbose", "inspect", "AAAA"])
    assert exc_info.value.code == 2
    assert "--log-level" in capsys.readouterr().err
