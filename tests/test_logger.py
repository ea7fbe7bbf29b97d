"""Tests for logger utility."""
import pytest

from modules.check import State
from utils import logger
from utils.logger import configure_logging, log_debug, log_fail, log_info, log_skip, log_status, log_warn


@pytest.fixture(autouse=True)
def reset_logging():
    configure_logging()
    yield
    configure_logging()


def test_log_info_output(capsys):
    """Test info logging output."""
    log_info("Test info message")
    captured = capsys.readouterr()
    assert "Test info message" in captured.out


def test_log_warn_output(capsys):
    """Test warning logging output."""
    log_warn("Test warning")
    captured = capsys.readouterr()
    assert "[WARN]" in captured.out


def test_log_fail_goes_to_stderr(capsys):
    log_fail("Test failed")
    captured = capsys.readouterr()
    assert "Test failed" in captured.err
    assert captured.out == ""


def test_log_skip_output(capsys):
    log_skip("1.2.3 skipped")
    assert "[SKIP]" in capsys.readouterr().out


def test_log_debug_only_when_verbose(capsys):
    log_debug("hidden")
    assert capsys.readouterr().out == ""

    configure_logging(verbose=True)
    log_debug("shown")
    assert "shown" in capsys.readouterr().out


@pytest.mark.parametrize(
    "status, tag",
    [(State.PASS, "[PASS]"), ("WARN", "[WARN]"), ("info", "[INFO]"), (State.SKIP, "[SKIP]")],
)
def test_log_status_dispatch(capsys, status, tag):
    log_status(status, "1.1.1 check")
    assert tag in capsys.readouterr().out


def test_log_status_unknown(capsys):
    log_status("BROKEN", "1.1.1 check")
    err = capsys.readouterr().err
    assert "[ERROR]" in err
    assert "BROKEN" in err


def test_log_file(tmp_path, capsys):
    log_path = tmp_path / "logs" / "cisbench.log"
    configure_logging(str(log_path))

    log_info("Тестовое сообщение на русском")
    log_status(State.FAIL, "1.2.1 failed")

    content = log_path.read_text(encoding="utf-8")
    assert "[INFO] Тестовое сообщение на русском" in content
    assert "[FAIL] 1.2.1 failed" in content
    assert logger.is_verbose() is False


def test_console_output_can_move_to_stderr(capsys):
    configure_logging(verbose=True, use_stderr=True)

    log_debug("loading")
    log_warn("unknown state")
    log_status(State.PASS, "1.1.1 check")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "loading" in captured.err
    assert "unknown state" in captured.err
    assert "[PASS]" in captured.err
