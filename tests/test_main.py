import io
import logging
import sys

import pytest

from shallowred import engine as engine_module
from shallowred import main as main_module


@pytest.fixture()
def restore_root_logging():
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level)


def test_setup_logging_appends_to_file(tmp_path, restore_root_logging):
    log_file = tmp_path / "logs" / "shallowred.log"
    log_file.parent.mkdir()
    log_file.write_text("previous run\n", encoding="utf-8")

    main_module.setup_logging(log_file, logging.INFO)
    logging.getLogger("shallowred.test").info("hello from test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    contents = log_file.read_text(encoding="utf-8")
    assert contents.startswith("previous run\n")
    assert "hello from test" in contents


def test_build_parser_reads_environment_defaults(monkeypatch):
    monkeypatch.setenv("SHALLOWRED_LOG_FILE", "custom.log")
    monkeypatch.setenv("SHALLOWRED_HASH_ENTRIES", "1234")
    args = main_module.build_parser().parse_args([])
    assert args.log_file == "custom.log"
    assert args.hash_entries == 1234
    assert args.log_level == "INFO"
    assert args.max_depth is None


def test_main_runs_protocol_session(tmp_path, capsys, monkeypatch, restore_root_logging):
    log_file = tmp_path / "session.log"
    monkeypatch.setattr(sys, "stdin", io.StringIO("uci\nisready\nposition startpos moves e2e4\nquit\n"))
    monkeypatch.setattr(engine_module, "_ensure_line_buffered_stdout", lambda: None)

    main_module.main(["--log-file", str(log_file), "--log-level", "debug", "--hash-entries", "64"])

    assert capsys.readouterr().out.splitlines() == ["id name Shallow Red 0.1", "uciok", "readyok"]
    for handler in logging.getLogger().handlers:
        handler.flush()
    log_text = log_file.read_text(encoding="utf-8")
    assert "Shallow Red starting" in log_text
    assert "Received << position startpos moves e2e4" in log_text
    assert "Sent >> uciok" in log_text
    assert "Shallow Red stopped" in log_text


def test_main_can_disable_log_file(tmp_path, capsys, monkeypatch, restore_root_logging):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "stdin", io.StringIO("isready\nquit\n"))
    monkeypatch.setattr(engine_module, "_ensure_line_buffered_stdout", lambda: None)

    main_module.main(["--log-file", "-"])

    assert capsys.readouterr().out == "readyok\n"
    assert list(tmp_path.iterdir()) == []
