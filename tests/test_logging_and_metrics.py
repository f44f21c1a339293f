import json
import logging
from pathlib import Path

import pytest

from mcarea.logging_utils import format_timespan, setup_basic_logging, setup_rank_logging
from mcarea.metrics import append_metrics_json, append_metrics_jsonl


@pytest.mark.parametrize(
    "seconds,expected",
    [(74.2, "1m 14.2s"), (8.9, "08.90s"), (3725.0, "1h 02m 05.0s"), (-3, "00.00s"), (59.5, "59.50s"), (60, "1m 00.0s")],
)
def test_format_timespan(seconds, expected):
    assert format_timespan(seconds) == expected


def test_basic_logging_writes_file(tmp_path, restore_root_logger):
    log_path = setup_basic_logging(tmp_path / "logs", log_name="run.log")
    logging.getLogger("mcarea.test").info("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert log_path == tmp_path / "logs" / "run.log"
    assert "hello from the test" in log_path.read_text()


def test_basic_logging_console_only(restore_root_logger):
    assert setup_basic_logging(None, verbose=True) is None
    assert logging.getLogger().level == logging.DEBUG


def test_rank_logging_silences_console_off_master(tmp_path, restore_root_logger):
    log_path = setup_rank_logging(tmp_path, rank=2, verbose=False)
    handlers = logging.getLogger().handlers
    assert log_path.name == "pi_rank2.log"
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.FileHandler)


def test_rank_logging_master_gets_console(tmp_path, restore_root_logger):
    setup_rank_logging(tmp_path, rank=0, verbose=False)
    assert len(logging.getLogger().handlers) == 2


def test_append_metrics_json_merges(tmp_path):
    path = tmp_path / "results.json"
    append_metrics_json(path, {"config": {"samples": 10}})
    append_metrics_json(path, {"estimate": 3.1, "summary": {"pi": 3.14}})
    append_metrics_json(path, {"config": {"batches": 2}, "estimate": 3.2})

    data = json.loads(path.read_text())
    assert data["config"] == {"samples": 10, "batches": 2}
    assert data["runs"] == [{"estimate": 3.1}, {"estimate": 3.2}]
    assert data["summary"] == {"pi": 3.14}


def test_append_metrics_jsonl(tmp_path):
    path = tmp_path / "nested" / "results.jsonl"
    append_metrics_jsonl(path, {"rank": 0})
    append_metrics_jsonl(path, {"rank": 1}, is_writer_fn=lambda: False)
    append_metrics_jsonl(path, {"rank": 2}, is_writer_fn=lambda: True)
    lines = [json.loads(line) for line in path.read_text().splitlines()]
    assert lines == [{"rank": 0}, {"rank": 2}]


def test_rank_logging_verbose_tags_other_ranks(tmp_path, restore_root_logger):
    setup_rank_logging(tmp_path, rank=3, verbose=True)
    root = logging.getLogger()
    console = [h for h in root.handlers if not isinstance(h, logging.FileHandler)]
    assert root.level == logging.DEBUG
    assert len(console) == 1
    assert console[0].formatter._fmt.startswith("[rank 3] ")


def test_basic_logging_replaces_previous_handlers(tmp_path, restore_root_logger):
    setup_basic_logging(tmp_path / "first")
    setup_basic_logging(tmp_path / "second")
    files = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
    assert [Path(h.baseFilename).parent.name for h in files] == ["second"]
