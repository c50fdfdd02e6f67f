import json

from slopshop.schemas.events import EventType
from slopshop.util.events import (
    EventLogger,
    NullEventLogger,
    NULL_EVENT_LOGGER,
    append_line,
    read_events,
    truncate,
)


class TestEventLogger:
    def test_step_ids_increase(self, tmp_path):
        events_file = tmp_path / "events.jsonl"
        logger = EventLogger(events_file, run_id="01TESTRUN")

        logger.log_directive_started(1, "READ_FILE", "a.txt")
        logger.log_directive_finished(1, "READ_FILE", "success", 0.01)

        events = list(read_events(events_file))
        assert [e.step_id for e in events] == [1, 2]
        assert all(e.run_id == "01TESTRUN" for e in events)
        assert events[0].event_type == EventType.DIRECTIVE_STARTED
        assert events[1].payload["error_type"] is None

    def test_generates_run_id(self, tmp_path):
        logger = EventLogger(tmp_path / "events.jsonl")

        assert logger.run_id
        assert logger.run_id != EventLogger(tmp_path / "other.jsonl").run_id

    def test_clear_existing(self, tmp_path):
        events_file = tmp_path / "events.jsonl"
        events_file.write_text('{"old": true}\n')

        logger = EventLogger(events_file, clear_existing=True)
        logger.log_command_started("ls")

        events = list(read_events(events_file))
        assert len(events) == 1
        assert events[0].payload == {"command": "ls"}

    def test_appends_without_clear(self, tmp_path):
        events_file = tmp_path / "events.jsonl"
        EventLogger(events_file).log_chunk_dropped(1)
        EventLogger(events_file).log_chunk_dropped(2)

        assert [e.payload["dropped_total"] for e in read_events(events_file)] == [1, 2]

    def test_long_strings_truncated(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SLOPSHOP_LOG_MAX_CHARS", "20")
        events_file = tmp_path / "events.jsonl"

        EventLogger(events_file).log_llm_request_failed("timeout", "x" * 100, True)

        message = next(read_events(events_file)).payload["message"]
        assert "[80 chars truncated]" in message
        assert message.startswith("x" * 10)

    def test_unwritable_log_does_not_raise(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        EventLogger(blocker / "events.jsonl").log_command_started("ls")


class TestTruncate:
    def test_short_values_untouched(self):
        assert truncate({"a": "short", "n": 5}, 10) == {"a": "short", "n": 5}

    def test_nested_lists_and_dicts(self):
        result = truncate({"files": ["a" * 50], "meta": {"b": "b" * 50}}, 10)

        assert "[40 chars truncated]" in result["files"][0]
        assert result["meta"]["b"].endswith("b" * 5)

    def test_zero_disables(self):
        assert truncate("y" * 10000, 0) == "y" * 10000


class TestNullEventLogger:
    def test_all_methods_are_noops(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        logger = NullEventLogger()

        logger.log_directive_started(1, "RUN_COMMAND", "ls")
        logger.log_directive_finished(1, "RUN_COMMAND", "success", 0.0)
        logger.log_diff_applied([], 0)
        logger.log_command_started("ls")
        logger.log_command_finished("ls", 0, 0.0)
        logger.log_llm_request_started("m", 1)
        logger.log_llm_request_finished("m", 1, 1)
        logger.log_llm_request_failed("timeout", "m", True)
        logger.log_chunk_dropped(1)

        assert list(tmp_path.iterdir()) == []

    def test_shared_instance(self):
        assert isinstance(NULL_EVENT_LOGGER, NullEventLogger)


class TestEventFile:
    def test_append_line_creates_parents(self, tmp_path):
        path = tmp_path / "nested" / "log.jsonl"

        assert append_line(path, '{"a": 1}')
        assert append_line(path, '{"b": 2}\n')

        assert path.read_text() == '{"a": 1}\n{"b": 2}\n'

    def test_append_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        assert append_line(blocker / "log.jsonl", "{}") is False

    def test_read_events_skips_unreadable_lines(self, tmp_path):
        events_file = tmp_path / "events.jsonl"
        EventLogger(events_file, run_id="r").log_command_started("ls")
        with events_file.open("a") as f:
            f.write("\nnot json\n")
            f.write(json.dumps({"event_type": "unknown_kind"}) + "\n")
        EventLogger(events_file, run_id="r").log_command_started("pwd")

        events = list(read_events(events_file))

        assert [e.payload["command"] for e in events] == ["ls", "pwd"]
