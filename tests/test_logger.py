import logging

from livescribe.services.logger import LogBuffer


def test_log_buffer_keeps_recent_lines():
    buffer = LogBuffer(max_lines=2)
    buffer.add("one")
    buffer.add("two")
    buffer.add("three")
    lines = buffer.get()
    assert len(buffer) == 2
    assert lines[0].endswith("two")
    assert buffer.last().endswith("three")
    assert buffer.last().startswith("[")


def test_log_buffer_mirrors_to_logging(caplog):
    buffer = LogBuffer()
    with caplog.at_level(logging.WARNING, logger="livescribe.status"):
        buffer.add("chunk dropped", level=logging.WARNING)
    assert "chunk dropped" in caplog.text
    buffer.clear()
    assert buffer.last() == ""
