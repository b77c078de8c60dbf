import logging

from marketplace.core.request_context import (
    RequestContextFilter,
    bind_actor_id,
    bind_request,
    current_request_id,
    unbind_request,
)


def _record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)


class TestRequestContextFilter:
    def test_defaults_outside_a_request(self):
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.actor_id == "-"
        assert current_request_id() is None

    def test_stamps_request_and_actor(self):
        token = bind_request("req-1")
        try:
            bind_actor_id("user-1")
            record = _record()
            RequestContextFilter().filter(record)
            assert (record.request_id, record.actor_id) == ("req-1", "user-1")
        finally:
            unbind_request(token)
        assert current_request_id() is None

    def test_actor_without_request_is_ignored(self):
        bind_actor_id("user-1")
        record = _record()
        RequestContextFilter().filter(record)
        assert record.actor_id == "-"
