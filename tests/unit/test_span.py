"""
Span 工具函数测试
"""

import pytest
from opentelemetry import trace
from opentelemetry.trace import StatusCode

from otelutils.span import (
    TRACEPARENT,
    context_from_traceparent_env,
    get_traceparent,
    get_traceparent_env,
    mark_error,
    mark_ok,
    start_span,
)


class TestStartSpan:
    """start_span 测试"""

    def test_child_of_parent(self, memory_provider, memory_exporter):
        """测试新 Span 是父上下文中 Span 的子 Span"""
        ctx, parent = start_span(None, "parent", tracer_provider=memory_provider)
        _, child = start_span(ctx, "child", tracer_provider=memory_provider)
        child.end()
        parent.end()

        spans = {span.name: span for span in memory_exporter.get_finished_spans()}
        assert spans["child"].parent.span_id == spans["parent"].context.span_id
        assert spans["child"].context.trace_id == spans["parent"].context.trace_id
        assert spans["child"].instrumentation_scope.name == "otelutils"

    def test_returned_context_holds_span(self, memory_provider):
        """测试返回的上下文包含新 Span"""
        ctx, span = start_span(None, "span", tracer_provider=memory_provider)
        assert trace.get_current_span(ctx) is span
        span.end()

    def test_noop_without_provider(self, reset_trace_globals):
        """测试没有注册 Provider 时返回 no-op Span"""
        ctx, span = start_span(None, "span")
        assert not span.is_recording()
        mark_error(span, RuntimeError("ignored"))
        mark_ok(span)
        span.end()
        assert get_traceparent(ctx) == ""


class TestMarkStatus:
    """mark_error / mark_ok 测试"""

    def test_mark_error(self, memory_provider, memory_exporter):
        """测试记录一个 exception 事件并设置 ERROR 状态"""
        _, span = start_span(None, "span", tracer_provider=memory_provider)
        mark_error(span, ValueError("bad input"))
        span.end()

        finished = memory_exporter.get_finished_spans()[0]
        assert finished.status.status_code == StatusCode.ERROR
        assert finished.status.description == "bad input"
        events = [event for event in finished.events if event.name == "exception"]
        assert len(events) == 1
        assert events[0].attributes["exception.type"] == "ValueError"
        assert events[0].attributes["exception.message"] == "bad input"

    def test_mark_error_twice(self, memory_provider, memory_exporter):
        """测试多次调用记录多个事件"""
        _, span = start_span(None, "span", tracer_provider=memory_provider)
        mark_error(span, ValueError("first"))
        mark_error(span, ValueError("second"))
        span.end()

        finished = memory_exporter.get_finished_spans()[0]
        assert len([event for event in finished.events if event.name == "exception"]) == 2
        assert finished.status.status_code == StatusCode.ERROR

    def test_mark_ok(self, memory_provider, memory_exporter):
        """测试设置 OK 状态"""
        _, span = start_span(None, "span", tracer_provider=memory_provider)
        mark_ok(span)
        span.end()

        finished = memory_exporter.get_finished_spans()[0]
        assert finished.status.status_code == StatusCode.OK
        assert not finished.status.description

    def test_mark_ok_after_error(self, memory_provider, memory_exporter):
        """测试先标记错误再标记成功，最终为 OK 且 description 为空，exception 事件保留"""
        _, span = start_span(None, "span", tracer_provider=memory_provider)
        mark_error(span, ValueError("bad input"))
        mark_ok(span)
        span.end()

        finished = memory_exporter.get_finished_spans()[0]
        assert finished.status.status_code == StatusCode.OK
        assert not finished.status.description
        assert [event.name for event in finished.events] == ["exception"]


class TestTraceparent:
    """TRACEPARENT 传递测试"""

    def test_round_trip(self, memory_provider):
        """测试子进程还原出相同的 trace id 和 span id"""
        ctx, span = start_span(None, "parent", tracer_provider=memory_provider)
        entry = get_traceparent_env(ctx)
        assert entry.startswith(TRACEPARENT + "=")

        remote = trace.get_current_span(context_from_traceparent_env(entry)).get_span_context()
        assert remote.is_remote
        assert remote.trace_id == span.get_span_context().trace_id
        assert remote.span_id == span.get_span_context().span_id
        span.end()

    def test_from_environ(self, memory_provider):
        """测试从环境变量读取"""
        ctx, span = start_span(None, "parent", tracer_provider=memory_provider)
        environ = {TRACEPARENT: get_traceparent(ctx)}

        remote = trace.get_current_span(context_from_traceparent_env(environ=environ))
        assert remote.get_span_context().trace_id == span.get_span_context().trace_id
        span.end()

    def test_missing(self):
        """测试没有 TRACEPARENT 时返回空上下文"""
        ctx = context_from_traceparent_env(environ={})
        assert not trace.get_current_span(ctx).get_span_context().is_valid

    @pytest.mark.parametrize("entry", ["traceparent", "OTHER=00-abc", "traceparent=00-abc"])
    def test_bad_entry(self, entry):
        """测试非法的环境变量格式"""
        with pytest.raises(ValueError):
            context_from_traceparent_env(entry)
