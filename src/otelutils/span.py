# -*- coding: utf-8 -*-
"""
Span 工具函数

提供：
- 创建子 Span
- 标记 Span 错误 / 成功
- 通过 TRACEPARENT 环境变量把追踪上下文传递给子进程
"""

import os
from typing import Any, Mapping, Optional, Tuple

from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, Status, StatusCode

from otelutils.__version__ import __title__, __version__
from otelutils.resource.resource import SCHEMA_URL
from otelutils.tracer.tracer import get_tracer

# 传递追踪上下文的环境变量名
TRACEPARENT = "TRACEPARENT"


def start_span(
    parent_context: Optional[Context],
    name: str,
    tracer_provider: Optional[trace.TracerProvider] = None,
    tracer_name: Optional[str] = None,
    **kwargs: Any,
) -> Tuple[Context, Span]:
    """
    创建子 Span

    新 Span 是 parent_context 中 Span 的子 Span，parent_context 为 None 时使用当前上下文。
    没有注册任何 TracerProvider 时返回 no-op Span，不会失败。

    Args:
        parent_context: 父上下文
        name: Span 名称
        tracer_provider: 指定的 TracerProvider，默认使用全局 Provider
        tracer_name: Tracer 名称，默认为 otel_init 的服务名，未初始化时为本库名称
        **kwargs: 传给 Tracer.start_span 的参数（kind、attributes、links 等）

    Returns:
        (包含新 Span 的上下文, 新 Span)

    示例:
        ```python
        ctx, span = start_span(None, "load-config")
        try:
            load_config()
        except Exception as e:
            mark_error(span, e)
            raise
        else:
            mark_ok(span)
        finally:
            span.end()
        ```
    """
    if tracer_name is None:
        tracer_name = _default_tracer_name()
    tracer = get_tracer(
        tracer_name,
        version=__version__ if tracer_name == __title__ else "",
        schema_url=SCHEMA_URL,
        tracer_provider=tracer_provider,
    )
    span = tracer.start_span(name, context=parent_context, **kwargs)
    return trace.set_span_in_context(span, parent_context), span


def _default_tracer_name() -> str:
    # service 模块依赖本模块，这里延迟导入
    from otelutils.service import get_default_service

    service = get_default_service()
    if service is not None and service.service_name:
        return service.service_name
    return __title__


def mark_error(span: Span, exc: BaseException) -> None:
    """
    将异常记录为 Span 的 exception 事件，并把状态设置为 ERROR

    多次调用会记录多个 exception 事件。
    """
    span.record_exception(exc)
    span.set_status(Status(StatusCode.ERROR, str(exc)))


def mark_ok(span: Span) -> None:
    """将 Span 状态设置为 OK（description 只对 ERROR 有意义，因此为空）"""
    span.set_status(Status(StatusCode.OK))


def get_traceparent(context: Optional[Context] = None) -> str:
    """返回 context（默认当前上下文）的 W3C traceparent 值，没有有效 Span 时为空字符串"""
    carrier: dict = {}
    propagate.inject(carrier, context=context)
    return carrier.get(TRACEPARENT.lower(), "")


def get_traceparent_env(context: Optional[Context] = None) -> str:
    """
    以环境变量形式返回追踪上下文

    Returns:
        "TRACEPARENT=<traceparent>"，可直接放入子进程的环境变量列表
    """
    return f"{TRACEPARENT}={get_traceparent(context)}"


def context_from_traceparent_env(
    entry: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Context:
    """
    从 TRACEPARENT 环境变量还原追踪上下文（子进程侧）

    Args:
        entry: "TRACEPARENT=<traceparent>" 形式的字符串；为 None 时从 environ 读取
        environ: 环境变量，默认 os.environ

    Returns:
        包含远端 SpanContext 的上下文；没有 traceparent 时为空上下文

    Raises:
        ValueError: entry 不是 TRACEPARENT=<value> 形式
    """
    if entry is None:
        if environ is None:
            environ = os.environ
        value = environ.get(TRACEPARENT, "")
    else:
        key, sep, value = entry.partition("=")
        if not sep or key != TRACEPARENT:
            raise ValueError(f"expected {TRACEPARENT}=<value>, got {entry!r}")

    carrier = {TRACEPARENT.lower(): value} if value else {}
    return propagate.extract(carrier)
