# -*- coding: utf-8 -*-
"""
全局 TracerProvider 转发

OpenTelemetry 只允许设置一次全局 TracerProvider。这里注册一个长期存在的
转发 Provider，每次安装只切换它的目标，关闭后再次安装也能生效。
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from opentelemetry import trace
from opentelemetry.util.types import Attributes

logger = logging.getLogger(__name__)

_NOOP_TRACER = trace.NoOpTracer()


class SwitchableTracer(trace.Tracer):
    """每次创建 Span 时解析当前目标 Provider 的 Tracer，没有目标时为 no-op"""

    def __init__(
        self,
        provider: "SwitchableTracerProvider",
        name: str,
        version: Optional[str],
        schema_url: Optional[str],
        attributes: Attributes,
    ):
        self._provider = provider
        self._args = (name, version, schema_url, attributes)
        self._cache: Tuple[Optional[trace.TracerProvider], Optional[trace.Tracer]] = (None, None)

    def _tracer(self) -> trace.Tracer:
        target = self._provider.target
        if target is None:
            return _NOOP_TRACER
        cached_target, tracer = self._cache
        if cached_target is not target or tracer is None:
            name, version, schema_url, attributes = self._args
            tracer = target.get_tracer(name, version, schema_url, attributes)
            self._cache = (target, tracer)
        return tracer

    def start_span(self, *args, **kwargs) -> trace.Span:
        return self._tracer().start_span(*args, **kwargs)

    @contextmanager
    def start_as_current_span(self, *args, **kwargs) -> Iterator[trace.Span]:
        with self._tracer().start_as_current_span(*args, **kwargs) as span:
            yield span


class SwitchableTracerProvider(trace.TracerProvider):
    """转发到当前目标的 TracerProvider"""

    def __init__(self):
        self._lock = threading.Lock()
        self._target: Optional[trace.TracerProvider] = None

    @property
    def target(self) -> Optional[trace.TracerProvider]:
        return self._target

    def set_target(self, provider: Optional[trace.TracerProvider]) -> None:
        with self._lock:
            self._target = provider

    def clear_target(self, provider: trace.TracerProvider) -> None:
        """provider 仍是当前目标时清空目标"""
        with self._lock:
            if self._target is provider:
                self._target = None

    def get_tracer(
        self,
        instrumenting_module_name: str,
        instrumenting_library_version: Optional[str] = None,
        schema_url: Optional[str] = None,
        attributes: Attributes = None,
    ) -> trace.Tracer:
        return SwitchableTracer(
            self, instrumenting_module_name, instrumenting_library_version, schema_url, attributes
        )


# 进程内唯一的全局转发 Provider
GLOBAL_TRACER_PROVIDER = SwitchableTracerProvider()


def register_global_provider(provider: trace.TracerProvider) -> None:
    """
    把 provider 设为全局目标

    第一次调用时注册转发 Provider 为全局 TracerProvider，之后只切换目标。
    """
    GLOBAL_TRACER_PROVIDER.set_target(provider)
    if trace.get_tracer_provider() is not GLOBAL_TRACER_PROVIDER:
        trace.set_tracer_provider(GLOBAL_TRACER_PROVIDER)
        if trace.get_tracer_provider() is not GLOBAL_TRACER_PROVIDER:
            logger.warning("Another global TracerProvider is already registered")


def unregister_global_provider(provider: trace.TracerProvider) -> None:
    """provider 仍是全局目标时清空目标，之后全局 Tracer 为 no-op"""
    GLOBAL_TRACER_PROVIDER.clear_target(provider)
