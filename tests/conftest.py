#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
pytest 配置文件

提供测试夹具和配置
"""

import sys
from pathlib import Path

import pytest
from opentelemetry import propagate, trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.util._once import Once

# 将 src 目录添加到 Python 路径
ROOT_DIR = Path(__file__).parent.parent
SRC_DIR = ROOT_DIR / "src"
sys.path.insert(0, str(SRC_DIR))


def _reset_tracer_provider() -> None:
    from otelutils.tracer.provider import GLOBAL_TRACER_PROVIDER

    GLOBAL_TRACER_PROVIDER.set_target(None)
    trace._TRACER_PROVIDER_SET_ONCE = Once()
    trace._TRACER_PROVIDER = None


@pytest.fixture(scope="function")
def reset_trace_globals():
    """每个测试前后清空全局 TracerProvider 并恢复全局 Propagator"""
    textmap = propagate.get_global_textmap()
    _reset_tracer_provider()
    yield
    _reset_tracer_provider()
    propagate.set_global_textmap(textmap)


@pytest.fixture(scope="function")
def memory_exporter() -> InMemorySpanExporter:
    """内存导出器"""
    return InMemorySpanExporter()


@pytest.fixture(scope="function")
def memory_provider(memory_exporter: InMemorySpanExporter) -> TracerProvider:
    """使用内存导出器的 TracerProvider（同步导出，不注册为全局）"""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(memory_exporter))
    yield provider
    provider.shutdown()
