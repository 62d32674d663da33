# -*- coding: utf-8 -*-
"""
OpenTelemetry Tracer 模块

提供分布式追踪功能：
- Console / File 导出器（调试用）
- OTLP gRPC 导出器
- TracerProvider 管理
"""

from otelutils.tracer.exporter import new_span_exporter
from otelutils.tracer.provider import GLOBAL_TRACER_PROVIDER, SwitchableTracerProvider
from otelutils.tracer.tracer import (
    Tracer,
    get_tracer,
    install_propagator,
    install_tracer,
)

__all__ = [
    "GLOBAL_TRACER_PROVIDER",
    "SwitchableTracerProvider",
    "Tracer",
    "get_tracer",
    "install_propagator",
    "install_tracer",
    "new_span_exporter",
]
