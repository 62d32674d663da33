# -*- coding: utf-8 -*-
"""
otelutils 是 OpenTelemetry 追踪的配置层。

Modules:
- otelutils.config: 导出器 / Resource / 外部配置定义
- otelutils.resource: Resource 创建
- otelutils.tracer: 导出器创建与 TracerProvider 生命周期
- otelutils.span: Span 工具函数与 TRACEPARENT 传递
- otelutils.service: 按导出器名称初始化的入口
"""

from otelutils.__version__ import __version__
from otelutils.config import (
    ConsoleSpanExporterConfig,
    FileSpanExporterConfig,
    OtlpGrpcSpanExporterConfig,
    ResourceConfig,
    RetryPolicy,
    SpanExporterConfig,
    TracingSettings,
    load_settings,
    parse_span_exporter_config,
)
from otelutils.errors import (
    ExporterConstructionError,
    FlushError,
    OtelUtilsError,
    ResourceDetectionError,
    ShutdownError,
    UnsupportedExporterError,
)
from otelutils.resource import new_resource
from otelutils.service import OpenTelemetryService, otel_end, otel_init
from otelutils.span import (
    context_from_traceparent_env,
    get_traceparent_env,
    mark_error,
    mark_ok,
    start_span,
)
from otelutils.tracer import Tracer, install_tracer, new_span_exporter

__all__ = [
    "__version__",
    # Config
    "ConsoleSpanExporterConfig",
    "FileSpanExporterConfig",
    "OtlpGrpcSpanExporterConfig",
    "ResourceConfig",
    "RetryPolicy",
    "SpanExporterConfig",
    "TracingSettings",
    "load_settings",
    "parse_span_exporter_config",
    # Errors
    "ExporterConstructionError",
    "FlushError",
    "OtelUtilsError",
    "ResourceDetectionError",
    "ShutdownError",
    "UnsupportedExporterError",
    # Lifecycle
    "Tracer",
    "install_tracer",
    "new_resource",
    "new_span_exporter",
    "OpenTelemetryService",
    "otel_init",
    "otel_end",
    # Span
    "start_span",
    "mark_error",
    "mark_ok",
    "get_traceparent_env",
    "context_from_traceparent_env",
]
