# -*- coding: utf-8 -*-
"""
导出器解析

根据导出器配置的 kind 字段选择对应的创建函数。
"""

from typing import Callable, Dict

from opentelemetry.sdk.trace.export import SpanExporter

from otelutils.config import SpanExporterConfig
from otelutils.errors import UnsupportedExporterError
from otelutils.tracer.otlp.exporter import new_otlp_grpc_span_exporter
from otelutils.tracer.stdout.exporter import new_console_span_exporter, new_file_span_exporter

_RESOLVERS: Dict[str, Callable[..., SpanExporter]] = {
    "console": new_console_span_exporter,
    "file": new_file_span_exporter,
    "otlp": new_otlp_grpc_span_exporter,
}


def new_span_exporter(config: SpanExporterConfig) -> SpanExporter:
    """
    创建 SpanExporter

    Args:
        config: ConsoleSpanExporterConfig / FileSpanExporterConfig / OtlpGrpcSpanExporterConfig

    Returns:
        SpanExporter 实例

    Raises:
        ExporterConstructionError: 导出器创建失败
        UnsupportedExporterError: 未知的配置类型
    """
    kind = getattr(config, "kind", type(config).__name__)
    resolver = _RESOLVERS.get(kind)
    if resolver is None:
        raise UnsupportedExporterError(kind)
    return resolver(config)
