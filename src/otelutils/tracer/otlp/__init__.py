# -*- coding: utf-8 -*-

from otelutils.tracer.otlp.exporter import (
    ChannelSpanExporter,
    RetryingSpanExporter,
    new_otlp_grpc_span_exporter,
)

__all__ = [
    "ChannelSpanExporter",
    "RetryingSpanExporter",
    "new_otlp_grpc_span_exporter",
]
