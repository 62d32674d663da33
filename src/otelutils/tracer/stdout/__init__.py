# -*- coding: utf-8 -*-

from otelutils.tracer.stdout.exporter import (
    FileSpanExporter,
    new_console_span_exporter,
    new_file_span_exporter,
    span_formatter,
)

__all__ = [
    "FileSpanExporter",
    "new_console_span_exporter",
    "new_file_span_exporter",
    "span_formatter",
]
