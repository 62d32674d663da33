# -*- coding: utf-8 -*-

__title__ = "otelutils"
__description__ = "Configuration helpers for OpenTelemetry tracing (exporters, resources, span utilities)."
__url__ = "https://github.com/skoved/otelutils"
__version__ = "0.0.1"
__author__ = "skoved"
__author_email__ = ""
__license__ = "Apache-2.0"
