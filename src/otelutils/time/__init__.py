# -*- coding: utf-8 -*-

from otelutils.time.backoff import ExponentialBackOff

__all__ = ["ExponentialBackOff"]
