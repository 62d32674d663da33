# -*- coding: utf-8 -*-
"""
otelutils 错误类型

所有错误都在产生它的调用处同步抛出，不会被吞掉。
"""


class OtelUtilsError(Exception):
    """otelutils 基础异常"""

    pass


class ExporterConstructionError(OtelUtilsError):
    """导出器创建失败（文件不可写、gRPC 配置非法等）"""

    pass


class ResourceDetectionError(OtelUtilsError):
    """Resource 属性检测失败"""

    pass


class FlushError(OtelUtilsError):
    """TracerProvider 刷新失败"""

    pass


class ShutdownError(OtelUtilsError):
    """TracerProvider 关闭失败"""

    pass


class UnsupportedExporterError(OtelUtilsError, NotImplementedError):
    """未实现的导出器类型"""

    def __init__(self, kind: str):
        super().__init__(f"Exporter type '{kind}' is not implemented")
        self.kind = kind
