# -*- coding: utf-8 -*-
"""
指数退避

为 OTLP 导出重试计算等待间隔。间隔按 multiplier 递增，加入随机抖动，
并受 max_interval、max_elapsed_time、max_elapsed_count 限制。

使用示例：
    backoff = ExponentialBackOff.from_policy(policy)
    while not do_export():
        interval, should_continue = backoff.next_backoff()
        if not should_continue:
            break
        time.sleep(interval)
"""

import random
import time
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from otelutils.config import RetryPolicy

DEFAULT_INITIAL_INTERVAL = 0.5
DEFAULT_RANDOMIZATION_FACTOR = 0.5
DEFAULT_MULTIPLIER = 1.5
DEFAULT_MAX_INTERVAL = 60.0
DEFAULT_MAX_ELAPSED_TIME = 900.0
# -1 表示不限制次数
DEFAULT_MAX_ELAPSED_COUNT = -1


class ExponentialBackOff:
    """
    指数退避计算器

    - 实际等待时间落在 [interval * (1 - factor), interval * (1 + factor)]
    - max_interval、max_elapsed_time 为 0 时不限制
    - 返回的等待时间不会越过 max_elapsed_time
    """

    def __init__(
        self,
        initial_interval: float = DEFAULT_INITIAL_INTERVAL,
        randomization_factor: float = DEFAULT_RANDOMIZATION_FACTOR,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        max_elapsed_time: float = DEFAULT_MAX_ELAPSED_TIME,
        max_elapsed_count: int = DEFAULT_MAX_ELAPSED_COUNT,
    ):
        self.initial_interval = initial_interval
        self.randomization_factor = randomization_factor
        self.multiplier = multiplier
        self.max_interval = max_interval
        self.max_elapsed_time = max_elapsed_time
        self.max_elapsed_count = max_elapsed_count
        self.reset()

    @classmethod
    def from_policy(cls, policy: "RetryPolicy") -> "ExponentialBackOff":
        """按重试策略创建，未设置的字段使用默认值"""
        return cls(
            initial_interval=policy.initial_interval or DEFAULT_INITIAL_INTERVAL,
            max_interval=policy.max_interval or 0.0,
            max_elapsed_time=policy.max_elapsed_time or 0.0,
        )

    def reset(self) -> None:
        """恢复到初始状态，重新开始计时"""
        self._current_interval = self.initial_interval
        self._start_time = time.monotonic()
        self._elapsed_count = 0

    @property
    def current_interval(self) -> float:
        return self._current_interval

    @property
    def elapsed_time(self) -> float:
        """自创建或 reset 起经过的秒数"""
        return time.monotonic() - self._start_time

    @property
    def elapsed_count(self) -> int:
        return self._elapsed_count

    def next_backoff(self) -> Tuple[float, bool]:
        """
        计算下一次等待时间

        Returns:
            (等待秒数, 是否继续重试)
        """
        self._elapsed_count += 1
        jitter = random.uniform(-self.randomization_factor, self.randomization_factor)
        interval = self._current_interval * (1 + jitter)

        if -1 < self.max_elapsed_count < self._elapsed_count:
            return interval, False

        if self.max_elapsed_time > 0:
            remaining = self.max_elapsed_time - self.elapsed_time
            if remaining <= 0:
                return interval, False
            interval = min(interval, remaining)

        self._current_interval *= self.multiplier
        if 0 < self.max_interval < self._current_interval:
            self._current_interval = self.max_interval
        return interval, True
