from __future__ import annotations

import pytest

from clickbait_lab.types import Label, TrainingSample

CLICKBAIT_HEADLINES = (
    "震惊！99%的人都不知道的秘密！",
    "太可怕了！看完这个你绝对不敢相信！！",
    "重磅！史上最强省钱方法，赶紧看！",
    "震惊！这个小技巧让他一夜暴富！",
    "速看！明星私生活曝光，网友炸锅了！！",
    "Shocking! You won't believe what happened next!!",
    "震惊！！医生都不会告诉你的惊人真相！",
    "疯传！这个视频已经刷屏，最后机会赶紧看！",
    "Unbelievable! This secret trick will change your life!!",
    "火爆全网！不敢相信的结果，太棒了！！",
)

NORMAL_HEADLINES = (
    "市政府发布2024年第三季度经济运行报告",
    "教育部公布新学期课程改革方案",
    "气象台预计本周末华北地区有小雨",
    "国家统计局发布十月份居民消费价格数据",
    "Central bank keeps interest rates unchanged",
    "地铁五号线延长段计划明年年底通车",
    "University researchers publish study on coastal erosion",
    "省卫生健康委发布流感疫苗接种安排",
    "City council approves new budget for public libraries",
    "图书馆推出周末阅读分享活动报名通知",
)


def make_samples(clickbait: int, normal: int) -> list[TrainingSample]:
    """Interleave the requested number of samples from each class."""

    samples: list[TrainingSample] = []
    for idx in range(max(clickbait, normal)):
        if idx < clickbait:
            samples.append(TrainingSample(CLICKBAIT_HEADLINES[idx], Label.CLICKBAIT))
        if idx < normal:
            samples.append(TrainingSample(NORMAL_HEADLINES[idx], Label.NORMAL))
    return samples


@pytest.fixture
def balanced_samples() -> list[TrainingSample]:
    return make_samples(10, 10)


@pytest.fixture
def small_samples() -> list[TrainingSample]:
    return make_samples(5, 5)


@pytest.fixture
def sample_factory():
    return make_samples
