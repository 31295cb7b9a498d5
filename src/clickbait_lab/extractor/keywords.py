"""Curated keyword lists used by the feature extractor."""

from __future__ import annotations

CLICKBAIT_WORDS: tuple[str, ...] = (
    "震惊",
    "重磅",
    "惊人",
    "绝密",
    "神奇",
    "史上最",
    "前所未有",
    "不敢相信",
    "太可怕了",
    "必须知道",
    "赶紧看",
    "速看",
    "火爆",
    "轰动",
    "疯传",
    "刷屏",
    "爆红",
    "走红",
    "热议",
    "shocking",
    "you won't believe",
    "unbelievable",
    "mind-blowing",
    "jaw-dropping",
    "what happened next",
    "gone viral",
    "secret",
    "insane",
)

URGENCY_WORDS: tuple[str, ...] = (
    "马上",
    "立即",
    "赶紧",
    "快速",
    "紧急",
    "限时",
    "倒计时",
    "最后机会",
    "错过就没了",
    "仅此一次",
    "今日",
    "本周",
    "right now",
    "act now",
    "hurry",
    "urgent",
    "last chance",
    "limited time",
    "don't miss",
    "today only",
    "before it's too late",
)

EMOTIONAL_WORDS: tuple[str, ...] = (
    "愤怒",
    "激动",
    "兴奋",
    "感动",
    "震撼",
    "惊喜",
    "恐怖",
    "可怕",
    "美爆了",
    "太棒了",
    "完美",
    "糟糕",
    "悲惨",
    "heartbreaking",
    "terrifying",
    "horrifying",
    "outrage",
    "furious",
    "adorable",
    "tears",
    "disaster",
)

SUPERLATIVE_WORDS: tuple[str, ...] = (
    "最",
    "史上",
    "best",
    "worst",
    "greatest",
    "biggest",
    "of all time",
)

CHINESE_STOP_WORDS: frozenset[str] = frozenset(
    "的 了 是 在 和 与 及 就 都 也 而 又 或 个 这 那 之 其 把 被 让 给 对 从 向 我 你 他 她 它 们 吗 呢 吧 啊".split()
)

__all__ = [
    "CHINESE_STOP_WORDS",
    "CLICKBAIT_WORDS",
    "EMOTIONAL_WORDS",
    "SUPERLATIVE_WORDS",
    "URGENCY_WORDS",
]
