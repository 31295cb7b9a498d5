from __future__ import annotations

import logging

import pytest

from clickbait_lab.extractor.tfidf import TermWeightIndex, analyse


def test_analyse_removes_english_and_chinese_stop_words() -> None:
    assert analyse("The cat 的 猫") == ["cat", "猫"]


def test_transform_sorts_weights_and_pads() -> None:
    index = TermWeightIndex(dimension=5).fit(
        ["central bank rates", "bank holiday schedule", "library budget approved"]
    )

    weights = index.transform("bank rates rates")

    assert len(weights) == 5
    assert weights[0] >= weights[1] > 0.0
    assert weights[2:] == (0.0, 0.0, 0.0)


def test_transform_does_not_grow_the_vocabulary() -> None:
    index = TermWeightIndex().fit(["central bank rates", "library budget approved"])
    size = index.vocabulary_size

    assert index.transform("completely unseen words") == (0.0,) * 20
    assert index.vocabulary_size == size


def test_unfitted_index_returns_zeros() -> None:
    index = TermWeightIndex(dimension=3)
    assert index.is_fitted is False
    assert index.transform("anything") == (0.0, 0.0, 0.0)


def test_stop_word_corpus_leaves_index_unfitted(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="clickbait_lab.extractor.tfidf")

    index = TermWeightIndex().fit(["the and of", "的 了"])

    assert index.is_fitted is False
    assert any("could not be built" in record.getMessage() for record in caplog.records)
