from __future__ import annotations

import numpy as np
import pytest

from clickbait_lab.extractor import FEATURE_DIM, FEATURE_NAMES, TextFeatureExtractor, empty_features
from clickbait_lab.extractor.text import split_sentences, tokenize


def test_extract_features_counts_chinese_headline() -> None:
    extractor = TextFeatureExtractor()

    features = extractor.extract_features("震惊！这个方法让你月入十万！")

    assert features.length == 14
    assert features.word_count == 12
    assert features.sentence_count == 2
    assert features.exclamation_count == 2
    assert features.question_count == 0
    assert features.clickbait_words == 1
    assert features.caps_ratio == 0.0
    assert features.punctuation_ratio == pytest.approx(2 / 14)
    assert features.average_word_length == pytest.approx(1.0)


def test_extract_features_counts_latin_headline() -> None:
    extractor = TextFeatureExtractor()

    features = extractor.extract_features("Hello World? Yes!")

    assert features.length == 17
    assert features.word_count == 3
    assert features.sentence_count == 2
    assert features.exclamation_count == 1
    assert features.question_count == 1
    assert features.caps_ratio == pytest.approx(3 / 17)
    assert features.average_word_length == pytest.approx(13 / 3)


def test_keyword_matching_is_case_insensitive() -> None:
    features = TextFeatureExtractor().extract_features("SHOCKING news, truly shocking")
    assert features.clickbait_words == 2


@pytest.mark.parametrize("text", ["", "   \n", None, 42])
def test_extract_features_returns_zeros_for_empty_input(text: object) -> None:
    assert TextFeatureExtractor().extract_features(text) == empty_features()


def test_extract_features_is_deterministic() -> None:
    extractor = TextFeatureExtractor()
    extractor.train_tfidf(["震惊！秘密曝光", "市政府发布报告", "Central bank keeps rates"])

    first = extractor.extract_features("震惊！市政府发布秘密报告")
    second = extractor.extract_features("震惊！市政府发布秘密报告")

    assert first == second
    assert extractor.vocabulary_size > 0


def test_embedding_is_zero_until_tfidf_is_trained() -> None:
    extractor = TextFeatureExtractor()
    assert extractor.is_tfidf_trained is False
    assert extractor.extract_features("bank rates").tfidf_vector == (0.0,) * 20

    extractor.train_tfidf(["central bank rates", "library budget approved"])
    embedding = extractor.extract_features("bank rates").tfidf_vector

    assert extractor.is_tfidf_trained is True
    assert len(embedding) == 20
    assert embedding[0] > 0.0
    assert list(embedding) == sorted(embedding, reverse=True)


def test_feature_vector_follows_shared_order() -> None:
    extractor = TextFeatureExtractor()
    features = extractor.extract_features("Hello World? Yes!")

    vector = extractor.get_feature_vector(features)

    assert vector.shape == (FEATURE_DIM,)
    assert len(FEATURE_NAMES) == FEATURE_DIM == 31
    assert vector.dtype == np.float64
    assert vector[0] == pytest.approx(17 / 100)
    assert vector[1] == pytest.approx(3 / 50)
    assert vector[3] == 1.0
    assert vector[9] == pytest.approx(13 / 30)


def test_tokenize_splits_cjk_characters_and_lowercases_words() -> None:
    assert tokenize("Breaking新闻 NOW!") == ["breaking", "新", "闻", "now"]


def test_split_sentences_drops_empty_parts() -> None:
    assert split_sentences("第一句。第二句！！Third? ") == ["第一句", "第二句", "Third"]
