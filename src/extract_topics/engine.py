"""Topic extraction engines.

``LdaComputeEngine`` fits a Latent Dirichlet Allocation model in process.
LDA is randomized: unless ``seed`` is fixed, the same corpus can yield
different topics (and different top words per article) on every run.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

import numpy as np
from sklearn.decomposition import LatentDirichletAllocation
from sklearn.feature_extraction.text import CountVectorizer

from common.errors import ComputeFailure
from common.http_client import post_jsonl_for_records
from extract_topics.models import CorpusDocument

logger = logging.getLogger(__name__)

# Words of three or more characters: letters at both ends, letters or
# apostrophes/hyphens/dots inside.
TOKEN_PATTERN = r"(?u)\b[^\W\d_](?:[^\W\d_]|['\-.])+[^\W\d_]\b"


class ComputeEngine(Protocol):
    def extract_topics(
        self,
        corpus: Sequence[CorpusDocument],
        num_topics: int,
        num_top_words: int,
    ) -> list[dict]:
        """Return ``[{"id": ..., "topWords": [...]}]``, one entry per document."""
        ...


class LdaComputeEngine:
    """In-process topic extraction with scikit-learn."""

    def __init__(self, iterations: int = 50, seed: int | None = None, stop_words: str | None = "english"):
        self.iterations = iterations
        self.seed = seed
        self.stop_words = stop_words

    def extract_topics(
        self,
        corpus: Sequence[CorpusDocument],
        num_topics: int,
        num_top_words: int,
    ) -> list[dict]:
        if not corpus:
            return []

        logger.info(
            "Fitting %d topics over %d documents (iterations=%d, seed=%s)",
            num_topics,
            len(corpus),
            self.iterations,
            self.seed,
        )
        vectorizer = CountVectorizer(
            lowercase=True,
            stop_words=self.stop_words,
            token_pattern=TOKEN_PATTERN,
        )
        try:
            counts = vectorizer.fit_transform([doc.text for doc in corpus])
        except ValueError as e:
            raise ComputeFailure(f"could not build vocabulary: {e}") from e

        model = LatentDirichletAllocation(
            n_components=num_topics,
            max_iter=self.iterations,
            learning_method="batch",
            random_state=self.seed,
        )
        doc_topics = model.fit_transform(counts)
        vocabulary = vectorizer.get_feature_names_out()

        topic_words = [
            [str(vocabulary[i]) for i in np.argsort(component)[::-1][:num_top_words]]
            for component in model.components_
        ]

        results = []
        for doc, distribution in zip(corpus, doc_topics, strict=True):
            # Most probable topic first.
            order = np.argsort(-distribution, kind="stable")
            words = [word for topic in order for word in topic_words[topic]]
            results.append({"id": doc.id, "topWords": words})
        return results


class HttpComputeEngine:
    """Topic extraction delegated to a remote service."""

    def __init__(self, url: str, timeout: float = 300.0):
        self.url = url
        self.timeout = timeout

    def extract_topics(
        self,
        corpus: Sequence[CorpusDocument],
        num_topics: int,
        num_top_words: int,
    ) -> list[dict]:
        return post_jsonl_for_records(
            self.url,
            [{"id": doc.id, "label": doc.label, "text": doc.text} for doc in corpus],
            timeout=self.timeout,
            params={"numTopics": num_topics, "numTopWordsPerTopic": num_top_words},
        )
