import numpy as np
import pandas as pd
import pytest

from fakenews_ensemble.preprocessing.data_loader import split_dataset

STATES = ["Ohio", "Texas", "Utah", "Iowa", "Maine", "Idaho", "Nevada"]
SOURCES = ["Reuters", "BBC", "Daily Buzz", "CNN", "Fox", "NYT", "Blog"]
CATEGORIES = ["Politics", "Health", "Tech", "Sports"]


def make_articles(n=60, seed=0):
    """Raw article table with every schema column plus text columns."""
    rng = np.random.RandomState(seed)
    labels = np.array(["Real", "Fake"] * (n // 2) + ["Real"] * (n % 2))
    real = labels == "Real"
    word_count = rng.randint(100, 2000, n)
    return pd.DataFrame({
        "id": np.arange(1, n + 1),
        "title": ["headline"] * n,
        "text": ["body"] * n,
        "author": ["someone"] * n,
        "state": rng.choice(STATES, n),
        "source": rng.choice(SOURCES, n),
        "category": rng.choice(CATEGORIES, n),
        "political_bias": rng.choice(["Left", "Center", "Right"], n),
        "fact_check_rating": np.where(real, "TRUE", rng.choice(["FALSE", "Mixed"], n)),
        "sentiment_score": rng.uniform(-1, 1, n),
        "word_count": word_count,
        "char_count": word_count * 6 + rng.randint(0, 50, n),
        "readability_score": rng.uniform(20, 80, n),
        "num_shares": rng.randint(0, 10000, n),
        "num_comments": rng.randint(0, 1000, n),
        "trust_score": np.where(real, rng.uniform(60, 100, n), rng.uniform(0, 40, n)),
        "clickbait_score": np.where(real, rng.uniform(0, 0.4, n), rng.uniform(0.6, 1, n)),
        "plagiarism_score": rng.uniform(0, 60, n),
        "label": labels,
    })


def make_separable_articles(seed=123, train_fraction=0.8):
    """
    20 articles (10 Real, 10 Fake) where only trust_score varies.

    Labels are assigned after computing the split so that both the
    training and the validation part hold both classes.
    """
    n = 20
    positions = pd.DataFrame(index=range(n))
    train, val = split_dataset(positions, train_fraction, seed)

    labels = np.empty(n, dtype=object)
    for i, pos in enumerate(train.index):
        labels[pos] = "Real" if i % 2 == 0 else "Fake"
    for i, pos in enumerate(val.index):
        labels[pos] = "Real" if i % 2 == 0 else "Fake"
    real = labels == "Real"

    trust = np.where(real, np.linspace(80, 100, n), np.linspace(0, 20, n))
    return pd.DataFrame({
        "id": [f"a{i:02d}" for i in range(n)],
        "state": "Ohio",
        "source": "Reuters",
        "category": "Politics",
        "political_bias": "Center",
        "fact_check_rating": "Mixed",
        "sentiment_score": 0.2,
        "word_count": 500,
        "char_count": 3000,
        "readability_score": 55.0,
        "num_shares": 120,
        "num_comments": 15,
        "trust_score": trust,
        "clickbait_score": 0.5,
        "plagiarism_score": 10.0,
        "label": labels,
    })


@pytest.fixture
def raw_articles():
    return make_articles()


@pytest.fixture
def records(raw_articles):
    from fakenews_ensemble.preprocessing.data_loader import NewsDataLoader
    return NewsDataLoader(verbose=False).prepare_records(raw_articles)


@pytest.fixture
def separable_articles():
    return make_separable_articles()


@pytest.fixture
def toy_features():
    """Small numeric frame with a clean linear signal in column x0."""
    rng = np.random.RandomState(7)
    n = 80
    y = np.array([0, 1] * (n // 2))
    X = pd.DataFrame({
        "x0": y * 4.0 + rng.normal(0, 0.5, n),
        "x1": rng.normal(0, 1, n),
        "x2": rng.normal(0, 1, n),
    }, index=[f"r{i}" for i in range(n)])
    return X, pd.Series(y, index=X.index)
