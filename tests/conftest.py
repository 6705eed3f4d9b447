import os

# Keep test runs from writing a log file or picking up real credentials
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from castquality.config import Settings
from tests.fakes import FakeContentSource, FakeFetcher, FakeScorerClient, FakeStore, make_pipeline


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DEEPSEEK_API_KEY="test-key",
        NEYNAR_API_KEY="neynar-key",
        DATA_DIR=tmp_path,
        LOG_TO_FILE=False,
        BATCH_DELAY_SECONDS=0.0,
    )


@pytest.fixture
def scorer_client():
    return FakeScorerClient()


@pytest.fixture
def curated():
    return FakeStore("curated_casts")


@pytest.fixture
def replies():
    return FakeStore("cast_replies")


@pytest.fixture
def content_source():
    return FakeContentSource()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def quality_pipeline(settings, scorer_client, curated, replies, content_source, fetcher):
    return make_pipeline(settings, scorer_client, [curated, replies], content_source, fetcher)
