"""Settings loading tests."""

from postdesk.config import Settings


def test_empty_bucket_variable_falls_through(monkeypatch):
    monkeypatch.delenv("S3_BUCKET", raising=False)
    monkeypatch.setenv("R2_POSTS_BUCKET", "")
    monkeypatch.setenv("R2_BUCKET", "media")

    assert Settings(_env_file=None).s3_bucket == "media"


def test_first_set_bucket_alias_wins(monkeypatch):
    monkeypatch.delenv("S3_BUCKET", raising=False)
    monkeypatch.setenv("R2_POSTS_BUCKET", "posts")
    monkeypatch.setenv("R2_BUCKET", "media")

    assert Settings(_env_file=None).s3_bucket == "posts"
