"""Remote catalog normalisation and the GitHub implementation (HTTP faked)."""

from __future__ import annotations

from pathlib import Path

import pytest

from clintrialdata.models import Asset, Release
from clintrialdata.remote import (
    GitHubReleaseCatalog,
    RemoteCatalog,
    assets_for_version,
    normalize_assets,
    normalize_releases,
)
from clintrialdata.remote import catalog as catalog_mod
from clintrialdata.remote import client


class _Response:
    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload


def test_tag_and_tag_name_are_equivalent() -> None:
    """Verify both version column spellings produce the same records."""
    a = normalize_assets([{"file_name": "x.zip", "size": 10, "tag": "v1"}])
    b = normalize_assets([{"name": "x.zip", "size": 10, "tag_name": "v1"}])
    assert a == b == [Asset(file_name="x.zip", size=10, tag="v1")]

    r = normalize_releases([{"tag_name": "v2", "name": "Second"}, {"tag": "v1"}])
    assert [x.tag for x in r] == ["v2", "v1"]


def test_assets_for_version_filters_by_tag() -> None:
    """Verify assets are restricted to one release."""
    assets = normalize_assets(
        [
            {"file_name": "a.zip", "tag": "v1"},
            {"file_name": "b.zip", "tag_name": "v2"},
        ]
    )
    assert [a.file_name for a in assets_for_version(assets, "v2")] == ["b.zip"]


def test_fake_catalog_satisfies_protocol(catalog_factory) -> None:
    """Verify the test double implements the catalog interface."""
    assert isinstance(catalog_factory(), RemoteCatalog)
    assert isinstance(GitHubReleaseCatalog(), RemoteCatalog)


def _release(tag: str, *names: str) -> dict:
    return {
        "tag_name": tag,
        "name": tag,
        "assets": [
            {
                "name": n,
                "size": 1024,
                "url": f"https://api.github.com/assets/{tag}/{n}",
                "browser_download_url": f"https://github.com/dl/{tag}/{n}",
            }
            for n in names
        ],
    }


def test_github_catalog_paginates_and_flattens(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify releases are paged and assets carry their release tag."""
    pages = {
        1: [_release("v3", "c.zip"), _release("v2", "b.zip")],
        2: [_release("v1", "a.zip", "a_metadata.json")],
    }
    seen: list[str] = []

    def fake_get(url, token=None, params=None, **kwargs):
        seen.append(url)
        return _Response(pages.get(params["page"], []))

    monkeypatch.setattr(catalog_mod, "github_get", fake_get)
    cat = GitHubReleaseCatalog(api_url="https://api.example/", per_page=2)

    assert [r.tag for r in cat.list_releases("o/r")] == ["v3", "v2", "v1"]
    assert seen[0] == "https://api.example/repos/o/r/releases"

    assets = cat.list_assets("o/r")
    assert {(a.file_name, a.tag) for a in assets} == {
        ("c.zip", "v3"),
        ("b.zip", "v2"),
        ("a.zip", "v1"),
        ("a_metadata.json", "v1"),
    }
    assert [a.file_name for a in cat.list_assets("o/r", tag="v1")] == ["a.zip", "a_metadata.json"]


@pytest.mark.parametrize(
    "tag, endpoint",
    [("latest", "repos/o/r/releases/latest"), ("v1", "repos/o/r/releases/tags/v1")],
)
def test_github_download_asset_endpoint(monkeypatch, tmp_path: Path, tag, endpoint) -> None:
    """Verify 'latest' and explicit tags hit the matching release endpoint."""
    urls: list[str] = []
    streamed: list[str] = []

    def fake_get(url, token=None, params=None, **kwargs):
        urls.append(url)
        return _Response(_release("v1", "study.zip"))

    def fake_stream(url, dest, token=None, **kwargs):
        streamed.append(url)
        dest.write_bytes(b"zip")
        return dest

    monkeypatch.setattr(catalog_mod, "github_get", fake_get)
    monkeypatch.setattr(catalog_mod, "stream_to_file", fake_stream)

    path = GitHubReleaseCatalog().download_asset("study.zip", tmp_path, "o/r", tag)

    assert urls == [f"https://api.github.com/{endpoint}"]
    assert streamed == ["https://github.com/dl/v1/study.zip"]
    assert path == tmp_path / "study.zip" and path.read_bytes() == b"zip"


def test_github_download_uses_api_url_with_token(monkeypatch, tmp_path: Path) -> None:
    """Verify authenticated downloads go through the API asset URL."""
    streamed: list[tuple] = []
    monkeypatch.setattr(
        catalog_mod, "github_get", lambda url, token=None, params=None, **kw: _Response(_release("v1", "s.zip"))
    )

    def fake_stream(url, dest, token=None, **kwargs):
        streamed.append((url, token))
        dest.write_bytes(b"")
        return dest

    monkeypatch.setattr(catalog_mod, "stream_to_file", fake_stream)
    GitHubReleaseCatalog(token="secret").download_asset("s.zip", tmp_path, "o/r", "v1")
    assert streamed == [("https://api.github.com/assets/v1/s.zip", "secret")]


def test_github_download_missing_asset(monkeypatch, tmp_path: Path) -> None:
    """Verify an absent asset raises FileNotFoundError."""
    monkeypatch.setattr(
        catalog_mod, "github_get", lambda url, token=None, params=None, **kw: _Response(_release("v1"))
    )
    with pytest.raises(FileNotFoundError, match="s.zip"):
        GitHubReleaseCatalog().download_asset("s.zip", tmp_path, "o/r", "v1")


def test_github_get_sends_headers_and_timeout(monkeypatch) -> None:
    """Verify the HTTP helper adds auth and honours CLINTRIALDATA_TIMEOUT."""
    captured: dict = {}

    class _Resp:
        def raise_for_status(self):
            captured["checked"] = True

    def fake_requests_get(url, **kwargs):
        captured.update(kwargs, url=url)
        return _Resp()

    monkeypatch.setattr(client.requests, "get", fake_requests_get)
    monkeypatch.setenv("CLINTRIALDATA_TIMEOUT", "5")

    client.github_get("https://api.example/x", token="tok")

    assert captured["timeout"] == 5.0
    assert captured["headers"]["Authorization"] == "Bearer tok"
    assert captured["checked"] is True


def test_release_model_accepts_api_payload() -> None:
    """Verify a raw GitHub release validates into a Release."""
    rel = Release.model_validate({"tag_name": "v1.0.0", "name": "First", "draft": False, "prerelease": True})
    assert rel.tag == "v1.0.0" and rel.prerelease is True
