import base64
import hashlib
import json

import pytest
import requests

from butler import config
from butler.models import PluginEntry, ResolvedPlugin
from butler.plugins import (
    PluginInstaller,
    PluginResolutionError,
    PluginResolver,
    UpdateCenter,
    parse_manifest,
)
from butler.plugins.resolver import download_url, newest, version_key

UPDATE_CENTER = {
    "core": {"version": "2.440.3"},
    "plugins": {
        "git": {
            "version": "5.2.1",
            "url": "https://updates.jenkins.io/download/plugins/git/5.2.1/git.hpi",
            "sha256": "Z2l0",
            "dependencies": [
                {"name": "credentials", "version": "2.6", "optional": False},
                {"name": "scm-api", "version": "680.v", "optional": False},
                {"name": "mailer", "version": "1.0", "optional": True},
            ],
        },
        "credentials": {
            "version": "1337.v60b",
            "url": "https://updates.jenkins.io/download/plugins/credentials/1337.v60b/credentials.hpi",
            "sha256": "Y3JlZA==",
            "dependencies": [],
        },
        "scm-api": {
            "version": "690.v",
            "url": "https://updates.jenkins.io/download/plugins/scm-api/690.v/scm-api.hpi",
            "dependencies": [{"name": "structs", "version": "325.v", "optional": False}],
        },
        "structs": {
            "version": "338.v",
            "url": "https://updates.jenkins.io/download/plugins/structs/338.v/structs.hpi",
            "dependencies": [],
        },
        "mailer": {"version": "472.v", "dependencies": []},
    },
}


class FakeResponse:
    def __init__(self, status_code=200, body=b"", payload=None):
        self.status_code = status_code
        self.body = body
        self.payload = payload

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url, **kwargs):
        self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            raise requests.ConnectionError(f"no route to {url}")
        return response


def _sha(content: bytes) -> str:
    return base64.b64encode(hashlib.sha256(content).digest()).decode("ascii")


def test_version_ordering():
    assert newest("2.6.1", "2.10") == "2.10"
    assert version_key("1.0-beta-1") < version_key("1.0")
    assert newest(None, "1.2") == "1.2"
    assert newest() is None


def test_resolve_transitive_dependencies():
    resolved = PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(parse_manifest("git\n"))
    by_name = {p.name: p for p in resolved}
    assert [p.name for p in resolved] == ["credentials", "git", "scm-api", "structs"]
    assert by_name["git"].requested
    assert not by_name["credentials"].requested
    assert by_name["credentials"].required_by == ["git"]
    assert by_name["structs"].required_by == ["scm-api"]
    # optional dependencies are not installed
    assert "mailer" not in by_name


def test_latest_policy_takes_update_center_version():
    resolved = PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(parse_manifest("git\n"))
    credentials = next(p for p in resolved if p.name == "credentials")
    assert credentials.version == "1337.v60b"
    assert credentials.sha256 == "Y3JlZA=="
    assert credentials.url.endswith("/credentials/1337.v60b/credentials.hpi")


def test_minimal_policy_takes_required_version():
    resolver = PluginResolver(UpdateCenter(UPDATE_CENTER), latest=False)
    resolved = resolver.resolve(parse_manifest("git\n"))
    credentials = next(p for p in resolved if p.name == "credentials")
    assert credentials.version == "2.6"
    assert credentials.sha256 is None
    assert credentials.url == f"{config.DOWNLOAD_URL}/credentials/2.6/credentials.hpi"


def test_pinned_version_is_kept():
    resolved = PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(
        parse_manifest("git\ncredentials:1300.v1\n")
    )
    credentials = next(p for p in resolved if p.name == "credentials")
    assert credentials.version == "1300.v1"
    assert credentials.requested


def test_pinned_version_below_requirement_fails():
    with pytest.raises(PluginResolutionError) as exc:
        PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(
            parse_manifest("git\ncredentials:2.0\n")
        )
    assert "credentials:2.6" in str(exc.value)


def test_unknown_plugin_fails():
    with pytest.raises(PluginResolutionError) as exc:
        PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(parse_manifest("git\nno-such\n"))
    assert "no-such" in str(exc.value)


def test_download_urls():
    assert download_url(PluginEntry(name="foo", version="experimental")).endswith(
        "/experimental/latest/foo.hpi"
    )
    assert (
        download_url(PluginEntry(name="foo", version="incrementals;org.example;1.2-rc3.abc"))
        == f"{config.INCREMENTALS_URL}/org/example/foo/1.2-rc3.abc/foo-1.2-rc3.abc.hpi"
    )
    assert download_url(PluginEntry(name="foo")) == f"{config.LATEST_URL}/foo.hpi"
    assert (
        download_url(PluginEntry(name="foo", version="1.0", url="https://example.com/foo.hpi"))
        == "https://example.com/foo.hpi"
    )


def test_update_center_from_wrapped_file(tmp_path):
    path = tmp_path / "update-center.json"
    path.write_text(f"updateCenter.post(\n{json.dumps(UPDATE_CENTER)}\n);", encoding="utf-8")
    center = UpdateCenter.from_file(path)
    assert center.core == "2.440.3"
    assert [d["name"] for d in center.dependencies("git")] == ["credentials", "scm-api"]


def test_update_center_fetch_error():
    with pytest.raises(PluginResolutionError):
        UpdateCenter.fetch("https://updates.invalid/uc.json", session=FakeSession({}))


def test_update_center_fetch():
    url = "https://updates.example/uc.json"
    session = FakeSession({url: FakeResponse(payload=UPDATE_CENTER)})
    center = UpdateCenter.fetch(url, session=session)
    assert center.get("git")["version"] == "5.2.1"


def test_installer_downloads_and_verifies(tmp_path):
    content = b"plugin-bytes"
    plugin = ResolvedPlugin(
        name="git", version="5.2.1", url="https://dl.example/git.hpi", sha256=_sha(content)
    )
    session = FakeSession({plugin.url: FakeResponse(body=content)})
    installed = PluginInstaller(session=session).install([plugin], tmp_path / "plugins")
    assert installed == [tmp_path / "plugins" / "git.jpi"]
    assert installed[0].read_bytes() == content

    # второй запуск ничего не скачивает
    session.requested.clear()
    PluginInstaller(session=session).install([plugin], tmp_path / "plugins")
    assert session.requested == []


def test_installer_checksum_mismatch(tmp_path):
    plugin = ResolvedPlugin(
        name="git", version="5.2.1", url="https://dl.example/git.hpi", sha256=_sha(b"other")
    )
    session = FakeSession({plugin.url: FakeResponse(body=b"plugin-bytes")})
    with pytest.raises(PluginResolutionError):
        PluginInstaller(session=session).install([plugin], tmp_path)
    assert not (tmp_path / "git.jpi").exists()
    assert not (tmp_path / "git.tmp").exists()


def test_installer_http_error(tmp_path):
    plugin = ResolvedPlugin(name="git", version="5.2.1", url="https://dl.example/git.hpi")
    session = FakeSession({plugin.url: FakeResponse(status_code=404)})
    with pytest.raises(PluginResolutionError):
        PluginInstaller(session=session).install([plugin], tmp_path)


def test_plugin_with_explicit_url_outside_update_center():
    resolved = PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(
        parse_manifest("git\nmy-plugin:1.0:https://example.com/my-plugin.hpi\n")
    )
    mine = next(p for p in resolved if p.name == "my-plugin")
    assert mine.version == "1.0"
    assert mine.url == "https://example.com/my-plugin.hpi"
    assert mine.sha256 is None
    assert mine.requested
    assert mine.required_by == []


def test_incremental_plugin_outside_update_center():
    resolved = PluginResolver(UpdateCenter(UPDATE_CENTER)).resolve(
        parse_manifest("foo:incrementals;org.example;1.2-rc3.abc\n")
    )
    assert [p.name for p in resolved] == ["foo"]
    assert resolved[0].url.endswith("/org/example/foo/1.2-rc3.abc/foo-1.2-rc3.abc.hpi")
