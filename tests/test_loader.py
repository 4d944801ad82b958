import pytest
import requests
import yaml

from butler.casc import (
    CascError,
    ConfigurationLoader,
    MergeConflictError,
    UnresolvedPlaceholderError,
    dump_tree,
)
from butler.models import CredentialScope

JENKINS_YAML = """
jenkins:
  systemMessage: "Managed by ${TEAM:-platform}"
  numExecutors: 2
  securityRealm:
    local:
      allowsSignup: false
      users:
        - id: "${ADMIN_USER:-admin}"
          password: "${ADMIN_PASSWORD}"
  authorizationStrategy:
    loggedInUsersCanDoAnything:
      allowAnonymousRead: false
"""

CREDENTIALS_YAML = """
credentials:
  system:
    domainCredentials:
      - credentials:
          - usernamePassword:
              scope: GLOBAL
              id: git-credentials
              username: jenkins
              password: "${GIT_TOKEN}"
          - string:
              scope: SYSTEM
              id: slack-token
              secret: "${SLACK_TOKEN:-none}"
"""


@pytest.fixture
def casc_dir(tmp_path):
    casc = tmp_path / "casc"
    casc.mkdir()
    (casc / "01-jenkins.yaml").write_text(JENKINS_YAML, encoding="utf-8")
    (casc / "02-credentials.yaml").write_text(CREDENTIALS_YAML, encoding="utf-8")
    return casc


def test_admin_password_from_environment(casc_dir):
    loader = ConfigurationLoader(env={"ADMIN_PASSWORD": "admin123", "GIT_TOKEN": "t0k3n"})
    loaded = loader.load(str(casc_dir))

    configuration = loaded.configuration
    admin = configuration.user("admin")
    assert admin is not None
    assert admin.password == "admin123"
    assert configuration.system_message == "Managed by platform"
    assert configuration.num_executors == 2
    assert configuration.security_realm.kind == "local"
    assert configuration.authorization.kind == "loggedInUsersCanDoAnything"


def test_credentials_are_typed(casc_dir):
    loader = ConfigurationLoader(env={"ADMIN_PASSWORD": "x", "GIT_TOKEN": "t0k3n"})
    configuration = loader.load(str(casc_dir)).configuration

    git = configuration.credential("git-credentials")
    assert git.kind == "usernamePassword"
    assert git.scope == CredentialScope.GLOBAL
    assert git.secret("password") == "t0k3n"
    slack = configuration.credential("slack-token")
    assert slack.scope == CredentialScope.SYSTEM
    assert slack.secret("secret") == "none"


def test_raw_tree_keeps_placeholders(casc_dir):
    loaded = ConfigurationLoader(env={"ADMIN_PASSWORD": "x", "GIT_TOKEN": "y"}).load(
        str(casc_dir)
    )
    users = loaded.raw["jenkins"]["securityRealm"]["local"]["users"]
    assert users[0]["password"] == "${ADMIN_PASSWORD}"
    assert {b.name for b in loaded.bindings} == {
        "TEAM",
        "ADMIN_USER",
        "ADMIN_PASSWORD",
        "GIT_TOKEN",
        "SLACK_TOKEN",
    }
    assert len(loaded.sources) == 2


def test_unresolved_placeholder_halts_loading(casc_dir):
    with pytest.raises(UnresolvedPlaceholderError) as exc:
        ConfigurationLoader(env={}).load(str(casc_dir))
    assert exc.value.names == ["ADMIN_PASSWORD", "GIT_TOKEN"]


def test_malformed_yaml(tmp_path):
    (tmp_path / "broken.yaml").write_text("jenkins: [unclosed\n", encoding="utf-8")
    with pytest.raises(CascError) as exc:
        ConfigurationLoader(env={}).load(str(tmp_path))
    assert "malformed YAML" in str(exc.value)


def test_top_level_must_be_mapping(tmp_path):
    (tmp_path / "list.yaml").write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(CascError):
        ConfigurationLoader(env={}).load(str(tmp_path))


def test_unknown_root_element(tmp_path):
    (tmp_path / "jenkins.yaml").write_text("jenkinz:\n  numExecutors: 1\n", encoding="utf-8")
    with pytest.raises(CascError) as exc:
        ConfigurationLoader(env={}).load(str(tmp_path))
    assert "jenkinz" in str(exc.value)


def test_empty_directory(tmp_path):
    with pytest.raises(CascError):
        ConfigurationLoader(env={}).load(str(tmp_path))


def test_merge_strategy_from_environment(tmp_path):
    (tmp_path / "a.yaml").write_text("jenkins:\n  numExecutors: 1\n", encoding="utf-8")
    (tmp_path / "b.yaml").write_text("jenkins:\n  numExecutors: 3\n", encoding="utf-8")

    with pytest.raises(MergeConflictError):
        ConfigurationLoader(env={}).load(str(tmp_path))

    loaded = ConfigurationLoader(env={"CASC_MERGE_STRATEGY": "override"}).load(str(tmp_path))
    assert loaded.configuration.num_executors == 3


def test_default_source_from_environment(casc_dir):
    env = {
        "CASC_JENKINS_CONFIG": str(casc_dir),
        "ADMIN_PASSWORD": "x",
        "GIT_TOKEN": "y",
    }
    loaded = ConfigurationLoader(env=env).load()
    assert loaded.sources[0].endswith("01-jenkins.yaml")


def test_credential_must_be_single_key(tmp_path):
    (tmp_path / "c.yaml").write_text(
        "credentials:\n  system:\n    domainCredentials:\n"
        "      - credentials:\n          - string: {id: a}\n            file: {id: b}\n",
        encoding="utf-8",
    )
    with pytest.raises(CascError):
        ConfigurationLoader(env={}).load(str(tmp_path))


class _Response:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class _Session:
    def __init__(self, pages):
        self.pages = pages

    def get(self, url, **kwargs):
        return self.pages[url]


def test_remote_source(casc_dir):
    url = "https://config.example/tools.yaml"
    session = _Session({url: _Response("tool:\n  git:\n    installations: []\n")})
    loader = ConfigurationLoader(
        env={"ADMIN_PASSWORD": "x", "GIT_TOKEN": "y"}, session=session
    )
    loaded = loader.load(f"{casc_dir},{url}")
    assert loaded.sources[-1] == url
    assert loaded.raw["tool"] == {"git": {"installations": []}}


def test_remote_source_error():
    url = "https://config.example/missing.yaml"
    loader = ConfigurationLoader(env={}, session=_Session({url: _Response("", 404)}))
    with pytest.raises(CascError):
        loader.load(url)


def test_dump_tree_round_trips():
    tree = {"jenkins": {"systemMessage": "x" * 200, "numExecutors": 2}}
    text = dump_tree(tree)
    assert yaml.safe_load(text) == tree
    assert text.startswith("jenkins:")


def test_undecodable_file(tmp_path):
    (tmp_path / "jenkins.yaml").write_bytes(b"\xff\xfe")
    with pytest.raises(CascError, match="cannot read"):
        ConfigurationLoader(env={}).load(str(tmp_path))
