import subprocess

import yaml
from typer.testing import CliRunner

from butler.main import app

runner = CliRunner()


def _init(tmp_path):
    root = tmp_path / "jenkins"
    result = runner.invoke(app, ["init", str(root)])
    assert result.exit_code == 0, result.output
    return root


def test_init_creates_deployment(tmp_path):
    root = _init(tmp_path)
    for name in ("plugins.txt", "Dockerfile", "docker-compose.yml", ".env.example"):
        assert (root / name).is_file()
    assert (root / "casc" / "jenkins.yaml").is_file()
    assert "configuration-as-code" in (root / "plugins.txt").read_text()
    assert (root / ".env.example").read_text().splitlines()[1:] == [
        "ADMIN_PASSWORD=",
        "GIT_TOKEN=",
    ]


def test_init_does_not_overwrite_without_force(tmp_path):
    root = _init(tmp_path)
    (root / "plugins.txt").write_text("git\n")
    runner.invoke(app, ["init", str(root)])
    assert (root / "plugins.txt").read_text() == "git\n"
    runner.invoke(app, ["init", "--force", str(root)])
    assert "configuration-as-code" in (root / "plugins.txt").read_text()


def test_plugins_list_and_diff(tmp_path):
    old = tmp_path / "old.txt"
    new = tmp_path / "new.txt"
    old.write_text("git:5.0.0\nmatrix-auth\n")
    new.write_text("git:5.2.1\n")

    result = runner.invoke(app, ["plugins", "list", str(new)])
    assert result.exit_code == 0
    assert "git" in result.output

    result = runner.invoke(app, ["plugins", "diff", str(old), str(new)])
    assert result.exit_code == 0
    assert "- matrix-auth" in result.output
    assert "~ git:5.0.0 -> git:5.2.1" in result.output


def test_plugins_list_invalid_manifest(tmp_path):
    manifest = tmp_path / "plugins.txt"
    manifest.write_text("not a plugin!\n")
    result = runner.invoke(app, ["plugins", "list", str(manifest)])
    assert result.exit_code == 1


def test_casc_check(tmp_path, monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    root = _init(tmp_path)
    casc = str(root / "casc")
    result = runner.invoke(
        app,
        ["casc", "check", "-c", casc, "-e", "ADMIN_PASSWORD=admin123", "-e", "GIT_TOKEN=t"],
    )
    assert result.exit_code == 0, result.output
    assert "git-credentials" in result.output

    result = runner.invoke(app, ["casc", "check", "-c", casc, "-e", "GIT_TOKEN=t"])
    assert result.exit_code == 1
    assert "ADMIN_PASSWORD" in result.output


def test_casc_export_keeps_placeholders(tmp_path):
    root = _init(tmp_path)
    out = tmp_path / "merged.yaml"
    result = runner.invoke(
        app,
        [
            "casc",
            "export",
            "-c",
            str(root / "casc"),
            "-e",
            "ADMIN_PASSWORD=admin123",
            "-e",
            "GIT_TOKEN=t",
            "-o",
            str(out),
        ],
    )
    assert result.exit_code == 0, result.output
    tree = yaml.safe_load(out.read_text())
    users = tree["jenkins"]["securityRealm"]["local"]["users"]
    assert users[0]["password"] == "${ADMIN_PASSWORD}"


def test_casc_bad_env_pair(tmp_path):
    root = _init(tmp_path)
    result = runner.invoke(app, ["casc", "check", "-c", str(root / "casc"), "-e", "oops"])
    assert result.exit_code == 1


def test_verify(tmp_path, monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    monkeypatch.delenv("GIT_TOKEN", raising=False)
    root = _init(tmp_path)

    result = runner.invoke(app, ["verify", str(root)])
    assert result.exit_code == 1

    (root / ".env").write_text("ADMIN_PASSWORD=admin123\nGIT_TOKEN=t\n")
    result = runner.invoke(app, ["verify", str(root)])
    assert result.exit_code == 0, result.output


def test_verify_image_plugins(tmp_path, monkeypatch):
    root = _init(tmp_path)
    (root / ".env").write_text("ADMIN_PASSWORD=admin123\nGIT_TOKEN=t\n")
    monkeypatch.setattr(
        "butler.commands.verify.list_image_plugins", lambda image: ["git.jpi"]
    )
    result = runner.invoke(app, ["verify", str(root), "--image", "butler-jenkins:latest"])
    assert result.exit_code == 1


def test_docker_renders_dockerfile(tmp_path):
    root = _init(tmp_path)
    (root / "Dockerfile").unlink()
    result = runner.invoke(app, ["docker", str(root), "--tag", "acme/jenkins:1"])
    assert result.exit_code == 0, result.output
    assert "jenkins-plugin-cli" in (root / "Dockerfile").read_text()


def test_docker_build_failure(tmp_path, monkeypatch):
    root = _init(tmp_path)

    def fail(*args, **kwargs):
        raise subprocess.CalledProcessError(1, ["docker", "build"])

    monkeypatch.setattr("butler.commands.docker.build_image", fail)
    result = runner.invoke(app, ["docker", str(root), "--build"])
    assert result.exit_code == 1


def test_analyze(tmp_path):
    root = _init(tmp_path)
    result = runner.invoke(app, ["analyze", str(root)])
    assert result.exit_code == 0, result.output
    assert (root / ".butler" / "project.yaml").is_file()


def test_casc_check_undecodable_file(tmp_path):
    casc = tmp_path / "casc"
    casc.mkdir()
    (casc / "jenkins.yaml").write_bytes(b"\xff\xfe")
    result = runner.invoke(app, ["casc", "check", "-c", str(casc)])
    assert result.exit_code == 1
    assert "cannot read" in result.output
