import yaml

from butler.casc import SecretResolver, find_bindings
from butler.composer import Composer
from butler.models import DeploymentSpec, ImageSpec, JenkinsConfiguration


def test_dockerfile_builder():
    composer = Composer()
    dockerfile = composer.get_dockerfile()
    print("=== Jenkins Dockerfile ===")
    print(dockerfile)
    print("==========================\n")
    assert dockerfile.startswith("# Generated by butler\nFROM jenkins/jenkins:lts-jdk17\n")
    assert 'ENV JAVA_OPTS="-Djenkins.install.runSetupWizard=false"' in dockerfile
    assert "USER root" in dockerfile
    assert "COPY --chown=jenkins:jenkins plugins.txt /usr/share/jenkins/plugins.txt" in dockerfile
    assert "RUN jenkins-plugin-cli -f /usr/share/jenkins/plugins.txt" in dockerfile
    assert "COPY --chown=jenkins:jenkins casc /usr/share/jenkins/casc_configs" in dockerfile
    assert "ENV CASC_JENKINS_CONFIG=/usr/share/jenkins/casc_configs" in dockerfile
    assert "EXPOSE 8080\n" in dockerfile
    assert "EXPOSE 50000\n" in dockerfile
    # jenkins-plugin-cli должен выполняться от пользователя jenkins
    assert dockerfile.index("USER jenkins") < dockerfile.index("jenkins-plugin-cli")


def test_dockerfile_without_casc_and_packages():
    image = ImageSpec(base_image="jenkins/jenkins:2.440.3", apt_packages=[], casc_dir=None)
    dockerfile = Composer().get_dockerfile(image)
    assert "FROM jenkins/jenkins:2.440.3" in dockerfile
    assert "USER root" not in dockerfile
    assert "CASC_JENKINS_CONFIG" not in dockerfile


def test_compose_builder_round_trip():
    deployment = DeploymentSpec.default()
    rendered = Composer().get_compose(deployment)
    print("=== docker-compose.yml ===")
    print(rendered)
    print("==========================\n")
    compose = yaml.safe_load(rendered)
    service = compose["services"]["jenkins"]
    assert service["ports"] == ["8080:8080", "50000:50000"]
    assert service["volumes"] == ["jenkins_home:/var/jenkins_home"]
    assert service["restart"] == "unless-stopped"
    assert service["environment"]["ADMIN_PASSWORD"] == "${ADMIN_PASSWORD}"
    assert service["mem_limit"] == "2g"
    assert service["cpus"] == 1.0
    assert compose["volumes"] == {"jenkins_home": {}}
    assert DeploymentSpec.from_compose(compose) == deployment


def test_compose_quotes_special_values():
    deployment = DeploymentSpec(
        environment={"JAVA_OPTS": "-Dfoo=bar: baz", "EMPTY": ""}, restart="always"
    )
    compose = yaml.safe_load(Composer().get_compose(deployment))
    service = compose["services"]["jenkins"]
    assert service["environment"] == {"JAVA_OPTS": "-Dfoo=bar: baz", "EMPTY": ""}
    assert "volumes" not in compose


def test_casc_skeleton_loads():
    casc = yaml.safe_load(Composer().get_casc_skeleton(system_message="hello: world"))
    env = {"ADMIN_PASSWORD": "admin123", "GIT_TOKEN": "t0k3n"}
    resolved = SecretResolver(env=env, secrets_dir="/nonexistent").resolve_tree(casc)
    configuration = JenkinsConfiguration.from_tree(resolved)
    assert configuration.system_message == "hello: world"
    assert configuration.user("admin").password == "admin123"
    assert configuration.credential("git-credentials").secret("password") == "t0k3n"
    assert configuration.location_url == "http://localhost:8080/"

    required = {b.name for b in find_bindings(casc) if not b.has_default}
    assert required == {"ADMIN_PASSWORD", "GIT_TOKEN"}


def test_env_example():
    text = Composer().get_env_example(["GIT_TOKEN", "ADMIN_PASSWORD", "GIT_TOKEN"])
    assert text.splitlines()[1:] == ["ADMIN_PASSWORD=", "GIT_TOKEN="]
