import json
import os
from typing import Any, Dict, Iterable, Optional

from jinja2 import Environment, FileSystemLoader

from butler import config
from butler.models import DeploymentSpec, ImageSpec


def _quote(value: Any) -> str:
    # JSON-строка - это валидный YAML-скаляр в двойных кавычках
    return json.dumps(str(value), ensure_ascii=False)


class TemplateBuilder:
    """Base class for template based builders."""

    def __init__(self, template_dir: str):
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["quote"] = _quote

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        template = self.env.get_template(template_name)
        return template.render(**context)


class DockerfileBuilder(TemplateBuilder):
    def generate(self, image: ImageSpec) -> str:
        context = {
            "image": image,
            "plugins_path": config.IMAGE_PLUGINS_FILE,
        }
        return self.render_template("jenkins.dockerfile.j2", context)


class ComposeBuilder(TemplateBuilder):
    def generate(self, deployment: DeploymentSpec) -> str:
        return self.render_template("docker-compose.yml.j2", {"d": deployment})


class CascBuilder(TemplateBuilder):
    def generate(self, system_message: str, num_executors: int = 2) -> str:
        context = {
            "system_message": system_message,
            "num_executors": num_executors,
            "http_port": config.HTTP_PORT,
        }
        return self.render_template("jenkins.yaml.j2", context)


class Composer:
    def __init__(self):
        current_dir = os.path.dirname(os.path.abspath(__file__))
        template_dir = os.path.join(current_dir, "templates")
        self.dockerfile = DockerfileBuilder(template_dir)
        self.compose = ComposeBuilder(template_dir)
        self.casc = CascBuilder(template_dir)
        self.env_example = TemplateBuilder(template_dir)

    def get_dockerfile(self, image: Optional[ImageSpec] = None) -> str:
        return self.dockerfile.generate(image or ImageSpec())

    def get_compose(self, deployment: Optional[DeploymentSpec] = None) -> str:
        return self.compose.generate(deployment or DeploymentSpec.default())

    def get_casc_skeleton(
        self, system_message: str = "Jenkins configured automatically by butler", num_executors: int = 2
    ) -> str:
        return self.casc.generate(system_message, num_executors)

    def get_env_example(self, variables: Iterable[str]) -> str:
        return self.env_example.render_template(
            "env.example.j2", {"variables": sorted(set(variables))}
        )
