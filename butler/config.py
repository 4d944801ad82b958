"""Конфигурация приложения."""

import os
from pathlib import Path

# Пути
STATE_DIR = Path.home() / ".butler"
BUILD_DIR = ".butler"

# Jenkins
JENKINS_URL = os.getenv("JENKINS_URL", "http://localhost:8080")
JENKINS_HOME = "/var/jenkins_home"
HTTP_PORT = 8080
AGENT_PORT = 50000

# Образ
BASE_IMAGE = "jenkins/jenkins:lts-jdk17"
IMAGE_TAG = "butler-jenkins:latest"
IMAGE_PLUGINS_FILE = "/usr/share/jenkins/plugins.txt"
IMAGE_PLUGIN_DIR = "/usr/share/jenkins/ref/plugins"
CONTAINER_CASC_PATH = "/usr/share/jenkins/casc_configs"

# Плагины
UPDATE_CENTER_URL = os.getenv(
    "BUTLER_UPDATE_CENTER_URL", "https://updates.jenkins.io/update-center.actual.json"
)
DOWNLOAD_URL = "https://updates.jenkins.io/download/plugins"
LATEST_URL = "https://updates.jenkins.io/latest"
EXPERIMENTAL_URL = "https://updates.jenkins.io/experimental/latest"
INCREMENTALS_URL = "https://repo.jenkins-ci.org/incrementals"

# Configuration-as-code
CASC_ENV = "CASC_JENKINS_CONFIG"
MERGE_STRATEGY_ENV = "CASC_MERGE_STRATEGY"
SECRETS_ENV = "SECRETS"
SECRETS_DIR = "/run/secrets"

# Docker
JENKINS_CONTAINER = "jenkins"
JENKINS_VOLUME = "jenkins_home"

HTTP_TIMEOUT = 30
