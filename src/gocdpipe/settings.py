import os

LOGO = r"""
                      _       _
   __ _  ___   ___ __| |_ __ (_)_ __   ___
  / _` |/ _ \ / __/ _` | '_ \| | '_ \ / _ \
 | (_| | (_) | (_| (_| | |_) | | |_) |  __/
  \__, |\___/ \___\__,_| .__/|_| .__/ \___|
  |___/                |_|     |_|
"""

"""
Значения по умолчанию для пайплайна deploy-relay-experimental.

Всё, что зависит от окружения (проект GCP, кластер, реестр образов),
можно переопределить переменными окружения GOCDPIPE_*.
"""

FORMAT_VERSION = 10

PIPELINE_NAME = os.getenv("GOCDPIPE_PIPELINE_NAME", "deploy-relay-experimental")
PIPELINE_GROUP = os.getenv("GOCDPIPE_PIPELINE_GROUP", "relay")

GCP_PROJECT = os.getenv("GOCDPIPE_GCP_PROJECT", "internal-sentry")
GKE_CLUSTER = os.getenv("GOCDPIPE_GKE_CLUSTER", "zdpwkxst")
GKE_REGION = os.getenv("GOCDPIPE_GKE_REGION", "us-central1")
GKE_CLUSTER_ZONE = os.getenv("GOCDPIPE_GKE_CLUSTER_ZONE", "b")
GKE_BASTION_ZONE = os.getenv("GOCDPIPE_GKE_BASTION_ZONE", "b")

MATERIAL_NAME = "relay_repo"
MATERIAL_URL = os.getenv("GOCDPIPE_MATERIAL_URL", "git@github.com:getsentry/relay.git")
MATERIAL_BRANCH = os.getenv("GOCDPIPE_MATERIAL_BRANCH", "master")
MATERIAL_DESTINATION = "relay"
GITHUB_REPOSITORY = "getsentry/relay"

ELASTIC_PROFILE_ID = "relay"
CHECKS_TIMEOUT = 1800
DEPLOY_TIMEOUT = 1200

CHECK_RUNS = [
    "Integration Tests",
    "Test All Features (ubuntu-latest)",
    "Publish Relay to GCR (relay)",
    "Publish Relay to GCR (relay-pop)",
]

GITHUB_TOKEN_SECRET = ("devinfra-github", "token")
SENTRY_AUTH_TOKEN_SECRET = ("devinfra-temp", "relay_sentry_auth_token")

# Комментарии над ключами в сгенерированном YAML
KEY_COMMENTS = {
    "GITHUB_TOKEN": ["Required for checkruns."],
    "SENTRY_AUTH_TOKEN": [
        "Temporary; self-service encrypted secrets aren't implemented yet.",
        "This should really be rotated to an internal integration token.",
    ],
}

SENTRY_ORG = "sentry"
SENTRY_PROJECT = "relay"
SENTRY_URL = "https://sentry.my.sentry.io/"

IMAGE_REGISTRY = os.getenv("GOCDPIPE_IMAGE_REGISTRY", "us-central1-docker.pkg.dev")
IMAGE_REPOSITORY = os.getenv("GOCDPIPE_IMAGE_REPOSITORY", "sentryio/relay")
IMAGE_NAME = os.getenv("GOCDPIPE_IMAGE_NAME", "relay")

LABEL_SELECTOR = "service=relay,deploy_if_canary=true"
CONTAINER_NAME = "relay"

PIPELINE_FILENAME = "relay-experimental.yaml"
OUTPUT_DIR = os.getenv("GOCDPIPE_OUTPUT_DIR", "gocd/pipelines")
