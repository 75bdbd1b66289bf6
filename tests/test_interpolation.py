"""Tests for revision-aware script preview."""

from gocdpipe.core.interpolation import (
    engine_variables,
    interpolate,
    job_environment,
    render_tasks,
)

REVISION = "4f1c0d2b9e8a7c6d5e4f3a2b1c0d9e8f7a6b5c4d"


class TestEnvironment:
    def test_engine_variables(self, relay_pipeline):
        env = engine_variables(relay_pipeline, {"relay_repo": REVISION})
        assert env == {
            "GO_PIPELINE_NAME": "deploy-relay-experimental",
            "GO_REVISION_RELAY_REPO": REVISION,
        }

    def test_unknown_revision_is_skipped(self, relay_pipeline):
        env = engine_variables(relay_pipeline, {})
        assert "GO_REVISION_RELAY_REPO" not in env

    def test_job_environment_layers(self, relay_pipeline):
        stage = relay_pipeline.stage("deploy-experimental")
        job = stage.job("create_sentry_release")
        env = job_environment(relay_pipeline, stage, job, {"relay_repo": REVISION})
        assert env["GKE_CLUSTER"] == "zdpwkxst"
        assert env["SENTRY_ORG"] == "sentry"
        assert env["GO_STAGE_NAME"] == "deploy-experimental"
        assert env["GO_JOB_NAME"] == "create_sentry_release"
        assert env["GO_REVISION_RELAY_REPO"] == REVISION

    def test_job_overrides_pipeline(self, relay_pipeline):
        stage = relay_pipeline.stage("checks")
        job = stage.job("checks")
        job.environment_variables["GKE_REGION"] = "europe-west1"
        env = job_environment(relay_pipeline, stage, job, {})
        assert env["GKE_REGION"] == "europe-west1"


class TestInterpolate:
    def test_both_forms(self):
        assert interpolate("$A ${B}", {"A": "1", "B": "2"}) == "1 2"

    def test_unknown_left_untouched(self):
        assert interpolate("echo ${MISSING} $ALSO", {}) == "echo ${MISSING} $ALSO"

    def test_shell_pid_kept(self):
        assert interpolate("echo $$ > pid", {}) == "echo $$ > pid"
        assert interpolate("kill $$APP", {"APP": "relay"}) == "kill $$APP"

    def test_secret_reference_not_expanded(self):
        env = {"GITHUB_TOKEN": "{{SECRET:[devinfra-github][token]}}"}
        assert interpolate("{{SECRET:[a][b]}}", env) == "{{SECRET:[a][b]}}"


class TestRenderTasks:
    def test_relay_preview(self, relay_pipeline):
        tasks = render_tasks(relay_pipeline, {"relay_repo": REVISION})
        assert [(task.stage, task.job) for task in tasks] == [
            ("checks", "checks"),
            ("deploy-experimental", "create_sentry_release"),
            ("deploy-experimental", "deploy"),
        ]
        assert f"getsentry/relay \\\n{REVISION} \\\n" in tasks[0].script
        assert f'create-sentry-release "{REVISION}" "relay"' in tasks[1].script
        assert (
            f'--image="us-central1-docker.pkg.dev/sentryio/relay/relay:{REVISION}"'
            in tasks[2].script
        )
