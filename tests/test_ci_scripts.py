"""Tests for task script builders."""

import pytest

from gocdpipe.core import ci_scripts


class TestImageReference:
    @pytest.mark.parametrize(
        "revision",
        ["0123456789abcdef0123456789abcdef01234567", "abc1234", "${GO_REVISION_RELAY_REPO}"],
    )
    def test_relay_image(self, revision):
        assert (
            ci_scripts.image_reference(revision)
            == f"us-central1-docker.pkg.dev/sentryio/relay/relay:{revision}"
        )

    def test_overrides(self):
        assert ci_scripts.image_reference("v1", registry="ghcr.io", repository="org", image="app") == "ghcr.io/org/app:v1"


class TestCheckruns:
    def test_positional_arguments(self):
        script = ci_scripts.make_checkruns_script("getsentry/relay", "${REV}", ["A", "B C"])
        assert script == (
            "/devinfra/scripts/checks/githubactions/checkruns.py \\\n"
            "getsentry/relay \\\n"
            "${REV} \\\n"
            '"A" \\\n'
            '"B C"\n'
        )

    def test_requires_check_names(self):
        with pytest.raises(ValueError):
            ci_scripts.make_checkruns_script("getsentry/relay", "${REV}", [])


class TestDeployScripts:
    def test_sentry_release(self):
        assert (
            ci_scripts.make_sentry_release_script("${REV}", "relay")
            == './relay/scripts/create-sentry-release "${REV}" "relay"\n'
        )

    def test_tunnel_runs_before_deploy(self):
        script = ci_scripts.make_k8s_deploy_script("service=relay", "img:1", "relay")
        lines = script.splitlines()
        assert lines[0] == "/devinfra/scripts/k8s/k8stunnel \\"
        assert lines[1].startswith("&& /devinfra/scripts/k8s/k8s-deploy.py")
        assert '--image="img:1" \\' in lines
        assert lines[-1] == '--container-name="relay"'
