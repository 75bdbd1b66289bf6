"""Tests for the gocd-yaml document models."""

import pytest
from pydantic import ValidationError

from gocdpipe.model import (
    Approval,
    ApprovalType,
    GitMaterial,
    Job,
    LockBehavior,
    Pipeline,
    Stage,
    revision_variable_name,
)


class TestRevisionVariable:
    def test_relay_material(self):
        material = GitMaterial(name="relay_repo", git="git@github.com:getsentry/relay.git")
        assert material.revision_variable == "GO_REVISION_RELAY_REPO"

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("app", "GO_REVISION_APP"),
            ("my-repo", "GO_REVISION_MY_REPO"),
            ("sdk.v2", "GO_REVISION_SDK_V2"),
        ],
    )
    def test_non_alphanumeric_becomes_underscore(self, name, expected):
        assert revision_variable_name(name) == expected


class TestStage:
    def test_approval_defaults_to_success(self):
        stage = Stage(name="build")
        assert stage.approval.type == ApprovalType.SUCCESS
        assert stage.approval.allow_only_on_success is False
        assert stage.fetch_materials is True

    def test_approval_shorthand_string(self):
        stage = Stage.model_validate({"name": "checks", "approval": "manual"})
        assert stage.approval == Approval(type=ApprovalType.MANUAL)

    def test_unknown_approval_type_rejected(self):
        with pytest.raises(ValidationError):
            Stage.model_validate({"name": "checks", "approval": {"type": "sometimes"}})

    def test_job_lookup(self):
        stage = Stage(name="deploy", jobs=[Job(name="a"), Job(name="b")])
        assert stage.job_names == ["a", "b"]
        assert stage.job("b").name == "b"
        with pytest.raises(KeyError):
            stage.job("c")


class TestVariables:
    def test_scalars_become_strings(self):
        job = Job.model_validate(
            {"name": "j", "environment_variables": {"PORT": 8080, "DEBUG": True, "EMPTY": None}}
        )
        assert job.environment_variables == {"PORT": "8080", "DEBUG": "true", "EMPTY": ""}

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            Job.model_validate({"name": "j", "timeuot": 10})


class TestPipeline:
    def test_lock_behavior_values(self):
        assert {item.value for item in LockBehavior} == {
            "lockOnFailure",
            "unlockWhenFinished",
            "none",
        }

    def test_lookup_helpers(self, relay_pipeline):
        assert relay_pipeline.stage_names == ["checks", "deploy-experimental"]
        assert relay_pipeline.material("relay_repo").destination == "relay"
        with pytest.raises(KeyError):
            relay_pipeline.stage("deploy-production")

    def test_invalid_lock_behavior(self):
        with pytest.raises(ValidationError):
            Pipeline.model_validate({"name": "p", "lock_behavior": "always"})
