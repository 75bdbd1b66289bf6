"""Tests for loading and rendering gocd-yaml documents."""

import pytest
import yaml

from gocdpipe import settings
from gocdpipe.core.renders import gocd as gocd_render
from gocdpipe.core.services.loader import load_pipeline_file, parse_pipeline_document
from gocdpipe.exception import PipelineFormatError
from gocdpipe.model import ApprovalType, ExecTask, LockBehavior


class TestCheckedInFile:
    def test_file_matches_builder_output(self, relay_document, relay_yaml_path):
        expected = gocd_render.render(relay_document, comments=settings.KEY_COMMENTS)
        assert relay_yaml_path.read_text(encoding="utf-8") == expected

    def test_file_loads_to_builder_model(self, relay_document, relay_yaml_path):
        assert load_pipeline_file(relay_yaml_path) == relay_document

    def test_stage_order(self, relay_yaml_path):
        pipeline = load_pipeline_file(relay_yaml_path).pipelines[0]
        assert pipeline.stage_names == ["checks", "deploy-experimental"]


class TestRender:
    def test_layout(self, relay_document):
        raw = yaml.safe_load(gocd_render.render(relay_document))
        pipeline = raw["pipelines"]["deploy-relay-experimental"]
        assert list(pipeline) == ["environment_variables", "group", "lock_behavior", "materials", "stages"]
        assert [next(iter(stage)) for stage in pipeline["stages"]] == ["checks", "deploy-experimental"]
        checks = pipeline["stages"][0]["checks"]
        assert checks["approval"] == {"type": "manual"}
        assert list(checks["jobs"]["checks"]) == ["environment_variables", "timeout", "elastic_profile_id", "tasks"]

    def test_scripts_are_block_scalars(self, relay_document):
        text = gocd_render.render(relay_document)
        assert "- script: |\n" in text

    def test_comments_above_keys(self, relay_document):
        text = gocd_render.render(relay_document, comments={"GITHUB_TOKEN": ["Required for checkruns."]})
        assert (
            "                # Required for checkruns.\n"
            "                GITHUB_TOKEN: '{{SECRET:[devinfra-github][token]}}'\n"
        ) in text
        assert parse_pipeline_document(text) == relay_document

    def test_no_header(self, relay_document):
        assert gocd_render.render(relay_document, header=False).startswith("format_version: 10\n")

    def test_defaults_are_not_added(self, minimal_yaml):
        document = parse_pipeline_document(minimal_yaml)
        raw = yaml.safe_load(gocd_render.render(document))
        stage = raw["pipelines"]["sample"]["stages"][0]["build"]
        assert "approval" not in stage
        assert "fetch_materials" not in stage
        assert raw["pipelines"]["sample"]["materials"]["app"] == {"git": "https://example.com/app.git"}


class TestRoundTrip:
    @pytest.mark.parametrize("lock", list(LockBehavior))
    def test_lock_behavior(self, relay_document, lock):
        relay_document.pipelines[0].lock_behavior = lock
        loaded = parse_pipeline_document(gocd_render.render(relay_document))
        assert loaded.pipelines[0].lock_behavior == lock

    @pytest.mark.parametrize("approval", list(ApprovalType))
    def test_approval_type(self, relay_document, approval):
        relay_document.pipelines[0].stages[1].approval.type = approval
        loaded = parse_pipeline_document(gocd_render.render(relay_document))
        assert loaded.pipelines[0].stages[1].approval.type == approval
        assert loaded == relay_document

    def test_exec_task(self):
        text = """\
format_version: 10
pipelines:
  p:
    group: g
    materials:
      m:
        git: https://example.com/m.git
    stages:
      - s:
          jobs:
            j:
              timeout: 10
              tasks:
                - exec:
                    command: make
                    arguments: [test]
                    run_if: passed
"""
        document = parse_pipeline_document(text)
        task = document.pipelines[0].stages[0].jobs[0].tasks[0]
        assert task == ExecTask(command="make", arguments=["test"], run_if="passed")
        assert parse_pipeline_document(gocd_render.render(document)) == document


class TestMergeKeys:
    TEXT = """\
format_version: 10
pipelines:
  sample:
    group: demo
    materials:
      app:
        git: https://example.com/app.git
    stages:
      - build:
          jobs:
            compile: &defaults
              timeout: 60
              elastic_profile_id: demo
              tasks:
                - script: make build
            lint:
              <<: *defaults
              tasks:
                - script: make lint
"""

    def test_job_inherits_anchor(self):
        stage = parse_pipeline_document(self.TEXT).pipelines[0].stages[0]
        lint = stage.job("lint")
        assert lint.timeout == 60
        assert lint.elastic_profile_id == "demo"
        assert lint.tasks[0].script == "make lint"

    def test_duplicates_still_rejected(self):
        text = self.TEXT.replace("<<: *defaults\n", "<<: *defaults\n              timeout: 30\n              timeout: 90\n")
        with pytest.raises(PipelineFormatError) as exc:
            parse_pipeline_document(text)
        assert any("duplicate key" in line for line in exc.value.logs)


class TestLoaderErrors:
    def test_duplicate_variable(self):
        text = """\
pipelines:
  p:
    environment_variables:
      GKE_REGION: us-central1
      GKE_REGION: europe-west1
"""
        with pytest.raises(PipelineFormatError) as exc:
            parse_pipeline_document(text)
        assert any("duplicate key" in line for line in exc.value.logs)

    def test_invalid_yaml(self):
        with pytest.raises(PipelineFormatError):
            parse_pipeline_document("pipelines: [unclosed")

    def test_unknown_field(self, minimal_yaml):
        with pytest.raises(PipelineFormatError) as exc:
            parse_pipeline_document(minimal_yaml.replace("timeout: 60", "timeuot: 60"))
        assert any("timeuot" in line for line in exc.value.logs)

    def test_stage_must_be_single_key(self):
        text = """\
pipelines:
  p:
    stages:
      - a: {}
        b: {}
"""
        with pytest.raises(PipelineFormatError):
            parse_pipeline_document(text)

    def test_unsupported_task(self, minimal_yaml):
        with pytest.raises(PipelineFormatError):
            parse_pipeline_document(minimal_yaml.replace("- script:", "- plugin:"))

    def test_non_git_material(self):
        text = """\
pipelines:
  p:
    materials:
      upstream:
        pipeline: other
        stage: build
"""
        with pytest.raises(PipelineFormatError):
            parse_pipeline_document(text)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PipelineFormatError) as exc:
            load_pipeline_file(tmp_path / "missing.yaml")
        assert exc.value.logs[0].startswith("Читаем файл пайплайна")
