"""Tests for compose value types."""

from __future__ import annotations

import dataclasses

import pytest
from pydantic import ValidationError

from composectl.models import ComposeProject, DownCall, RmCall, ServiceUpSpec, UpCall


class TestServiceUpSpec:
    def test_defaults(self):
        spec = ServiceUpSpec(service="web")
        assert spec.service == "web"
        assert spec.build is False
        assert spec.project == ComposeProject()

    def test_empty_service_rejected(self):
        with pytest.raises(ValidationError):
            ServiceUpSpec(service="")

    def test_frozen(self):
        spec = ServiceUpSpec(service="web")
        with pytest.raises(ValidationError):
            spec.service = "db"  # type: ignore[misc]

    def test_equality_by_value(self):
        assert ServiceUpSpec(service="web", build=True) == ServiceUpSpec(service="web", build=True)


class TestComposeProject:
    def test_defaults(self):
        project = ComposeProject()
        assert project.name == ""
        assert project.project_path == ""
        assert project.config_paths == ()
        assert project.env_file is None

    def test_config_paths_list_becomes_tuple(self):
        project = ComposeProject(config_paths=["a.yml", "b.yml"])  # type: ignore[arg-type]
        assert project.config_paths == ("a.yml", "b.yml")

    def test_frozen(self):
        project = ComposeProject(name="app")
        with pytest.raises(ValidationError):
            project.name = "other"  # type: ignore[misc]


class TestCallRecords:
    def test_up_call_is_immutable(self):
        call = UpCall(ServiceUpSpec(service="web"), True)
        with pytest.raises(dataclasses.FrozenInstanceError):
            call.should_build = False  # type: ignore[misc]

    def test_down_call(self):
        project = ComposeProject(name="app")
        assert DownCall(project).project is project

    def test_rm_call_keeps_specs(self):
        specs = (ServiceUpSpec(service="a"), ServiceUpSpec(service="b"))
        assert RmCall(specs).specs == specs
