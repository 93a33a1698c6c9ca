"""Tests for project files."""

import pytest

from autoflow.errors import ProjectFileError
from autoflow.storage import Project, load_project, project_from_dict, save_project, write_source
from autoflow.waypoints import Waypoint


class TestProjectFiles:
    """Tests for loading and saving projects."""

    def test_round_trip(self, tmp_path, rich_graph, registry):
        project = Project("Red Left", rich_graph, registry, Waypoint(10, 20, 90))
        path = save_project(project, str(tmp_path / "red.json"))
        loaded = load_project(path)
        assert loaded.name == "Red Left"
        assert loaded.initial_pose == (10, 20, 90)
        assert loaded.graph.to_dict() == rich_graph.to_dict()
        assert loaded.registry == registry

    def test_defaults(self):
        project = project_from_dict({"nodes": [], "edges": []})
        assert project.name == "Auto"
        assert project.initial_pose == (72, 72, 0)
        assert project.registry.find("imu") is not None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProjectFileError):
            load_project(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2", encoding="utf-8")
        with pytest.raises(ProjectFileError):
            load_project(str(path))

    def test_not_an_object(self):
        with pytest.raises(ProjectFileError):
            project_from_dict([1, 2, 3])

    def test_invalid_graph(self):
        data = {
            "nodes": [{"id": "start", "type": "startNode", "data": {}}],
            "edges": [{"id": "e1", "source": "start", "target": "start"}],
        }
        with pytest.raises(ProjectFileError, match="Invalid graph"):
            project_from_dict(data)
        assert project_from_dict(data, validate=False).graph.edges

    def test_malformed_node(self):
        with pytest.raises(ProjectFileError):
            project_from_dict({"nodes": [{"type": "blockNode", "data": {"type": "wait"}}]})

    def test_write_source(self, tmp_path):
        path = write_source(["class A {", "}"], str(tmp_path / "out" / "A.java"))
        with open(path, encoding="utf-8") as f:
            assert f.read() == "class A {\n}\n"
        path = write_source("x\n", str(tmp_path / "B.java"))
        with open(path, encoding="utf-8") as f:
            assert f.read() == "x\n"
