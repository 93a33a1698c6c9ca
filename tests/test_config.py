"""Tests for layered configuration."""

import json

from autoflow.config import (
    DEFAULT_CONFIG, codegen_flat, default_config, encoder_flat, initial_pose_flat,
    load_config, physics_flat, preview_flat, save_config,
)


class TestConfig:
    """Tests for loading, merging and flattening config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.json"))
        assert cfg == DEFAULT_CONFIG
        assert cfg is not DEFAULT_CONFIG

    def test_bad_json_gives_defaults(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_partial_override(self, tmp_path):
        path = tmp_path / "autoflow.json"
        path.write_text(json.dumps({
            "initial_pose": {"x": {"value": 10}},
            "codegen": {"style": "roadrunner"},
        }), encoding="utf-8")
        cfg = load_config(str(path))
        assert initial_pose_flat(cfg) == {"x": 10, "y": 72.0, "heading": 0.0}
        assert codegen_flat(cfg)["style"] == "roadrunner"
        assert codegen_flat(cfg)["package"] == "org.firstinspires.ftc.teamcode"

    def test_save_and_reload(self, tmp_path):
        cfg = default_config()
        cfg["robot_physics"]["track_width_in"]["value"] = 15.5
        path = save_config(cfg, str(tmp_path / "sub" / "autoflow.json"))
        assert physics_flat(load_config(path))["track_width_in"] == 15.5

    def test_flat_sections(self):
        cfg = default_config()
        assert encoder_flat(cfg)["timeout_s"] == 5.0
        assert preview_flat(cfg)["simplify_epsilon_in"] == 2.0
        assert physics_flat({})["drive_speed_ips"] == 24.0
