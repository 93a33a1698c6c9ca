"""
Tests for autoflow

This package contains tests for:
- Program graph validation and traversal
- Pose simulation, curve math and drivetrain kinematics
- The four code generation backends
- Device registry, project files, config and the CLI
"""
