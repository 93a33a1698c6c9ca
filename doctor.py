"""Run local environment checks for Autoflow."""

import os
import platform
import sys
from pathlib import Path


def _ok(flag: bool) -> str:
    return "PASS" if flag else "FAIL"


def _warn(flag: bool) -> str:
    return "PASS" if flag else "WARN"


def _can_write(path: Path) -> bool:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        probe = path.parent / ".autoflow_write_test"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
        return True
    except OSError:
        return False


def main() -> int:
    root = Path(__file__).resolve().parent
    print("Autoflow Doctor")
    print(f"- OS: {platform.system()} {platform.release()}")
    print(f"- Python: {platform.python_version()} ({sys.executable})")

    py_ok = sys.version_info >= (3, 8)
    print(f"[{_ok(py_ok)}] Python >= 3.8")
    if not py_ok:
        return 1

    try:
        import pygame  # noqa: F401
        pg_ok = True
    except ImportError:
        pg_ok = False
    print(f"[{_ok(pg_ok)}] pygame available (field preview)")

    required = [
        root / "main.py",
        root / "autoflow" / "config.py",
        root / "autoflow" / "codegen" / "__init__.py",
    ]
    files_ok = all(p.exists() for p in required)
    print(f"[{_ok(files_ok)}] core files present")
    if not files_ok:
        for p in required:
            if not p.exists():
                print(f"       Missing: {p}")

    from autoflow.config import CONFIG_FILENAME, load_config

    cfg_path = Path(os.getcwd()) / CONFIG_FILENAME
    print(f"[{_warn(cfg_path.exists())}] config file {cfg_path} (defaults used if missing)")
    cfg = load_config(str(cfg_path))
    cfg_ok = all(k in cfg for k in ("initial_pose", "robot_physics", "codegen"))
    print(f"[{_ok(cfg_ok)}] config sections readable")

    writable = _can_write(cfg_path)
    print(f"[{_ok(writable)}] writable config path available")

    all_ok = py_ok and pg_ok and files_ok and cfg_ok and writable
    if all_ok:
        print("All checks passed.")
        return 0
    print("One or more checks failed.")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
