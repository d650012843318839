#!/usr/bin/env python3
"""
Development tasks for sqlresolver.

Usage: python dev_tasks.py <command>
"""

import os
import shutil
import subprocess
import sys

PACKAGE = "sqlresolver"


def run_command(command, check=True):
    print(f"Running: {command}")
    result = subprocess.run(command, shell=True, check=check)
    return result.returncode == 0


def clean():
    print("Cleaning build artifacts...")
    for path in ["build", "dist", ".pytest_cache", "htmlcov"]:
        shutil.rmtree(path, ignore_errors=True)
    for name in os.listdir("."):
        if name.endswith(".egg-info"):
            shutil.rmtree(name, ignore_errors=True)
    for root, dirs, _files in os.walk("."):
        if "__pycache__" in dirs:
            shutil.rmtree(os.path.join(root, "__pycache__"), ignore_errors=True)
    print("Clean completed.")


def format_code():
    print("Formatting code...")
    run_command(f"black {PACKAGE} tests")
    run_command(f"isort {PACKAGE} tests")
    print("Code formatting completed.")


def lint():
    print("Running linting...")
    success = True
    if not run_command(f"mypy {PACKAGE}", check=False):
        success = False
    if not run_command(f"flake8 {PACKAGE} tests", check=False):
        success = False
    if not success:
        print("Linting failed.")
        sys.exit(1)
    print("Linting passed.")


def test():
    print("Running tests...")
    # SQLRESOLVER_TEST_DATABASE_URL selects an external database; in-memory SQLite otherwise
    run_command(f"pytest tests/ -v --cov={PACKAGE} --cov-report=term")
    print("Tests completed.")


def build():
    print("Building package...")
    clean()
    run_command("python -m build")
    print("Build completed.")


def install_dev():
    print("Installing in development mode...")
    run_command("pip install -e .[dev,test]")
    print("Development installation completed.")


def main():
    commands = {
        "clean": clean,
        "format": format_code,
        "lint": lint,
        "test": test,
        "build": build,
        "install-dev": install_dev,
        "all": lambda: (format_code(), lint(), test(), build()),
    }
    if len(sys.argv) < 2:
        print("Usage: python dev_tasks.py <command>")
        print(f"Commands: {', '.join(commands)}")
        sys.exit(1)
    fn = commands.get(sys.argv[1])
    if not fn:
        print(f"Unknown command: {sys.argv[1]}")
        sys.exit(1)
    fn()


if __name__ == "__main__":
    main()
