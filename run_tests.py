#!/usr/bin/env python3
"""
Simple test runner for gridist.
Checks syntax of every source file, then imports each subpackage and runs
the unittest-discoverable suites under tests/.
"""
import unittest
import sys
import os
from pathlib import Path

PACKAGES = [
    "gridist",
    "gridist.environment",
    "gridist.belief",
    "gridist.planning",
    "gridist.planning.integration",
    "gridist.evaluation",
    "gridist.utils",
]


def run_syntax_check():
    """Check syntax of all Python files in the project."""
    print("Checking syntax of Python files...")

    python_files = (list(Path("gridist").rglob("*.py")) + list(Path("tests").rglob("*.py"))
                    + list(Path("scripts").rglob("*.py")))

    errors = []
    for py_file in python_files:
        try:
            with open(py_file, 'r', encoding='utf-8') as f:
                source = f.read()
            compile(source, str(py_file), 'exec')
            print(f"  ok {py_file}")
        except SyntaxError as e:
            errors.append((py_file, str(e)))
            print(f"  FAIL {py_file} - Syntax Error: {e}")

    return len(errors) == 0


def run_import_tests():
    """Import every subpackage."""
    print("\nRunning import tests...")

    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

    try:
        for package in PACKAGES:
            __import__(package)
            print(f"  ok {package}")
        return True
    except ImportError as e:
        print(f"  FAIL Import error: {e}")
        return False


def run_unit_tests():
    """Run unit tests."""
    print("\nRunning unit tests...")

    loader = unittest.TestLoader()
    suite = loader.discover('tests', pattern='test*.py')

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


def main():
    """Main test runner function."""
    print("=" * 60)
    print("gridist - Test Suite")
    print("=" * 60)

    if not os.path.exists("gridist") or not os.path.exists("tests"):
        print("Error: This script must be run from the project root directory.")
        sys.exit(1)

    all_passed = True

    if not run_syntax_check():
        print("\nSyntax check failed!")
        all_passed = False

    if not run_import_tests():
        all_passed = False

    if not run_unit_tests():
        print("Unit tests failed!")
        all_passed = False

    print("\n" + "=" * 60)
    if all_passed:
        print("All tests passed.")
    else:
        print("Some tests failed! Please check the output above.")
        sys.exit(1)
    print("=" * 60)


if __name__ == "__main__":
    main()
